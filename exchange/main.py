# exchange/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from .config import settings
from .errors import NotFoundError
from .db import SessionLocal, init_db
from .logging_setup import setup_logging
from .services.categories import seed_categories

from .routers import (
    auth as auth_router,
    profile as profile_router,
    categories as categories_router,
    posts as posts_router,
    moderation as moderation_router,
    messages as messages_router,
    ads as ads_router,
    admin as admin_router,
)

setup_logging()
log = logging.getLogger(__name__)

app = FastAPI(title="Regional Exchange")

# --- CORS ---
allowed_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Сессии ---
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SECRET_KEY,
    session_cookie=settings.COOKIE_NAME,
    max_age=settings.SESSION_MAX_AGE_SEC,
    same_site=settings.COOKIE_SAMESITE,
    https_only=settings.COOKIE_SECURE,
)


# --- Ошибки: всегда {"message": ...} ---
def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


@app.exception_handler(HTTPException)
async def http_error(request: Request, exc: HTTPException):
    return _message(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    msg = errors[0].get("msg") if errors else "Invalid request"
    return _message(400, msg)


@app.exception_handler(ValueError)
async def value_error(request: Request, exc: ValueError):
    return _message(400, str(exc))


@app.exception_handler(PermissionError)
async def permission_error(request: Request, exc: PermissionError):
    return _message(403, str(exc))


@app.exception_handler(NotFoundError)
async def not_found_error(request: Request, exc: NotFoundError):
    return _message(404, str(exc))


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception):
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    return _message(500, "Internal server error")


# --- Подключение роутеров ---
app.include_router(auth_router.router)
app.include_router(profile_router.router)
app.include_router(categories_router.router)
app.include_router(moderation_router.router)
app.include_router(posts_router.router)
app.include_router(messages_router.router)
app.include_router(ads_router.router)
app.include_router(admin_router.router)


# --- Инициализация БД ---
@app.on_event("startup")
def on_startup():
    init_db()
    if settings.SEED_ON_STARTUP:
        with SessionLocal() as db:
            seed_categories(db)
    log.info("startup complete")
