# exchange/db.py
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings
from .models.base import Base

# ---------- Engine / Session ----------
DATABASE_URL = settings.DATABASE_URL

if DATABASE_URL and DATABASE_URL.startswith("sqlite"):
    # check_same_thread=False: сессии ходят между потоками пула FastAPI
    engine_kwargs = {"connect_args": {"check_same_thread": False}}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # in-memory база живёт в одном соединении
        engine_kwargs["poolclass"] = StaticPool
    engine = create_engine(DATABASE_URL, future=True, **engine_kwargs)
else:
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        future=True,
    )

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)

# Регистрируем все таблицы в metadata
from exchange.models import user, category, post, messaging, ad  # noqa: E402,F401


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


# ---------- Dependency ----------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
