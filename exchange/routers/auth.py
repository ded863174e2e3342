# exchange/routers/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import (
    get_current_user, get_gate_user, start_session, start_pending_session,
    clear_session, pending_gate, finish_gate,
)
from ..models.user import User
from ..services import users as users_svc
from ..services.passwords import change_password, password_requirements

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

_GATE_MESSAGES = {
    "require_password_reset": "Your password must be updated to meet new security requirements.",
    "require_username_change": "Your username has been flagged and must be changed.",
}


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: dict, request: Request, db: Session = Depends(get_db)):
    u = users_svc.register_user(db, payload)
    start_session(request, u)
    return u.to_dict(private=True)


@router.post("/login")
def login(payload: dict, request: Request, db: Session = Depends(get_db)):
    """
    Вход. Если у пользователя стоит флаг принудительной смены пароля/логина,
    нормальная сессия не создаётся: клиент получает флаг и должен показать форму.
    """
    u = users_svc.authenticate(db, payload.get("username"), payload.get("password"))
    if not u:
        log.info("failed login for %r", payload.get("username"))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if u.is_suspended:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Your account has been suspended.")

    gate = pending_gate(u)
    if gate:
        start_pending_session(request, u)
        log.info("login gated for user_id=%s: %s", u.id, gate)
        return {**u.to_dict(private=True), gate: True, "message": _GATE_MESSAGES[gate]}

    start_session(request, u)
    log.info("user_id=%s logged in", u.id)
    return u.to_dict(private=True)


@router.post("/logout")
def logout(request: Request):
    clear_session(request)
    return {"message": "Logged out successfully"}


@router.get("/user")
def current_user(user: User = Depends(get_current_user)):
    return user.to_dict(private=True)


@router.get("/password-requirements")
def requirements():
    return {"requirements": password_requirements()}


@router.post("/change-password")
def api_change_password(
    payload: dict,
    request: Request,
    user: User = Depends(get_gate_user),
    db: Session = Depends(get_db),
):
    user = change_password(
        db,
        user,
        payload.get("current_password") or "",
        payload.get("new_password") or "",
        payload.get("confirm_password"),
    )
    remaining = finish_gate(request, user)
    out = {"message": "Password changed successfully", "user": user.to_dict(private=True)}
    if remaining:
        out[remaining] = True
    return out
