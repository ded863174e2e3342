# exchange/deps.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models.user import User
from .utils import clock

log = logging.getLogger(__name__)

SESSION_USER = "user_id"
SESSION_PENDING = "pending_user_id"
SESSION_ACTIVITY = "last_activity"


# ------------------ Session helpers ------------------

def start_session(request: Request, user: User) -> None:
    request.session.clear()
    request.session[SESSION_USER] = user.id
    request.session[SESSION_ACTIVITY] = clock.timestamp()


def start_pending_session(request: Request, user: User) -> None:
    """Вход подтверждён, но пользователь должен сначала сменить пароль/логин."""
    request.session.clear()
    request.session[SESSION_PENDING] = user.id


def clear_session(request: Request) -> None:
    request.session.clear()


def pending_gate(user: User) -> Optional[str]:
    # смена пароля показывается раньше смены логина
    if user.require_password_reset:
        return "require_password_reset"
    if user.require_username_change:
        return "require_username_change"
    return None


def _staff_idle_expired(request: Request, user: User) -> bool:
    if not (user.is_admin or user.is_moderator):
        return False
    last = request.session.get(SESSION_ACTIVITY)
    return last is None or clock.timestamp() - float(last) > settings.ADMIN_IDLE_TIMEOUT_SEC


# ------------------ Dependencies ------------------

def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    uid = request.session.get(SESSION_USER)
    if not uid:
        return None
    user = db.get(User, uid)
    if not user or user.is_suspended:
        clear_session(request)
        return None
    if _staff_idle_expired(request, user):
        log.info("staff session expired for user_id=%s", user.id)
        clear_session(request)
        return None
    request.session[SESSION_ACTIVITY] = clock.timestamp()
    return user


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )
    return user


def get_gate_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Пользователь для блокирующих форм (смена пароля / логина):
    подходит и полная сессия, и "ожидающая" после входа.
    """
    pending = request.session.get(SESSION_PENDING)
    if pending:
        user = db.get(User, pending)
        if user and not user.is_suspended:
            return user
        clear_session(request)
    user = get_optional_user(request, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )
    return user


def finish_gate(request: Request, user: User) -> Optional[str]:
    """
    После выполнения блокирующего действия: если флагов больше нет,
    ожидающая сессия превращается в обычную. Возвращает оставшийся флаг.
    """
    remaining = pending_gate(user)
    if remaining is None and request.session.get(SESSION_PENDING):
        start_session(request, user)
    return remaining
