# exchange/routers/moderation.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..admin.security import Capability, require
from ..models.user import User
from ..services import posts as posts_svc
from ..services import users as users_svc

log = logging.getLogger(__name__)

router = APIRouter(tags=["moderation"])


# ---------- Посты ----------
@router.post("/api/posts/{post_id}/pin")
def api_toggle_pin(
    post_id: int,
    mod: User = Depends(require(Capability.PIN_POSTS)),
    db: Session = Depends(get_db),
):
    p = posts_svc.toggle_pin(db, post_id)
    log.info("moderator %s set pinned=%s on post %s", mod.id, p.is_pinned, p.id)
    return {"message": "Post pinned" if p.is_pinned else "Post unpinned", "post": p.to_dict()}


@router.put("/api/posts/{post_id}/moderate")
def api_set_post_active(
    post_id: int,
    payload: dict,
    mod: User = Depends(require(Capability.MODERATE_POSTS)),
    db: Session = Depends(get_db),
):
    if "is_active" not in payload:
        raise ValueError("is_active is required")
    p = posts_svc.set_active(db, post_id, bool(payload["is_active"]))
    log.info("moderator %s set active=%s on post %s", mod.id, p.is_active, p.id)
    return {"post": p.to_dict()}


@router.delete("/api/posts/{post_id}/moderate")
def api_moderate_delete(
    post_id: int,
    mod: User = Depends(require(Capability.MODERATE_POSTS)),
    db: Session = Depends(get_db),
):
    posts_svc.delete_post(db, post_id)
    log.info("moderator %s deleted post %s", mod.id, post_id)
    return {"message": "Post has been deleted", "id": post_id}


# ---------- Пользователи ----------
@router.post("/api/users/{user_id}/suspend")
def api_toggle_suspend(
    user_id: int,
    mod: User = Depends(require(Capability.SUSPEND_USERS)),
    db: Session = Depends(get_db),
):
    if user_id == mod.id:
        raise ValueError("You cannot suspend yourself")
    target = users_svc.get_user(db, user_id)
    if target.is_admin and not mod.is_admin:
        raise PermissionError("Moderators cannot suspend administrators")
    u = users_svc.toggle_suspension(db, user_id)
    log.info("moderator %s set suspended=%s on user %s", mod.id, u.is_suspended, u.id)
    return u.to_dict(private=True)


@router.post("/api/users/{user_id}/flag-password-reset")
def api_flag_password_reset(
    user_id: int,
    mod: User = Depends(require(Capability.FLAG_USERS)),
    db: Session = Depends(get_db),
):
    return users_svc.set_password_reset_flag(db, user_id, True).to_dict(private=True)


@router.post("/api/users/{user_id}/clear-password-reset")
def api_clear_password_reset(
    user_id: int,
    mod: User = Depends(require(Capability.FLAG_USERS)),
    db: Session = Depends(get_db),
):
    return users_svc.set_password_reset_flag(db, user_id, False).to_dict(private=True)


@router.post("/api/users/{user_id}/flag-username-change")
def api_flag_username_change(
    user_id: int,
    mod: User = Depends(require(Capability.FLAG_USERS)),
    db: Session = Depends(get_db),
):
    return users_svc.set_username_change_flag(db, user_id, True).to_dict(private=True)


@router.post("/api/users/{user_id}/clear-username-change")
def api_clear_username_change(
    user_id: int,
    mod: User = Depends(require(Capability.FLAG_USERS)),
    db: Session = Depends(get_db),
):
    return users_svc.set_username_change_flag(db, user_id, False).to_dict(private=True)
