# exchange/routers/admin.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..admin.security import Capability, require
from ..models.user import User
from ..services import users as users_svc
from ..services.passwords import migrate_legacy_passwords

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users")
def admin_users(_: User = Depends(require(Capability.MANAGE_USERS)), db: Session = Depends(get_db)):
    return [u.to_dict(private=True) for u in users_svc.list_users(db)]


@router.post("/users/{user_id}/make-admin")
def admin_make_admin(
    user_id: int,
    admin: User = Depends(require(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    u = users_svc.make_admin(db, user_id)
    log.info("admin %s granted admin to user %s", admin.id, u.id)
    return u.to_dict(private=True)


@router.post("/users/{user_id}/toggle-moderator")
def admin_toggle_moderator(
    user_id: int,
    admin: User = Depends(require(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    u = users_svc.toggle_moderator(db, user_id)
    log.info("admin %s set moderator=%s on user %s", admin.id, u.is_moderator, u.id)
    return u.to_dict(private=True)


@router.delete("/users/{user_id}")
def admin_delete_user(
    user_id: int,
    admin: User = Depends(require(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    if user_id == admin.id:
        raise ValueError("You cannot delete your own account")
    users_svc.delete_user(db, user_id)
    return {"message": "User deleted", "id": user_id}


@router.post("/migrate-legacy-passwords")
def admin_migrate_passwords(
    _: User = Depends(require(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    report = migrate_legacy_passwords(db)
    return {"checked": report.checked, "flagged_count": report.flagged_count, "flagged": report.flagged}
