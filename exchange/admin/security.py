# exchange/admin/security.py
from __future__ import annotations

import enum
from typing import Optional

from fastapi import Depends, HTTPException, status

from ..deps import get_current_user
from ..models.user import User


class Capability(str, enum.Enum):
    PIN_POSTS = "pin_posts"
    MODERATE_POSTS = "moderate_posts"
    DELETE_POST = "delete_post"
    SUSPEND_USERS = "suspend_users"
    FLAG_USERS = "flag_users"
    MANAGE_USERS = "manage_users"
    MANAGE_ADS = "manage_ads"


_STAFF = {
    Capability.PIN_POSTS,
    Capability.MODERATE_POSTS,
    Capability.DELETE_POST,
    Capability.SUSPEND_USERS,
    Capability.FLAG_USERS,
}
_ADMIN_ONLY = {Capability.MANAGE_USERS, Capability.MANAGE_ADS}


def is_staff(user: Optional[User]) -> bool:
    return bool(user) and (bool(user.is_admin) or bool(user.is_moderator))


def has_capability(user: Optional[User], capability: Capability, owner_id: Optional[int] = None) -> bool:
    """
    Единая проверка прав для всех модераторских действий:
    - админ может всё;
    - модератор: всё, кроме управления пользователями и рекламой;
    - DELETE_POST доступен ещё и автору (owner_id).
    """
    if not user or user.is_suspended:
        return False
    if user.is_admin:
        return True
    if capability in _ADMIN_ONLY:
        return False
    if user.is_moderator and capability in _STAFF:
        return True
    return capability is Capability.DELETE_POST and owner_id is not None and owner_id == user.id


def require(capability: Capability):
    """Зависимость FastAPI: пропускает только пользователей с нужным правом."""
    def _dep(user: User = Depends(get_current_user)) -> User:
        if not has_capability(user, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return user
    return _dep
