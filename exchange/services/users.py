# exchange/services/users.py
from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Any, Dict, List

from sqlalchemy import select, func, or_, delete
from sqlalchemy.orm import Session

from ..models.user import User, UserPreferences, ProfileVisibility, Theme
from ..models.post import Post, Reply
from ..models.messaging import Conversation, Message
from ..models.ad import FeaturedListing
from ..errors import NotFoundError
from ..utils.clock import utcnow
from ..utils.security import hash_password, verify_password
from ..utils.text import text_field, like_pattern
from .passwords import validate_password, add_to_history

log = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_AGE = 18


def _clean(value: Any) -> str | None:
    return (str(value).strip() if value is not None else "") or None


def get_user(db: Session, user_id: int) -> User:
    u = db.get(User, user_id)
    if not u:
        raise NotFoundError("User not found")
    return u


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.execute(
        select(User).where(func.lower(User.username) == (username or "").strip().lower())
    ).scalar_one_or_none()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(
        select(User).where(func.lower(User.email) == (email or "").strip().lower())
    ).scalar_one_or_none()


def validate_username(username: Any) -> str:
    username = text_field(username, "Username")
    if len(username) < 3:
        raise ValueError("Username must be at least 3 characters long")
    if len(username) > 20:
        raise ValueError("Username cannot exceed 20 characters")
    if not USERNAME_RE.match(username):
        raise ValueError("Username can only contain letters, numbers, underscores, and hyphens (no spaces)")
    return username


def _validate_name(value: Any, label: str) -> str:
    name = _clean(value)
    if not name:
        raise ValueError(f"{label} is required")
    if len(name) > 50:
        raise ValueError(f"{label} cannot exceed 50 characters")
    return name


def _age_on(birth: dt.date, today: dt.date) -> int:
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def _parse_birth_date(raw: Any) -> dt.date:
    if isinstance(raw, dt.date):
        return raw
    try:
        return dt.date.fromisoformat(str(raw or "")[:10])
    except ValueError:
        raise ValueError("Date of birth is required")


# ---- Регистрация и вход ----

def register_user(db: Session, payload: Dict[str, Any]) -> User:
    username = validate_username(payload.get("username"))
    email = text_field(payload.get("email"), "Email")
    if not EMAIL_RE.match(email):
        raise ValueError("Invalid email address")
    first_name = _validate_name(payload.get("first_name"), "First name")
    last_name = _validate_name(payload.get("last_name"), "Last name")

    birth = _parse_birth_date(payload.get("date_of_birth"))
    if _age_on(birth, utcnow().date()) < MIN_AGE:
        raise ValueError("You must be at least 18 years old to register")

    password = payload.get("password")
    if not isinstance(password, str):
        raise ValueError("Password is required")
    check = validate_password(password)
    if not check.ok:
        raise ValueError(check.errors[0])

    if get_user_by_username(db, username):
        raise ValueError("Username already exists")
    if get_user_by_email(db, email):
        raise ValueError("Email already exists")

    hashed = hash_password(password)
    u = User(
        username=username,
        email=email,
        hashed_password=hashed,
        date_of_birth=birth,
        first_name=first_name,
        last_name=last_name,
        location=_clean(payload.get("location")),
        bio=_clean(payload.get("bio")),
    )
    db.add(u)
    db.flush()
    add_to_history(db, u.id, hashed)
    db.commit()
    db.refresh(u)
    log.info("registered user %s (id=%s)", u.username, u.id)
    return u


def authenticate(db: Session, username: Any, password: Any) -> User | None:
    if not (isinstance(username, str) and isinstance(password, str)) or not username or not password:
        raise ValueError("Username and password are required")
    u = get_user_by_username(db, username)
    if not u or not verify_password(password, u.hashed_password):
        return None
    return u


# ---- Профиль ----

_PROFILE_FIELDS = ("first_name", "last_name", "location", "bio", "profile_picture")


def update_profile(db: Session, user: User, payload: Dict[str, Any]) -> User:
    for name in _PROFILE_FIELDS:
        if name not in payload:
            continue
        if name in ("first_name", "last_name"):
            setattr(user, name, _validate_name(payload[name], name.replace("_", " ").capitalize()))
        else:
            setattr(user, name, _clean(payload[name]))
    db.commit()
    db.refresh(user)
    return user


def change_username(db: Session, user: User, new_username: str) -> User:
    new_username = validate_username(new_username)
    taken = db.execute(
        select(User.id).where(func.lower(User.username) == new_username.lower(), User.id != user.id)
    ).scalar_one_or_none()
    if taken:
        raise ValueError("Username already exists")
    if user.require_username_change and new_username.lower() == user.username.lower():
        raise ValueError("Please choose a different username")

    old = user.username
    user.username = new_username
    user.require_username_change = False
    db.commit()
    db.refresh(user)
    log.info("username changed %s -> %s (id=%s)", old, new_username, user.id)
    return user


def get_preferences(db: Session, user: User) -> UserPreferences:
    prefs = db.execute(
        select(UserPreferences).where(UserPreferences.user_id == user.id)
    ).scalar_one_or_none()
    if not prefs:
        prefs = UserPreferences(user_id=user.id)
        db.add(prefs)
        db.commit()
        db.refresh(prefs)
    return prefs


_BOOL_PREFS = (
    "email_notifications", "message_notifications", "marketing_emails",
    "show_email", "show_location",
)


def update_preferences(db: Session, user: User, payload: Dict[str, Any]) -> UserPreferences:
    prefs = get_preferences(db, user)
    for name in _BOOL_PREFS:
        if name in payload:
            setattr(prefs, name, bool(payload[name]))
    try:
        if "profile_visibility" in payload:
            prefs.profile_visibility = ProfileVisibility(payload["profile_visibility"])
        if "theme" in payload:
            prefs.theme = Theme(payload["theme"])
    except ValueError:
        db.rollback()
        raise ValueError("Invalid preference value")
    db.commit()
    db.refresh(prefs)
    return prefs


def search_users(db: Session, query: str, limit: int = 50) -> List[User]:
    term = like_pattern(query or "")
    return db.execute(
        select(User).where(
            User.is_suspended.is_(False),
            or_(
                func.lower(User.username).like(term, escape="\\"),
                func.lower(User.first_name).like(term, escape="\\"),
                func.lower(User.last_name).like(term, escape="\\"),
                func.lower(User.location).like(term, escape="\\"),
            ),
        ).order_by(User.username).limit(limit)
    ).scalars().all()


# ---- Админ / модерация ----

def list_users(db: Session) -> List[User]:
    return db.execute(select(User).order_by(User.created_at, User.id)).scalars().all()


def toggle_suspension(db: Session, user_id: int) -> User:
    u = get_user(db, user_id)
    u.is_suspended = not u.is_suspended
    db.commit(); db.refresh(u)
    return u


def toggle_moderator(db: Session, user_id: int) -> User:
    u = get_user(db, user_id)
    u.is_moderator = not u.is_moderator
    db.commit(); db.refresh(u)
    return u


def make_admin(db: Session, user_id: int) -> User:
    u = get_user(db, user_id)
    u.is_admin = True
    db.commit(); db.refresh(u)
    return u


def set_password_reset_flag(db: Session, user_id: int, value: bool) -> User:
    u = get_user(db, user_id)
    u.require_password_reset = value
    db.commit(); db.refresh(u)
    return u


def set_username_change_flag(db: Session, user_id: int, value: bool) -> User:
    u = get_user(db, user_id)
    u.require_username_change = value
    db.commit(); db.refresh(u)
    return u


def delete_user(db: Session, user_id: int) -> None:
    """Жёсткое удаление вместе с контентом пользователя."""
    u = get_user(db, user_id)

    post_ids = select(Post.id).where(Post.author_id == u.id)
    conv_ids = select(Conversation.id).where(
        or_(Conversation.participant1_id == u.id, Conversation.participant2_id == u.id)
    )
    db.execute(delete(Message).where(Message.conversation_id.in_(conv_ids)))
    db.execute(delete(Conversation).where(Conversation.id.in_(conv_ids)))
    db.execute(delete(FeaturedListing).where(
        or_(FeaturedListing.post_id.in_(post_ids), FeaturedListing.sponsor_id == u.id)
    ))
    db.execute(delete(Reply).where(or_(Reply.post_id.in_(post_ids), Reply.author_id == u.id)))
    db.execute(delete(Post).where(Post.author_id == u.id))
    db.delete(u)
    db.commit()
    log.info("deleted user id=%s", user_id)
