# exchange/services/passwords.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..models.user import User, PasswordHistory
from ..utils.security import hash_password, verify_password, is_bcrypt_hash

log = logging.getLogger(__name__)

SPECIAL_CHARS = "@$!%*?&"
MIN_LENGTH = 10

# (правило, сообщение); порядок совпадает с порядком ошибок в ответе
_RULES = [
    (lambda p: len(p) >= MIN_LENGTH,
     f"Password must be at least {MIN_LENGTH} characters long"),
    (lambda p: re.search(r"[a-z]", p) is not None,
     "Password must contain at least one lowercase letter"),
    (lambda p: re.search(r"[A-Z]", p) is not None,
     "Password must contain at least one uppercase letter"),
    (lambda p: re.search(r"\d", p) is not None,
     "Password must contain at least one number"),
    (lambda p: re.search(r"[@$!%*?&]", p) is not None,
     f"Password must contain at least one special character ({SPECIAL_CHARS})"),
    (lambda p: re.fullmatch(r"[A-Za-z\d@$!%*?&]+", p) is not None,
     f"Password can only contain letters, numbers, and these special characters: {SPECIAL_CHARS}"),
]


@dataclass
class PasswordCheck:
    ok: bool
    errors: List[str] = field(default_factory=list)


def validate_password(password: str) -> PasswordCheck:
    if not isinstance(password, str):
        password = ""
    errors = [msg for rule, msg in _RULES if not rule(password)]
    return PasswordCheck(ok=not errors, errors=errors)


def password_requirements() -> List[str]:
    return [
        f"At least {MIN_LENGTH} characters long",
        "Contains at least one lowercase letter (a-z)",
        "Contains at least one uppercase letter (A-Z)",
        "Contains at least one number (0-9)",
        f"Contains at least one special character ({SPECIAL_CHARS})",
        "Only contains letters, numbers, and allowed special characters",
    ]


# ---- История паролей ----

def recent_hashes(db: Session, user_id: int) -> List[str]:
    return db.execute(
        select(PasswordHistory.password_hash)
        .where(PasswordHistory.user_id == user_id)
        .order_by(PasswordHistory.id.desc())
        .limit(settings.PASSWORD_HISTORY_DEPTH)
    ).scalars().all()


def was_used_recently(db: Session, user_id: int, password: str) -> bool:
    # bcrypt с солью: сравнение только через verify по каждой записи
    return any(verify_password(password, h) for h in recent_hashes(db, user_id))


def add_to_history(db: Session, user_id: int, password_hash: str) -> None:
    """Добавляет хеш в историю и обрезает её до PASSWORD_HISTORY_DEPTH. Без commit."""
    db.add(PasswordHistory(user_id=user_id, password_hash=password_hash))
    db.flush()

    stale = db.execute(
        select(PasswordHistory)
        .where(PasswordHistory.user_id == user_id)
        .order_by(PasswordHistory.id.desc())
        .offset(settings.PASSWORD_HISTORY_DEPTH)
    ).scalars().all()
    for row in stale:
        db.delete(row)
    db.flush()


def change_password(
    db: Session,
    user: User,
    current_password: str,
    new_password: str,
    confirm_password: str | None = None,
) -> User:
    if not isinstance(current_password, str) or not current_password:
        raise ValueError("Current password is required")
    if not isinstance(new_password, str) or not new_password:
        raise ValueError("New password is required")
    if not verify_password(current_password, user.hashed_password):
        raise ValueError("Current password is incorrect")
    if confirm_password is not None and new_password != confirm_password:
        raise ValueError("New password and confirmation must match")

    check = validate_password(new_password)
    if not check.ok:
        raise ValueError(", ".join(check.errors))

    if was_used_recently(db, user.id, new_password):
        raise ValueError(
            f"New password cannot be the same as any of your last "
            f"{settings.PASSWORD_HISTORY_DEPTH} passwords"
        )

    new_hash = hash_password(new_password)
    user.hashed_password = new_hash
    user.require_password_reset = False
    add_to_history(db, user.id, new_hash)
    db.commit()
    db.refresh(user)
    log.info("password changed for user_id=%s", user.id)
    return user


# ---- Миграция старых паролей ----

@dataclass
class MigrationReport:
    checked: int = 0
    flagged: List[str] = field(default_factory=list)

    @property
    def flagged_count(self) -> int:
        return len(self.flagged)


def migrate_legacy_passwords(db: Session) -> MigrationReport:
    """Помечает к принудительной смене всех, у кого пароль хранится не bcrypt-хешем."""
    report = MigrationReport()
    for u in db.execute(select(User).order_by(User.id)).scalars():
        report.checked += 1
        if u.hashed_password and not is_bcrypt_hash(u.hashed_password):
            if not u.require_password_reset:
                u.require_password_reset = True
            report.flagged.append(u.username)
            log.info("flagging user %s for password reset (plain text password)", u.username)
    db.commit()
    log.info("legacy password migration done: checked=%s flagged=%s", report.checked, report.flagged_count)
    return report
