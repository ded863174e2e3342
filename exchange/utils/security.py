import hmac

import bcrypt

from ..config import settings

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def _encode(password: str) -> bytes:
    # bcrypt учитывает только первые 72 байта
    return password.encode("utf-8")[:72]


def is_bcrypt_hash(value: str | None) -> bool:
    return bool(value) and value.startswith(BCRYPT_PREFIXES)


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_encode(password), salt).decode("ascii")


def verify_password(password: str, stored: str | None) -> bool:
    """
    Проверка пароля против сохранённого значения.
    Старые записи могут хранить пароль открытым текстом (до миграции),
    их сравниваем за постоянное время.
    """
    if not stored or not isinstance(password, str):
        return False
    if is_bcrypt_hash(stored):
        try:
            return bcrypt.checkpw(_encode(password), stored.encode("ascii"))
        except ValueError:
            return False
    return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))
