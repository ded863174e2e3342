# python -m exchange.seed [--admin USERNAME --email EMAIL --password PASSWORD]
import argparse
import logging
import sys

from .db import SessionLocal, init_db
from .logging_setup import setup_logging
from .models.user import User
from .services.categories import seed_categories
from .services.passwords import validate_password, add_to_history
from .services.users import get_user_by_username, validate_username
from .utils.security import hash_password

log = logging.getLogger("exchange.seed")


def create_admin(db, username: str, email: str, password: str) -> User:
    username = validate_username(username)
    check = validate_password(password)
    if not check.ok:
        raise ValueError(", ".join(check.errors))
    existing = get_user_by_username(db, username)
    if existing:
        log.info("admin user %s already exists, skipping", username)
        return existing

    hashed = hash_password(password)
    u = User(
        username=username,
        email=email,
        hashed_password=hashed,
        first_name="Site",
        last_name="Administrator",
        is_verified=True,
        is_admin=True,
    )
    db.add(u)
    db.flush()
    add_to_history(db, u.id, hashed)
    db.commit()
    log.info("created admin user %s", username)
    return u


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed categories and optionally an admin user")
    parser.add_argument("--admin")
    parser.add_argument("--email")
    parser.add_argument("--password")
    args = parser.parse_args(argv)

    setup_logging()
    init_db()
    with SessionLocal() as db:
        seed_categories(db)
        if args.admin:
            if not (args.email and args.password):
                parser.error("--admin requires --email and --password")
            try:
                create_admin(db, args.admin, args.email, args.password)
            except ValueError as e:
                log.error("cannot create admin: %s", e)
                return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
