# python -m exchange.migrate_passwords
import logging
import sys

from .db import SessionLocal, init_db
from .logging_setup import setup_logging
from .services.passwords import migrate_legacy_passwords

log = logging.getLogger("exchange.migrate_passwords")


def main() -> int:
    setup_logging()
    init_db()
    with SessionLocal() as db:
        report = migrate_legacy_passwords(db)
    log.info("migration completed: %s users flagged", report.flagged_count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
