import logging

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format=LOG_FORMAT)
    # sqlalchemy сам по себе слишком шумный на INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
