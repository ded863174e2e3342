import datetime as dt
import time


def utcnow() -> dt.datetime:
    # naive UTC: sqlite не хранит tzinfo, сравниваем без него
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def timestamp() -> int:
    """Секунды epoch для отметок в cookie-сессии."""
    return int(time.time())
