class NotFoundError(LookupError):
    """Объект не найден; main.py отдаёт это как 404."""
