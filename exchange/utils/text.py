from typing import Any


def text_field(value: Any, label: str) -> str:
    """Строковое поле из JSON-тела: None даёт "", любой другой тип отклоняется."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{label} is required")
    return value.strip()


def like_pattern(query: str) -> str:
    # % и _ из запроса ищутся буквально; использовать с .like(..., escape="\\")
    q = query.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{q}%"
