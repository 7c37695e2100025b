from __future__ import annotations

import re

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WS_RE = re.compile(r"\s+")


def sanitizeText(value: str | None) -> str | None:
    """
    Назначение:
        Очищает текст ячейки перед записью в поле платежа.

    Входные данные:
        value: str | None
            Сырое значение ячейки.

    Выходные данные:
        str | None
            Очищенная строка; None, если после очистки ничего не осталось.

    Алгоритм:
        - Удалить HTML-теги и управляющие символы.
        - Схлопнуть пробельные последовательности в один пробел, обрезать края.
    """
    if value is None:
        return None
    cleaned = _TAG_RE.sub("", value)
    cleaned = _CONTROL_RE.sub("", cleaned)
    cleaned = _WS_RE.sub(" ", cleaned).strip()
    return cleaned or None
