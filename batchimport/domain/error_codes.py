from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов ошибок импорта.

    Инварианты:
        - PERMISSION_DENIED фатален и прерывает импорт до обработки строк.
        - Остальные коды восстановимы: строка всё равно обрабатывается.
    """

    PERMISSION_DENIED = "PERMISSION_DENIED"
    ROW_FIELD_INVALID = "ROW_FIELD_INVALID"
    REFERENCE_NOT_FOUND = "REFERENCE_NOT_FOUND"
    CATALOG_CREATE_FAILED = "CATALOG_CREATE_FAILED"
    STORE_ERROR = "STORE_ERROR"
