from __future__ import annotations

from dataclasses import dataclass

from batchimport.domain.error_codes import ErrorCode


@dataclass
class PermissionDeniedError(Exception):
    """
    Назначение:
        Оператор не имеет права импортировать данные.
    Инварианты/гарантии:
        - Возбуждается до обработки первой строки шага.
    """

    operator_id: int
    capability: str

    @property
    def code(self) -> ErrorCode:
        return ErrorCode.PERMISSION_DENIED

    def __str__(self) -> str:
        return (
            f"You do not have permission to import data "
            f"(operator_id={self.operator_id}, capability={self.capability})"
        )


@dataclass
class CatalogCreateError(Exception):
    """
    Назначение:
        Не удалось создать позицию каталога для строки импорта.
    """

    title: str
    reason: str

    @property
    def code(self) -> ErrorCode:
        return ErrorCode.CATALOG_CREATE_FAILED

    def __str__(self) -> str:
        return f"Failed to create catalog entry '{self.title}': {self.reason}"


class ImportStateNotFoundError(LookupError):
    """
    Назначение:
        Запрошенное состояние импорта отсутствует в хранилище.
    """


__all__ = ["PermissionDeniedError", "CatalogCreateError", "ImportStateNotFoundError"]
