from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiagnosticStage(str, Enum):
    """
    Назначение:
        Источник диагностического события в пайплайне импорта.
    """

    EXTRACT = "EXTRACT"
    MAP = "MAP"
    COERCE = "COERCE"
    RESOLVE = "RESOLVE"
    BUILD = "BUILD"
    PERSIST = "PERSIST"


@dataclass
class DiagnosticItem:
    """
    Назначение:
        Диагностическое сообщение пайплайна (ошибка/предупреждение).
    """
    stage: DiagnosticStage
    code: str
    field: str | None
    message: str


@dataclass(frozen=True)
class RowRef:
    """
    Назначение:
        Унифицированная ссылка на строку входного набора для отчётов.
    """
    line_no: int
    row_id: str
