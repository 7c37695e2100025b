from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from batchimport.domain.models import DiagnosticItem, RowRef
from batchimport.domain.transform.source_record import SourceRecord

T = TypeVar("T")


@dataclass
class TransformResult(Generic[T]):
    """
    Назначение:
        Результат обработки одной строки источника (сборка + сохранение).
    """

    record: SourceRecord
    row: T | None
    row_ref: RowRef | None
    meta: dict[str, Any] = field(default_factory=dict)
    errors: list[DiagnosticItem] = field(default_factory=list)
    warnings: list[DiagnosticItem] = field(default_factory=list)

    @property
    def issues(self) -> list[DiagnosticItem]:
        return [*self.errors, *self.warnings]

    @property
    def ok(self) -> bool:
        return not self.errors
