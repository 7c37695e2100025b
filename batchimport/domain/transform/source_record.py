from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class SourceRecord:
    """
    Назначение:
        Строка источника (RawRow): имя колонки -> сырое значение.

    Инварианты:
        - values неизменяемы после чтения.
        - Пустая ячейка и отсутствующая колонка представлены одинаково: None.
    """

    line_no: int
    record_id: str
    values: Mapping[str, str | None]

    def get(self, column: str) -> str | None:
        return self.values.get(column)
