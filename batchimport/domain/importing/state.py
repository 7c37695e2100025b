from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ImportState:
    """
    Назначение:
        Прогресс пошагового импорта.

    Инварианты:
        - Меняется только планировщиком шагов.
        - done становится True, как только offset > total_rows.
        - current_step >= 1; указывает на шаг, который будет выполнен следующим.
    """

    per_step: int
    current_step: int = 1
    total_rows: int = 0
    done: bool = False
    rows_processed: int = 0

    def __post_init__(self) -> None:
        # шаг импортирует per_step - 1 строк, при per_step=1 импорт не продвигается
        if self.per_step < 2:
            raise ValueError("per_step must be >= 2")
        if self.current_step < 1:
            raise ValueError("current_step must be >= 1")

    @property
    def offset(self) -> int:
        return offset_for_step(self.per_step, self.current_step)

    @property
    def status(self) -> str:
        if self.done:
            return "done"
        if self.current_step > 1:
            return "in-progress"
        return "not-started"


def offset_for_step(per_step: int, step: int) -> int:
    return per_step * (step - 1) if step > 1 else 0
