from __future__ import annotations

from typing import Callable, Sequence

from batchimport.domain.importing.state import ImportState, offset_for_step
from batchimport.domain.transform.source_record import SourceRecord

RowHandler = Callable[[SourceRecord], None]


class StepScheduler:
    """
    Назначение/ответственность:
        Делит входные строки на пакеты фиксированного размера и ведёт прогресс
        между последовательными вызовами (прерывание/возобновление).

    Поведение пакета (сохранено как есть, см. тесты):
        - Пропускаются строки, у которых 1-based индекс меньше offset.
        - Счётчик пакета стартует с 1 и обрывает пакет при i >= per_step,
          поэтому за шаг обрабатывается per_step - 1 строк, а между пакетами
          начиная с третьего остаётся непросмотренная строка.
    """

    def __init__(self, state: ImportState, rows: Sequence[SourceRecord]) -> None:
        self.state = state
        self.rows = rows
        self.state.total_rows = len(rows)

    def select_batch(self, step: int | None = None) -> list[SourceRecord]:
        """
        Назначение:
            Строки пакета для шага. Чистая функция от (step, rows).
        """
        step = self.state.current_step if step is None else step
        offset = offset_for_step(self.state.per_step, step)
        if offset > self.state.total_rows:
            return []

        batch: list[SourceRecord] = []
        i = 1
        for index, record in enumerate(self.rows):
            if index + 1 < offset:
                continue
            if i >= self.state.per_step:
                break
            batch.append(record)
            i += 1
        return batch

    def process_step(self, handler: RowHandler) -> bool:
        """
        Назначение:
            Обрабатывает текущий шаг и переходит к следующему.

        Выходные данные:
            bool
                True, пока импорт не завершён и во входе есть строки.
        """
        if self.state.offset > self.state.total_rows:
            self.state.done = True

        if self.state.done or not self.rows:
            return False

        for record in self.select_batch():
            handler(record)
            self.state.rows_processed += 1

        self.state.current_step += 1
        return True

    @property
    def last_processed_step(self) -> int:
        return max(self.state.current_step - 1, 0)

    def get_percentage_complete(self) -> float:
        """
        Назначение:
            Процент выполнения: последний обработанный шаг к числу строк, не более 100.
        """
        total = len(self.rows)
        if total == 0:
            return 0.0
        return min(100.0, self.last_processed_step / total * 100)
