from __future__ import annotations

from datetime import datetime, timezone


def getNowIso() -> str:
    """
    Назначение:
        Возвращает текущее время в ISO 8601 с timezone.

    Выходные данные:
        str
            Например: 2026-01-11T18:22:10+01:00
    """
    return datetime.now().astimezone().isoformat()


def getDurationMs(startMonotonic: float, endMonotonic: float) -> int:
    """
    Назначение:
        Считает длительность в миллисекундах по monotonic timestamps.
    """
    return int((endMonotonic - startMonotonic) * 1000)


class SystemClock:
    """
    Назначение/ответственность:
        Источник текущего времени для коэрсии дат и журналов статусов.
    """

    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


class FixedClock:
    """
    Назначение:
        Часы с зафиксированным моментом (тесты, воспроизводимые прогоны).
    """

    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def now(self) -> datetime:
        return self.moment
