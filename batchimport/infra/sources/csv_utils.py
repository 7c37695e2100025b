from __future__ import annotations


class CsvFormatError(Exception):
    """
    Назначение:
        Ошибка критического формата CSV (нет заголовка, количество колонок и т.п.).
    """


def parseBlank(value: str | None) -> str | None:
    """
    Назначение:
        Тримит ячейку; пустая или пробельная ячейка становится None.

    Поведение:
        - Пустая ячейка и отсутствующая колонка дальше по пайплайну неразличимы.
        - Текст "null" в любом регистре остаётся значением (фамилия Null и т.п.).
    """
    if value is None:
        return None
    trimmed = value.strip()
    if trimmed == "":
        return None
    return trimmed
