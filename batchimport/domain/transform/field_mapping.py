from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

PAYMENT_FIELDS: tuple[str, ...] = (
    "total",
    "subtotal",
    "tax",
    "number",
    "mode",
    "gateway",
    "date",
    "status",
    "email",
    "first_name",
    "last_name",
    "customer_id",
    "user_id",
    "discounts",
    "transaction_id",
    "ip",
    "currency",
    "parent_payment_id",
    "downloads",
    "line1",
    "line2",
    "city",
    "state",
    "zip",
    "country",
)


@dataclass(frozen=True)
class FieldMapping:
    """
    Назначение:
        Соответствие канонических полей платежа колонкам источника.

    Инварианты:
        - Пустая строка в маппинге эквивалентна отсутствию маппинга.
        - Для не смапленного поля column_for всегда возвращает None,
          независимо от содержимого строки.
    """

    columns: Mapping[str, str]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, allowed: Iterable[str] = PAYMENT_FIELDS) -> "FieldMapping":
        allowed_set = set(allowed)
        columns: dict[str, str] = {}
        for field_name, column in (data or {}).items():
            if field_name not in allowed_set:
                raise ValueError(f"Unknown mapping field: {field_name}")
            columns[field_name] = "" if column is None else str(column).strip()
        return cls(columns=MappingProxyType(columns))

    def column_for(self, field_name: str) -> str | None:
        column = self.columns.get(field_name)
        if not column:
            return None
        return column

    def value_for(self, values: Mapping[str, str | None], field_name: str) -> str | None:
        column = self.column_for(field_name)
        if column is None:
            return None
        raw = values.get(column)
        if raw is None:
            return None
        raw = raw.strip()
        return raw or None

    def is_mapped(self, field_name: str) -> bool:
        return self.column_for(field_name) is not None

    def mapped_fields(self) -> list[str]:
        return [name for name in self.columns if self.is_mapped(name)]

    def missing_columns(self, available: Iterable[str]) -> list[str]:
        available_set = set(available)
        return [column for name, column in self.columns.items() if column and column not in available_set]

    def as_dict(self) -> dict[str, str]:
        return {name: column for name, column in self.columns.items() if column}


def parseMapOptions(options: Iterable[str] | None) -> dict[str, str]:
    """
    Назначение:
        Разбирает CLI-опции вида field=column.

    Выходные данные:
        dict[str, str]

    Поведение:
        - Опция без '=' или с пустым именем поля -> ValueError.
        - Пустая колонка (field=) явно снимает маппинг поля.
    """
    result: dict[str, str] = {}
    for option in options or []:
        if "=" not in option:
            raise ValueError(f"Invalid --map value (expected field=column): {option}")
        field_name, column = option.split("=", 1)
        field_name = field_name.strip()
        if not field_name:
            raise ValueError(f"Invalid --map value (empty field): {option}")
        result[field_name] = column.strip()
    return result
