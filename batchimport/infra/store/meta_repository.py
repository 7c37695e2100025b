from __future__ import annotations

import json
from typing import Any

from batchimport.domain.ports.payments import PaymentMetaProtocol
from batchimport.infra.store.sqlite_engine import SqliteEngine


def sanitize_object_id(object_id: Any) -> int | None:
    """
    Назначение:
        Проверяет, что id объекта - положительное целое.

    Выходные данные:
        int | None
            Нормализованный id либо None для нечисловых, отрицательных и нулевых значений.
    """
    if isinstance(object_id, bool):
        return None
    if isinstance(object_id, int):
        value = object_id
    elif isinstance(object_id, str) and object_id.strip().lstrip("-").isdigit():
        value = int(object_id.strip())
    else:
        return None
    return value if value > 0 else None


class SqlitePaymentMetaRepository(PaymentMetaProtocol):
    """
    Назначение/ответственность:
        Key/value метаданные платежей (таблица payment_meta).

    Контракт:
        - Некорректный id или пустой ключ: add -> None, update/delete -> False,
          get -> False.
        - get_meta без ключа возвращает {key: [values]}.
        - Значения хранятся в JSON.
    """

    def __init__(self, engine: SqliteEngine):
        self.engine = engine

    def get_meta(self, payment_id: Any, meta_key: str = "", single: bool = False) -> Any:
        object_id = sanitize_object_id(payment_id)
        if object_id is None:
            return False
        if not meta_key:
            rows = self.engine.fetchall(
                "SELECT meta_key, meta_value FROM payment_meta WHERE payment_id = ? ORDER BY meta_id",
                (object_id,),
            )
            result: dict[str, list[Any]] = {}
            for row in rows:
                result.setdefault(row["meta_key"], []).append(_decode(row["meta_value"]))
            return result
        values = self._values(object_id, meta_key)
        if single:
            return values[0] if values else ""
        return values

    def add_meta(self, payment_id: Any, meta_key: str, meta_value: Any, unique: bool = False) -> int | None:
        object_id = sanitize_object_id(payment_id)
        if object_id is None or not meta_key:
            return None
        if unique and self._values(object_id, meta_key):
            return None
        return self.engine.insert(
            "INSERT INTO payment_meta(payment_id, meta_key, meta_value) VALUES (?, ?, ?)",
            (object_id, meta_key, _encode(meta_value)),
        )

    def update_meta(self, payment_id: Any, meta_key: str, meta_value: Any, prev_value: Any = "") -> bool:
        object_id = sanitize_object_id(payment_id)
        if object_id is None or not meta_key:
            return False
        existing = self._values(object_id, meta_key)
        if not existing:
            return self.add_meta(object_id, meta_key, meta_value) is not None
        if prev_value == "" and len(existing) == 1 and existing[0] == meta_value:
            return False
        if prev_value != "":
            cur = self.engine.execute(
                "UPDATE payment_meta SET meta_value = ? WHERE payment_id = ? AND meta_key = ? AND meta_value = ?",
                (_encode(meta_value), object_id, meta_key, _encode(prev_value)),
            )
        else:
            cur = self.engine.execute(
                "UPDATE payment_meta SET meta_value = ? WHERE payment_id = ? AND meta_key = ?",
                (_encode(meta_value), object_id, meta_key),
            )
        return cur.rowcount > 0

    def delete_meta(self, payment_id: Any, meta_key: str, meta_value: Any = "") -> bool:
        object_id = sanitize_object_id(payment_id)
        if object_id is None or not meta_key:
            return False
        if meta_value != "":
            cur = self.engine.execute(
                "DELETE FROM payment_meta WHERE payment_id = ? AND meta_key = ? AND meta_value = ?",
                (object_id, meta_key, _encode(meta_value)),
            )
        else:
            cur = self.engine.execute(
                "DELETE FROM payment_meta WHERE payment_id = ? AND meta_key = ?",
                (object_id, meta_key),
            )
        return cur.rowcount > 0

    def _values(self, object_id: int, meta_key: str) -> list[Any]:
        rows = self.engine.fetchall(
            "SELECT meta_value FROM payment_meta WHERE payment_id = ? AND meta_key = ? ORDER BY meta_id",
            (object_id, meta_key),
        )
        return [_decode(row["meta_value"]) for row in rows]


def _encode(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)


def _decode(value: str | None) -> Any:
    if value is None:
        return None
    return json.loads(value)
