from __future__ import annotations

from typing import Any, Protocol

from batchimport.domain.payments.models import Payment


class PaymentStoreProtocol(Protocol):
    """
    Назначение/ответственность:
        Хранилище платежей.

    Контракт:
        - save(payment, suppress_side_effects) присваивает payment.id при первом вызове,
          сохраняет позиции и выполняет побочные эффекты смены статуса.
        - suppress_side_effects=True отключает уведомления (чеки, письма администратору),
          но не статистику.
    """

    def save(self, payment: Payment, *, suppress_side_effects: bool = False) -> int: ...

    def get(self, payment_id: int) -> Payment | None: ...


class PaymentMetaProtocol(Protocol):
    """
    Назначение/ответственность:
        Key/value метаданные платежа.
    """

    def get_meta(self, payment_id: int, meta_key: str = "", single: bool = False) -> Any: ...

    def add_meta(self, payment_id: int, meta_key: str, meta_value: Any, unique: bool = False) -> int | None: ...

    def update_meta(self, payment_id: int, meta_key: str, meta_value: Any, prev_value: Any = "") -> bool: ...

    def delete_meta(self, payment_id: int, meta_key: str, meta_value: Any = "") -> bool: ...
