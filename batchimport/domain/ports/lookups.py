from __future__ import annotations

from typing import Protocol, runtime_checkable

from batchimport.domain.payments.models import Customer, User


@runtime_checkable
class CustomerLookupProtocol(Protocol):
    """
    Назначение:
        Абстракция для проверки существования покупателя при сборке платежа.

    Контракт:
        - get_customer_by_id(customer_id: int) -> Customer | None
            Возвращает покупателя или None, если не найдено.
    """

    def get_customer_by_id(self, customer_id: int) -> Customer | None: ...


@runtime_checkable
class UserLookupProtocol(Protocol):
    """
    Назначение:
        Абстракция для поиска учётной записи пользователя по id/e-mail/логину.
    """

    def get_user_by_id(self, user_id: int) -> User | None: ...

    def get_user_by_email(self, email: str) -> User | None: ...

    def get_user_by_login(self, login: str) -> User | None: ...


__all__ = ["CustomerLookupProtocol", "UserLookupProtocol"]
