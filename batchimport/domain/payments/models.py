from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

ZERO = Decimal("0.00")

STATUS_PENDING = "pending"
COMPLETE_STATUSES = frozenset({"complete", "publish"})

ADDRESS_FIELDS = ("line1", "line2", "city", "state", "zip", "country")


@dataclass
class LineItem:
    """
    Назначение:
        Позиция платежа. Принадлежит ровно одному Payment.
    """
    product_id: int
    product_title: str
    unit_price: Decimal = ZERO
    tax_amount: Decimal = ZERO


@dataclass
class Payment:
    """
    Назначение:
        Платёж, восстановленный из строки импорта.

    Инварианты:
        - Создаётся в статусе pending; итоговый статус назначается после первого сохранения.
        - id заполняется хранилищем при первом сохранении.
    """
    id: int | None = None
    status: str = STATUS_PENDING
    total: Decimal = ZERO
    tax: Decimal = ZERO
    subtotal: Decimal = ZERO
    currency: str | None = None
    date: datetime | None = None
    mode: str | None = None
    gateway: str | None = None
    number: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    customer_id: int | None = None
    user_id: int | None = None
    discounts: str | None = None
    transaction_id: str | None = None
    ip: str | None = None
    parent_payment_id: int | None = None
    line_items: list[LineItem] = field(default_factory=list)
    address: dict[str, str] = field(default_factory=lambda: {key: "" for key in ADDRESS_FIELDS})

    def add_line_item(self, item: LineItem) -> None:
        self.line_items.append(item)

    @property
    def line_items_total(self) -> Decimal:
        return sum((item.unit_price + item.tax_amount for item in self.line_items), ZERO)


@dataclass(frozen=True)
class CatalogEntry:
    id: int
    title: str
    price: Decimal
    author_id: int | None
    sales_count: int = 0


@dataclass(frozen=True)
class Customer:
    id: int
    email: str | None
    name: str | None


@dataclass(frozen=True)
class User:
    id: int
    login: str
    email: str | None


@dataclass(frozen=True)
class Operator:
    """
    Назначение:
        Идентичность оператора, запускающего импорт.
    """
    user_id: int
    capabilities: frozenset[str] = frozenset()

    def can(self, capability: str) -> bool:
        return capability in self.capabilities


@dataclass(frozen=True)
class GatewayInfo:
    key: str
    admin_label: str
    checkout_label: str
