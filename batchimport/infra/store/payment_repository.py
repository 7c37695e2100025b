from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from decimal import Decimal

from batchimport.domain.payments.models import COMPLETE_STATUSES, LineItem, Payment
from batchimport.domain.ports.payments import PaymentStoreProtocol
from batchimport.domain.ports.runtime import ClockProtocol
from batchimport.infra.store.catalog_repository import SqliteCatalogRepository
from batchimport.infra.store.sqlite_engine import SqliteEngine

NOTIFICATION_KINDS = ("purchase_receipt", "admin_sale_notice")

_SCALAR_COLUMNS = (
    "status",
    "total",
    "tax",
    "subtotal",
    "items_total",
    "currency",
    "date",
    "mode",
    "gateway",
    "number",
    "email",
    "first_name",
    "last_name",
    "customer_id",
    "user_id",
    "discounts",
    "transaction_id",
    "ip",
    "parent_payment_id",
    "address_json",
)


class SqlitePaymentStore(PaymentStoreProtocol):
    """
    Назначение/ответственность:
        SQLite хранилище платежей и их позиций.

    Поведение:
        - Первое сохранение (payment.id is None) создаёт запись и только журналирует
          начальный статус: побочные эффекты смены статуса не выполняются.
        - Повторное сохранение со сменой статуса пишет журнал статусов; переход
          в завершённый статус увеличивает sales_count позиций каталога и, если
          не suppress_side_effects, ставит уведомления в outbox.
    """

    def __init__(self, engine: SqliteEngine, catalog: SqliteCatalogRepository, clock: ClockProtocol):
        self.engine = engine
        self.catalog = catalog
        self.clock = clock

    def save(self, payment: Payment, *, suppress_side_effects: bool = False) -> int:
        values = _to_row(payment)
        with self.engine.transaction():
            if payment.id is None:
                columns = ", ".join(_SCALAR_COLUMNS)
                placeholders = ", ".join("?" for _ in _SCALAR_COLUMNS)
                payment.id = self.engine.insert(
                    f"INSERT INTO payments({columns}) VALUES ({placeholders})",
                    tuple(values[c] for c in _SCALAR_COLUMNS),
                )
                self._log_status(payment.id, None, payment.status)
            else:
                row = self.engine.fetchone("SELECT status FROM payments WHERE id = ?", (payment.id,))
                if row is None:
                    raise LookupError(f"Payment not found: {payment.id}")
                old_status = row["status"]
                assignments = ", ".join(f"{c} = ?" for c in _SCALAR_COLUMNS)
                self.engine.execute(
                    f"UPDATE payments SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (*(values[c] for c in _SCALAR_COLUMNS), payment.id),
                )
                if old_status != payment.status:
                    self._on_status_change(payment, old_status, suppress_side_effects)
            self._replace_items(payment)
        return payment.id

    def get(self, payment_id: int) -> Payment | None:
        row = self.engine.fetchone("SELECT * FROM payments WHERE id = ?", (payment_id,))
        if row is None:
            return None
        items = self.engine.fetchall(
            """
            SELECT product_id, product_title, unit_price, tax_amount
            FROM payment_items WHERE payment_id = ? ORDER BY position
            """,
            (payment_id,),
        )
        return _from_row(row, items)

    def count(self) -> int:
        row = self.engine.fetchone("SELECT COUNT(*) FROM payments")
        return int(row[0]) if row else 0

    def list_ids(self) -> list[int]:
        return [int(row[0]) for row in self.engine.fetchall("SELECT id FROM payments ORDER BY id")]

    def status_log(self, payment_id: int) -> list[tuple[str | None, str]]:
        rows = self.engine.fetchall(
            "SELECT old_status, new_status FROM payment_status_log WHERE payment_id = ? ORDER BY id",
            (payment_id,),
        )
        return [(row["old_status"], row["new_status"]) for row in rows]

    def notifications(self, payment_id: int) -> list[str]:
        rows = self.engine.fetchall(
            "SELECT kind FROM notifications WHERE payment_id = ? ORDER BY id",
            (payment_id,),
        )
        return [row["kind"] for row in rows]

    def _on_status_change(self, payment: Payment, old_status: str | None, suppress_side_effects: bool) -> None:
        self._log_status(payment.id, old_status, payment.status)
        if payment.status not in COMPLETE_STATUSES or old_status in COMPLETE_STATUSES:
            return
        for item in payment.line_items:
            self.catalog.increment_sales(item.product_id)
        if suppress_side_effects:
            return
        now = self.clock.now().isoformat(sep=" ")
        for kind in NOTIFICATION_KINDS:
            self.engine.execute(
                "INSERT INTO notifications(payment_id, kind, created_at) VALUES (?, ?, ?)",
                (payment.id, kind, now),
            )

    def _log_status(self, payment_id: int | None, old_status: str | None, new_status: str) -> None:
        self.engine.execute(
            "INSERT INTO payment_status_log(payment_id, old_status, new_status, changed_at) VALUES (?, ?, ?, ?)",
            (payment_id, old_status, new_status, self.clock.now().isoformat(sep=" ")),
        )

    def _replace_items(self, payment: Payment) -> None:
        self.engine.execute("DELETE FROM payment_items WHERE payment_id = ?", (payment.id,))
        for position, item in enumerate(payment.line_items):
            self.engine.execute(
                """
                INSERT INTO payment_items(payment_id, position, product_id, product_title, unit_price, tax_amount)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (payment.id, position, item.product_id, item.product_title, str(item.unit_price), str(item.tax_amount)),
            )


def _to_row(payment: Payment) -> dict[str, object]:
    return {
        "status": payment.status,
        "total": str(payment.total),
        "tax": str(payment.tax),
        "subtotal": str(payment.subtotal),
        "items_total": str(payment.line_items_total),
        "currency": payment.currency,
        "date": payment.date.isoformat(sep=" ") if payment.date else None,
        "mode": payment.mode,
        "gateway": payment.gateway,
        "number": payment.number,
        "email": payment.email,
        "first_name": payment.first_name,
        "last_name": payment.last_name,
        "customer_id": payment.customer_id,
        "user_id": payment.user_id,
        "discounts": payment.discounts,
        "transaction_id": payment.transaction_id,
        "ip": payment.ip,
        "parent_payment_id": payment.parent_payment_id,
        "address_json": json.dumps(payment.address, ensure_ascii=False, sort_keys=True),
    }


def _from_row(row: sqlite3.Row, items: list[sqlite3.Row]) -> Payment:
    return Payment(
        id=int(row["id"]),
        status=row["status"],
        total=Decimal(row["total"]),
        tax=Decimal(row["tax"]),
        subtotal=Decimal(row["subtotal"]),
        currency=row["currency"],
        date=datetime.fromisoformat(row["date"]) if row["date"] else None,
        mode=row["mode"],
        gateway=row["gateway"],
        number=row["number"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        customer_id=row["customer_id"],
        user_id=row["user_id"],
        discounts=row["discounts"],
        transaction_id=row["transaction_id"],
        ip=row["ip"],
        parent_payment_id=row["parent_payment_id"],
        line_items=[
            LineItem(
                product_id=int(item["product_id"]),
                product_title=item["product_title"],
                unit_price=Decimal(item["unit_price"]),
                tax_amount=Decimal(item["tax_amount"]),
            )
            for item in items
        ],
        address=json.loads(row["address_json"]),
    )
