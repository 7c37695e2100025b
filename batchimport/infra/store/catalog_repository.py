from __future__ import annotations

import sqlite3
from decimal import Decimal

from batchimport.domain.exceptions import CatalogCreateError
from batchimport.domain.payments.models import ZERO, CatalogEntry
from batchimport.domain.ports.catalog import CatalogRepositoryProtocol
from batchimport.infra.store.sqlite_engine import SqliteEngine

_COLUMNS = "id, title, price, author_id, sales_count"


class SqliteCatalogRepository(CatalogRepositoryProtocol):
    """
    Назначение/ответственность:
        SQLite реализация каталога товаров.

    Инварианты:
        - title уникален (UNIQUE); get_or_create при конфликте возвращает существующую
          позицию с created=False.
    """

    def __init__(self, engine: SqliteEngine):
        self.engine = engine

    def find_by_title(self, title: str) -> CatalogEntry | None:
        row = self.engine.fetchone(f"SELECT {_COLUMNS} FROM catalog WHERE title = ?", (title,))
        return _to_entry(row) if row else None

    def get_or_create(self, title: str, author_id: int | None, price: Decimal = ZERO) -> tuple[CatalogEntry, bool]:
        try:
            with self.engine.transaction():
                cur = self.engine.execute(
                    """
                    INSERT INTO catalog(title, price, author_id)
                    VALUES (?, ?, ?)
                    ON CONFLICT(title) DO NOTHING
                    """,
                    (title, str(price), author_id),
                )
                entry = self.find_by_title(title)
        except sqlite3.Error as exc:
            raise CatalogCreateError(title=title, reason=str(exc)) from exc
        if entry is None:
            raise CatalogCreateError(title=title, reason="entry missing after insert")
        return entry, cur.rowcount == 1

    def upsert_price(self, title: str, price: Decimal, author_id: int | None = None) -> CatalogEntry | None:
        with self.engine.transaction():
            self.engine.execute(
                """
                INSERT INTO catalog(title, price, author_id)
                VALUES (?, ?, ?)
                ON CONFLICT(title) DO UPDATE SET price=excluded.price
                """,
                (title, str(price), author_id),
            )
        return self.find_by_title(title)

    def increment_sales(self, product_id: int, quantity: int = 1) -> None:
        self.engine.execute(
            "UPDATE catalog SET sales_count = sales_count + ? WHERE id = ?",
            (quantity, product_id),
        )

    def count(self) -> int:
        row = self.engine.fetchone("SELECT COUNT(*) FROM catalog")
        return int(row[0]) if row else 0


def _to_entry(row: sqlite3.Row) -> CatalogEntry:
    return CatalogEntry(
        id=int(row["id"]),
        title=row["title"],
        price=Decimal(row["price"]),
        author_id=row["author_id"],
        sales_count=int(row["sales_count"]),
    )
