from __future__ import annotations

from dataclasses import dataclass

from batchimport.domain.ports.runtime import ClockProtocol
from batchimport.infra.store.catalog_repository import SqliteCatalogRepository
from batchimport.infra.store.db import getStoreDbPath, openStoreDb
from batchimport.infra.store.import_state_repository import SqliteImportStateRepository
from batchimport.infra.store.meta_repository import SqlitePaymentMetaRepository
from batchimport.infra.store.payment_repository import SqlitePaymentStore
from batchimport.infra.store.people_repository import SqliteCustomerRepository, SqliteUserRepository
from batchimport.infra.store.schema import ensure_schema
from batchimport.infra.store.sqlite_engine import SqliteEngine


@dataclass
class StoreBundle:
    """
    Назначение:
        Набор репозиториев поверх одного соединения SQLite.
    """

    engine: SqliteEngine
    catalog: SqliteCatalogRepository
    customers: SqliteCustomerRepository
    users: SqliteUserRepository
    payments: SqlitePaymentStore
    meta: SqlitePaymentMetaRepository
    imports: SqliteImportStateRepository

    def close(self) -> None:
        self.engine.conn.close()


def openStore(storeDir: str, clock: ClockProtocol) -> StoreBundle:
    """
    Назначение:
        Открывает хранилище в каталоге storeDir, создаёт схему и собирает репозитории.

    Поведение:
        - sqlite3.Error при открытии/миграции пробрасывается вызывающему.
    """
    conn = openStoreDb(getStoreDbPath(storeDir))
    engine = SqliteEngine(conn)
    try:
        ensure_schema(engine)
    except Exception:
        conn.close()
        raise
    catalog = SqliteCatalogRepository(engine)
    return StoreBundle(
        engine=engine,
        catalog=catalog,
        customers=SqliteCustomerRepository(engine),
        users=SqliteUserRepository(engine),
        payments=SqlitePaymentStore(engine, catalog, clock),
        meta=SqlitePaymentMetaRepository(engine),
        imports=SqliteImportStateRepository(engine),
    )
