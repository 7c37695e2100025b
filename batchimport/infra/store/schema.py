from __future__ import annotations

from batchimport.infra.store.sqlite_engine import SqliteEngine

SCHEMA_VERSION = 1

_TABLES: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS catalog (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL UNIQUE,
        price TEXT NOT NULL DEFAULT '0.00',
        author_id INTEGER,
        sales_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS customers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE,
        name TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        login TEXT NOT NULL UNIQUE,
        email TEXT UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS payments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        status TEXT NOT NULL,
        total TEXT NOT NULL,
        tax TEXT NOT NULL,
        subtotal TEXT NOT NULL,
        items_total TEXT NOT NULL,
        currency TEXT,
        date TEXT,
        mode TEXT,
        gateway TEXT,
        number TEXT,
        email TEXT,
        first_name TEXT,
        last_name TEXT,
        customer_id INTEGER,
        user_id INTEGER,
        discounts TEXT,
        transaction_id TEXT,
        ip TEXT,
        parent_payment_id INTEGER,
        address_json TEXT NOT NULL,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS payment_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        payment_id INTEGER NOT NULL REFERENCES payments(id) ON DELETE CASCADE,
        position INTEGER NOT NULL,
        product_id INTEGER NOT NULL,
        product_title TEXT NOT NULL,
        unit_price TEXT NOT NULL,
        tax_amount TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS payment_meta (
        meta_id INTEGER PRIMARY KEY AUTOINCREMENT,
        payment_id INTEGER NOT NULL REFERENCES payments(id) ON DELETE CASCADE,
        meta_key TEXT NOT NULL,
        meta_value TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_payment_meta_key ON payment_meta(payment_id, meta_key)",
    """
    CREATE TABLE IF NOT EXISTS payment_status_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        payment_id INTEGER NOT NULL REFERENCES payments(id) ON DELETE CASCADE,
        old_status TEXT,
        new_status TEXT NOT NULL,
        changed_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notifications (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        payment_id INTEGER NOT NULL REFERENCES payments(id) ON DELETE CASCADE,
        kind TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS imports (
        import_id TEXT PRIMARY KEY,
        source_path TEXT NOT NULL,
        mapping_json TEXT NOT NULL,
        per_step INTEGER NOT NULL,
        current_step INTEGER NOT NULL,
        total_rows INTEGER NOT NULL,
        done INTEGER NOT NULL DEFAULT 0,
        rows_processed INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
)


def ensure_schema(engine: SqliteEngine) -> int:
    """
    Назначение:
        Создать схему хранилища (meta + таблицы) и вернуть версию схемы.
    """
    with engine.transaction():
        engine.execute(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT
            )
            """
        )
        current_version = get_schema_version(engine) or 0
        if current_version > SCHEMA_VERSION:
            raise RuntimeError(f"Store schema version {current_version} is newer than supported {SCHEMA_VERSION}")
        for ddl in _TABLES:
            engine.execute(ddl)
        if current_version < SCHEMA_VERSION:
            engine.execute(
                """
                INSERT INTO meta(key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                ("schema_version", str(SCHEMA_VERSION)),
            )
    return SCHEMA_VERSION


def get_schema_version(engine: SqliteEngine) -> int | None:
    row = engine.fetchone("SELECT value FROM meta WHERE key='schema_version'")
    if row is None:
        return None
    try:
        return int(row[0])
    except (TypeError, ValueError):
        return None
