from __future__ import annotations

import sqlite3
from pathlib import Path


def getStoreDbPath(storeDir: str) -> str:
    """
    Возвращает путь к файлу хранилища в указанном каталоге.
    """
    return str(Path(storeDir) / "batchimport.sqlite3")


def openStoreDb(dbPath: str) -> sqlite3.Connection:
    """
    Открывает/создаёт SQLite БД с нужными PRAGMA/timeout.
    Транзакциями управляет SqliteEngine (autocommit-режим соединения).
    """
    Path(dbPath).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(dbPath, timeout=5.0, isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA busy_timeout = 5000")
    return conn
