from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator


class SqliteEngine:
    """
    Назначение/ответственность:
        Тонкая обёртка над sqlite3.Connection с единым API для SQL-операций.

    Поведение:
        - transaction() допускает вложенность: внешний уровень BEGIN/COMMIT,
          вложенные уровни через SAVEPOINT.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._depth = 0

    def execute(self, sql: str, params: tuple | dict | None = None) -> sqlite3.Cursor:
        if params is None:
            return self.conn.execute(sql)
        return self.conn.execute(sql, params)

    def insert(self, sql: str, params: tuple | dict) -> int:
        cur = self.execute(sql, params)
        return int(cur.lastrowid)

    def fetchone(self, sql: str, params: tuple | dict | None = None) -> sqlite3.Row | None:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple | dict | None = None) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._depth > 0:
            name = f"sp_{self._depth}"
            self.conn.execute(f"SAVEPOINT {name}")
            self._depth += 1
            try:
                yield
                self.conn.execute(f"RELEASE SAVEPOINT {name}")
            except Exception:
                self.conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
                self.conn.execute(f"RELEASE SAVEPOINT {name}")
                raise
            finally:
                self._depth -= 1
            return

        self.conn.execute("BEGIN IMMEDIATE")
        self._depth = 1
        try:
            yield
            self.conn.execute("COMMIT")
        except Exception:
            self.conn.execute("ROLLBACK")
            raise
        finally:
            self._depth = 0
