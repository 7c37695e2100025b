from __future__ import annotations

import json

from batchimport.domain.importing.state import ImportState
from batchimport.domain.ports.import_state import ImportStateRepositoryProtocol, StoredImport
from batchimport.infra.store.sqlite_engine import SqliteEngine


class SqliteImportStateRepository(ImportStateRepositoryProtocol):
    """
    Назначение/ответственность:
        Сохранение состояния импорта между вызовами шагов.
    """

    def __init__(self, engine: SqliteEngine):
        self.engine = engine

    def save(self, stored: StoredImport) -> None:
        state = stored.state
        self.engine.execute(
            """
            INSERT INTO imports(import_id, source_path, mapping_json, per_step, current_step,
                                total_rows, done, rows_processed, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(import_id) DO UPDATE SET
                source_path=excluded.source_path,
                mapping_json=excluded.mapping_json,
                per_step=excluded.per_step,
                current_step=excluded.current_step,
                total_rows=excluded.total_rows,
                done=excluded.done,
                rows_processed=excluded.rows_processed,
                updated_at=CURRENT_TIMESTAMP
            """,
            (
                stored.import_id,
                stored.source_path,
                json.dumps(stored.mapping, ensure_ascii=False, sort_keys=True),
                state.per_step,
                state.current_step,
                state.total_rows,
                1 if state.done else 0,
                state.rows_processed,
            ),
        )

    def load(self, import_id: str) -> StoredImport | None:
        row = self.engine.fetchone("SELECT * FROM imports WHERE import_id = ?", (import_id,))
        if row is None:
            return None
        return StoredImport(
            import_id=row["import_id"],
            source_path=row["source_path"],
            mapping=json.loads(row["mapping_json"]),
            state=ImportState(
                per_step=int(row["per_step"]),
                current_step=int(row["current_step"]),
                total_rows=int(row["total_rows"]),
                done=bool(row["done"]),
                rows_processed=int(row["rows_processed"]),
            ),
        )

    def delete(self, import_id: str) -> bool:
        cur = self.engine.execute("DELETE FROM imports WHERE import_id = ?", (import_id,))
        return cur.rowcount > 0
