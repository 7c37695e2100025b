from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from batchimport.domain.importing.state import ImportState


@dataclass(frozen=True)
class StoredImport:
    """
    Назначение:
        Сохранённый импорт: состояние планировщика + всё, что нужно для возобновления.
    """

    import_id: str
    source_path: str
    mapping: dict[str, str]
    state: ImportState


class ImportStateRepositoryProtocol(Protocol):
    def save(self, stored: StoredImport) -> None: ...

    def load(self, import_id: str) -> StoredImport | None: ...

    def delete(self, import_id: str) -> bool: ...
