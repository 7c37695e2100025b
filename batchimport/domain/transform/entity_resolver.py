from __future__ import annotations

import threading

from batchimport.domain.error_codes import ErrorCode
from batchimport.domain.exceptions import CatalogCreateError
from batchimport.domain.models import DiagnosticItem, DiagnosticStage
from batchimport.domain.payments.models import CatalogEntry, Operator
from batchimport.domain.ports.catalog import CatalogRepositoryProtocol

# Общий для процесса: lookup-or-create по одному названию не должен идти параллельно.
_CATALOG_LOCK = threading.Lock()


class CatalogEntityResolver:
    """
    Назначение/ответственность:
        Находит позицию каталога по точному названию или создаёт минимальную
        позицию от имени текущего оператора.

    Инварианты:
        - Поиск и создание выполняются под одной блокировкой; репозиторий
          дополнительно гарантирует уникальность названия.
        - Сбой создания не возбуждается наружу: позиция пропускается с предупреждением.
        - created_count считает только реальные вставки; позиция, найденная
          через конфликт уникальности, созданной не считается.
    """

    def __init__(
        self,
        catalog: CatalogRepositoryProtocol,
        operator: Operator,
        lock: threading.Lock | None = None,
    ) -> None:
        self.catalog = catalog
        self.operator = operator
        self.lock = lock or _CATALOG_LOCK
        self.created_count = 0

    def resolve(self, title: object, warnings: list[DiagnosticItem] | None = None) -> CatalogEntry | None:
        if not isinstance(title, str) or not title.strip():
            return None
        with self.lock:
            entry = self.catalog.find_by_title(title)
            if entry is not None:
                return entry
            try:
                entry, created = self.catalog.get_or_create(title, self.operator.user_id)
            except CatalogCreateError as exc:
                if warnings is not None:
                    warnings.append(
                        DiagnosticItem(
                            stage=DiagnosticStage.RESOLVE,
                            code=ErrorCode.CATALOG_CREATE_FAILED.value,
                            field="downloads",
                            message=str(exc),
                        )
                    )
                return None
        if created:
            self.created_count += 1
        return entry

    def forget_created_since(self, mark: int) -> None:
        """
        Назначение:
            Откатывает счётчик созданных позиций к отметке (транзакция строки откатилась).
        """
        self.created_count = min(self.created_count, mark)
