from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Sequence

from batchimport.config.config import Settings
from batchimport.domain.exceptions import ImportStateNotFoundError
from batchimport.domain.importing.state import ImportState
from batchimport.domain.payments.gateways import GatewayRegistry
from batchimport.domain.payments.models import Operator
from batchimport.domain.ports.import_state import StoredImport
from batchimport.domain.ports.runtime import ClockProtocol
from batchimport.domain.reporting.collector import ReportCollector
from batchimport.domain.transform.coercion import ValueCoercer
from batchimport.domain.transform.entity_resolver import CatalogEntityResolver
from batchimport.domain.transform.field_mapping import FieldMapping
from batchimport.domain.transform.record_builder import BuilderConfig, PaymentRecordBuilder
from batchimport.domain.transform.source_record import SourceRecord
from batchimport.infra.logging.setup import bindImportContext, logEvent
from batchimport.infra.sources.csv_reader import CsvRecordSource
from batchimport.infra.store.bundle import StoreBundle
from batchimport.usecases.batch_import import BatchPaymentImport


@dataclass(frozen=True)
class StepOutcome:
    """
    Назначение:
        Итог вызова шага (или серии шагов) импорта.
    """

    import_id: str
    last_step: int
    steps_run: int
    more: bool
    percentage: float
    state: ImportState


def new_import_id() -> str:
    return f"imp-{uuid.uuid4().hex[:12]}"


class ImportService:
    """
    Назначение/ответственность:
        Use-case импорта платежей из CSV поверх хранилища:
        start -> step* -> done, с сохранением состояния между вызовами.
    """

    def __init__(
        self,
        store: StoreBundle,
        settings: Settings,
        clock: ClockProtocol,
        logger: logging.Logger,
        run_id: str,
        report: ReportCollector | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.clock = clock
        self.logger = logger
        self.run_id = run_id
        self.report = report
        self.operator = Operator(
            user_id=settings.operator_id,
            capabilities=frozenset(settings.operator_capabilities),
        )
        self.gateways = GatewayRegistry(settings.gateways)

    def start(self, csv_path: str, mapping: FieldMapping, import_id: str | None = None) -> StoredImport:
        source = CsvRecordSource(csv_path)
        columns = source.columns()
        missing = mapping.missing_columns(columns)
        if missing:
            logEvent(
                self.logger,
                logging.WARNING,
                self.run_id,
                "csv",
                f"Mapped columns not found in CSV header: {', '.join(missing)}",
            )
        rows = source.read_all()
        stored = StoredImport(
            import_id=import_id or new_import_id(),
            source_path=csv_path,
            mapping=mapping.as_dict(),
            state=ImportState(per_step=self.settings.per_step, total_rows=len(rows)),
        )
        self.store.imports.save(stored)
        self._attach(stored)
        logEvent(
            self.logger,
            logging.INFO,
            self.run_id,
            "import",
            f"import started rows={len(rows)} per_step={self.settings.per_step}",
            importId=stored.import_id,
        )
        return stored

    def status(self, import_id: str) -> StoredImport:
        stored = self.store.imports.load(import_id)
        if stored is None:
            raise ImportStateNotFoundError(f"Import not found: {import_id}")
        self._attach(stored)
        return stored

    def reset(self, import_id: str) -> bool:
        if self.report is not None:
            self.report.meta.import_id = import_id
        bindImportContext(self.logger, import_id)
        deleted = self.store.imports.delete(import_id)
        logEvent(self.logger, logging.INFO, self.run_id, "import", f"import reset deleted={deleted}", importId=import_id)
        return deleted

    def step(self, import_id: str) -> StepOutcome:
        return self.run(import_id, max_steps=1)

    def run(self, import_id: str, max_steps: int | None = None) -> StepOutcome:
        """
        Назначение:
            Выполняет шаги, пока есть пакеты (или до max_steps).

        Поведение:
            - Состояние сохраняется после каждого шага: остановка между шагами
              не портит прогресс.
        """
        stored = self.status(import_id)
        rows = CsvRecordSource(stored.source_path).read_all()
        importer = self.build_importer(stored, rows)

        steps_run = 0
        last_step = stored.state.current_step
        more = True
        while max_steps is None or steps_run < max_steps:
            last_step = stored.state.current_step
            more = importer.process_step()
            self.store.imports.save(stored)
            steps_run += 1
            if not more:
                break
        bindImportContext(self.logger, import_id)

        return StepOutcome(
            import_id=import_id,
            last_step=last_step,
            steps_run=steps_run,
            more=more,
            percentage=importer.get_percentage_complete(),
            state=stored.state,
        )

    def build_importer(self, stored: StoredImport, rows: Sequence[SourceRecord]) -> BatchPaymentImport:
        coercer = ValueCoercer(
            clock=self.clock,
            gateways=self.gateways,
            users=self.store.users,
            test_mode=self.settings.test_mode,
            thousands_sep=self.settings.thousands_sep,
            decimal_sep=self.settings.decimal_sep,
        )
        builder = PaymentRecordBuilder(
            mapping=FieldMapping.from_dict(stored.mapping),
            coercer=coercer,
            resolver=CatalogEntityResolver(self.store.catalog, self.operator),
            customers=self.store.customers,
            store=self.store.payments,
            meta=self.store.meta,
            config=BuilderConfig(
                suppress_side_effects=self.settings.suppress_side_effects,
                import_id=stored.import_id,
            ),
        )
        return BatchPaymentImport(
            rows=rows,
            state=stored.state,
            builder=builder,
            operator=self.operator,
            logger=self.logger,
            run_id=self.run_id,
            report=self.report,
            import_id=stored.import_id,
            transaction=self.store.engine.transaction,
        )

    def _attach(self, stored: StoredImport) -> None:
        """
        Назначение:
            Привязывает импорт к отчёту и к контексту лога команды.
        """
        if self.report is not None:
            self.report.meta.import_id = stored.import_id
            self.report.meta.csv_path = stored.source_path
            self.report.meta.per_step = stored.state.per_step
        bindImportContext(self.logger, stored.import_id)
