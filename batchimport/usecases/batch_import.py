from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import Callable, ContextManager, Sequence

from batchimport.domain.error_codes import ErrorCode
from batchimport.domain.exceptions import PermissionDeniedError
from batchimport.domain.importing.scheduler import StepScheduler
from batchimport.domain.importing.state import ImportState
from batchimport.domain.models import DiagnosticItem, DiagnosticStage, RowRef
from batchimport.domain.payments.models import Operator, Payment
from batchimport.domain.reporting.collector import ReportCollector
from batchimport.domain.transform.record_builder import PaymentRecordBuilder
from batchimport.domain.transform.result import TransformResult
from batchimport.domain.transform.source_record import SourceRecord
from batchimport.infra.logging.setup import bindImportContext, logEvent

IMPORT_CAPABILITY = "import_payments"


class BatchPaymentImport:
    """
    Назначение/ответственность:
        Пошаговый импорт платежей: проверка прав, выбор пакета планировщиком,
        сборка платежа на каждую строку, учёт результатов в отчёте.

    Контракт:
        - process_step() -> bool: есть ли ещё пакеты.
        - get_percentage_complete() -> float.
        - PermissionDeniedError возбуждается до обработки первой строки.
        - Ошибка одной строки не прерывает пакет; строка сохраняется целиком
          или не сохраняется вовсе (transaction на строку).
    """

    def __init__(
        self,
        rows: Sequence[SourceRecord],
        state: ImportState,
        builder: PaymentRecordBuilder,
        operator: Operator,
        logger: logging.Logger,
        run_id: str,
        report: ReportCollector | None = None,
        import_id: str | None = None,
        transaction: Callable[[], ContextManager[None]] | None = None,
    ) -> None:
        self.state = state
        self.scheduler = StepScheduler(state, rows)
        self.builder = builder
        self.operator = operator
        self.logger = logger
        self.run_id = run_id
        self.report = report
        self.import_id = import_id
        self.transaction = transaction or nullcontext
        self.last_results: list[TransformResult[Payment]] = []
        self.step: int | None = None

    def can_import(self) -> bool:
        return self.operator.can(IMPORT_CAPABILITY)

    def process_step(self) -> bool:
        if not self.can_import():
            raise PermissionDeniedError(operator_id=self.operator.user_id, capability=IMPORT_CAPABILITY)

        self.step = self.state.current_step
        self.last_results = []
        bindImportContext(self.logger, self.import_id, self.step)
        if self.report is not None:
            self.report.step_started(self.step)
        more = self.scheduler.process_step(self._import_row)
        if self.report is not None:
            self.report.step_finished(more)
        self._log(
            logging.INFO,
            f"step finished rows={len(self.last_results)} more={more} done={self.state.done} "
            f"percentage={self.get_percentage_complete():.2f}",
        )
        return more

    def get_percentage_complete(self) -> float:
        return self.scheduler.get_percentage_complete()

    def _import_row(self, record: SourceRecord) -> None:
        resolver = self.builder.resolver
        created_mark = resolver.created_count
        try:
            with self.transaction():
                result = self.builder.build(record)
        except Exception as exc:  # noqa: BLE001
            # позиции каталога, созданные в откатившейся транзакции, не существуют
            resolver.forget_created_since(created_mark)
            result = TransformResult(
                record=record,
                row=None,
                row_ref=RowRef(line_no=record.line_no, row_id=record.record_id),
                errors=[
                    DiagnosticItem(
                        stage=DiagnosticStage.PERSIST,
                        code=ErrorCode.STORE_ERROR.value,
                        field=None,
                        message=str(exc),
                    )
                ],
            )
        self.last_results.append(result)
        self._record(result, resolver.created_count - created_mark)

    def _record(self, result: TransformResult[Payment], catalog_created: int) -> None:
        payment = result.row
        self._log(
            logging.INFO if result.ok else logging.ERROR,
            f"{result.record.record_id} status={'OK' if result.ok else 'FAILED'} "
            f"payment_id={payment.id if payment else None} "
            f"warnings={len(result.warnings)} errors={len(result.errors)}",
        )
        for issue in result.issues:
            self._log(logging.WARNING, f"{result.record.record_id} code={issue.code} field={issue.field} msg={issue.message}")
        if self.report is None:
            return
        self.report.add_op("payments.create", ok=1 if result.ok else 0, failed=0 if result.ok else 1)
        if catalog_created:
            self.report.add_op("catalog.create", ok=catalog_created)
        self.report.add_row(result, payload=_payment_payload(payment) if payment else None)

    def _log(self, level: int, message: str) -> None:
        logEvent(self.logger, level, self.run_id, "import", message, importId=self.import_id, step=self.step)


def _payment_payload(payment: Payment) -> dict:
    return {
        "payment_id": payment.id,
        "status": payment.status,
        "total": str(payment.total),
        "tax": str(payment.tax),
        "subtotal": str(payment.subtotal),
        "currency": payment.currency,
        "gateway": payment.gateway,
        "customer_id": payment.customer_id,
        "user_id": payment.user_id,
        "line_items": [
            {"product_id": item.product_id, "unit_price": str(item.unit_price), "tax": str(item.tax_amount)}
            for item in payment.line_items
        ],
    }
