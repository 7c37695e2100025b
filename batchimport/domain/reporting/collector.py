from __future__ import annotations

from typing import Any, Mapping

from batchimport.common.time import getNowIso
from batchimport.domain.models import DiagnosticItem, DiagnosticStage
from batchimport.domain.reporting.models import ImportReport, ImportSummary, ReportMeta, RowDiagnostic, RowReport
from batchimport.domain.transform.result import TransformResult


class ReportCollector:
    """
    Назначение/ответственность:
        Копит итоги импорта по шагам и строкам для report.json.

    Инварианты:
        - Каждая строка попадает в summary, даже если rows обрезаны по rows_limit.
        - step строки берётся из последнего step_started(), поэтому строки отчёта
          и строки лога одного шага имеют одинаковые importId/step.
    """

    def __init__(self, run_id: str, command: str, started_at: str | None = None) -> None:
        self.meta = ReportMeta(run_id=run_id, command=command, started_at=started_at or getNowIso())
        self.summary = ImportSummary()
        self.rows: list[RowReport] = []
        self.context: dict[str, Any] = {}
        self.status: str | None = None
        self.current_step: int | None = None

    def set_context(self, name: str, value: dict[str, Any]) -> None:
        self.context[name] = value

    def add_op(self, name: str, *, ok: int = 0, failed: int = 0) -> None:
        counters = self.summary.ops.setdefault(name, {"ok": 0, "failed": 0})
        counters["ok"] += ok
        counters["failed"] += failed

    def step_started(self, step: int) -> None:
        if self.meta.first_step is None:
            self.meta.first_step = step
        self.meta.last_step = step
        self.current_step = step

    def step_finished(self, more: bool) -> None:
        # завершающий вызов (more=False) строк не обрабатывает
        if more:
            self.summary.steps += 1

    def add_row(self, result: TransformResult, payload: Mapping[str, Any] | None = None) -> RowReport:
        status = "OK" if result.ok else "FAILED"
        self.summary.rows_total += 1
        if result.ok:
            self.summary.rows_imported += 1
        else:
            self.summary.rows_failed += 1
        if result.warnings:
            self.summary.rows_with_warnings += 1
        for issue in result.errors:
            self._count(issue, "errors_total")
        for issue in result.warnings:
            self._count(issue, "warnings_total")

        row = RowReport(
            status=status,
            line_no=result.record.line_no,
            record_id=result.record.record_id,
            step=self.current_step,
            payment_id=getattr(result.row, "id", None),
            payload=payload,
            diagnostics=[_diagnostic("error", e) for e in result.errors]
            + [_diagnostic("warning", w) for w in result.warnings],
        )
        limit = self.meta.rows_limit
        if limit is None or len(self.rows) < limit:
            self.rows.append(row)
        else:
            self.meta.rows_truncated = True
        return row

    def finish(self, finished_at: str | None = None, duration_ms: int | None = None) -> None:
        self.meta.finished_at = finished_at or getNowIso()
        self.meta.duration_ms = duration_ms
        if self.status is None:
            self.status = self._derive_status()

    def build(self) -> ImportReport:
        return ImportReport(
            status=self.status or self._derive_status(),
            meta=self.meta,
            summary=self.summary,
            rows=self.rows,
            context=self.context,
        )

    def _derive_status(self) -> str:
        if self.summary.rows_failed == 0:
            return "SUCCESS"
        if self.summary.rows_imported > 0:
            return "PARTIAL"
        return "FAILED"

    def _count(self, issue: DiagnosticItem, bucket: str) -> None:
        setattr(self.summary, bucket, getattr(self.summary, bucket) + 1)
        stage = issue.stage.value if isinstance(issue.stage, DiagnosticStage) else str(issue.stage)
        per_stage = self.summary.by_stage.setdefault(stage, {"errors_total": 0, "warnings_total": 0})
        per_stage[bucket] += 1
        self.summary.by_code[issue.code] = self.summary.by_code.get(issue.code, 0) + 1


def _diagnostic(severity: str, issue: DiagnosticItem) -> RowDiagnostic:
    return RowDiagnostic(severity=severity, stage=issue.stage, code=issue.code, field=issue.field, message=issue.message)
