from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from batchimport.domain.models import DiagnosticStage


@dataclass
class ReportMeta:
    """
    Назначение:
        Метаданные запуска: команда, импорт и диапазон обработанных шагов.
    """

    run_id: str
    command: str
    started_at: str
    import_id: str | None = None
    csv_path: str | None = None
    per_step: int | None = None
    first_step: int | None = None
    last_step: int | None = None
    finished_at: str | None = None
    duration_ms: int | None = None
    rows_limit: int | None = None
    rows_truncated: bool = False


@dataclass
class ImportSummary:
    rows_total: int = 0
    rows_imported: int = 0
    rows_failed: int = 0
    rows_with_warnings: int = 0
    errors_total: int = 0
    warnings_total: int = 0
    steps: int = 0
    by_stage: dict[str, dict[str, int]] = field(default_factory=dict)
    by_code: dict[str, int] = field(default_factory=dict)
    ops: dict[str, dict[str, int]] = field(default_factory=dict)


@dataclass(frozen=True)
class RowDiagnostic:
    severity: str
    stage: DiagnosticStage
    code: str
    field: str | None
    message: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["stage"] = self.stage.value if isinstance(self.stage, DiagnosticStage) else self.stage
        return data


@dataclass
class RowReport:
    """
    Назначение:
        Итог импорта одной строки CSV.

    Поля:
        step: шаг, в котором строка обработана; вместе с import_id из meta
            совпадает с importId/step в строках лога.
        payment_id: None, если платёж не сохранён (транзакция строки откатилась).
    """

    status: str
    line_no: int
    record_id: str
    step: int | None = None
    payment_id: int | None = None
    payload: Mapping[str, Any] | None = None
    diagnostics: list[RowDiagnostic] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "line_no": self.line_no,
            "record_id": self.record_id,
            "step": self.step,
            "payment_id": self.payment_id,
            "payload": self.payload,
            "diagnostics": [diag.to_dict() for diag in self.diagnostics],
        }


@dataclass
class ImportReport:
    status: str
    meta: ReportMeta
    summary: ImportSummary
    rows: list[RowReport]
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """
        Назначение:
            JSON-совместимое представление отчёта (report.json).
        """
        return {
            "status": self.status,
            "meta": asdict(self.meta),
            "summary": asdict(self.summary),
            "rows": [row.to_dict() for row in self.rows],
            "context": self.context,
        }
