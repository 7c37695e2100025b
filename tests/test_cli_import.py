import json
import sqlite3
from pathlib import Path

from typer.testing import CliRunner

from batchimport.infra.store.db import getStoreDbPath
from batchimport.main import app

runner = CliRunner()

CSV = "\n".join(
    [
        "Amount,Tax,State,Items,Email",
        "110.00,10.00,Complete,Ebook A,a@example.com",
        "20.00,0.00,pending,Ebook A|Ebook B,b@example.com",
        "5.00,,refunded,,c@example.com",
        "1,000.00,0,publish,Course,d@example.com",
    ]
)


def _write_csv(tmp_path: Path, text: str = CSV) -> str:
    path = tmp_path / "payments.csv"
    path.write_text(text + "\n", encoding="utf-8")
    return str(path)


def _base(tmp_path: Path, run_id: str) -> list[str]:
    return [
        "--run-id", run_id,
        "--log-dir", str(tmp_path / "logs"),
        "--report-dir", str(tmp_path / "reports"),
        "--store-dir", str(tmp_path / "store"),
    ]


def _maps() -> list[str]:
    return [
        "--map", "total=Amount",
        "--map", "tax=Tax",
        "--map", "status=State",
        "--map", "downloads=Items",
        "--map", "email=Email",
    ]


def _payments(tmp_path: Path) -> list[sqlite3.Row]:
    conn = sqlite3.connect(getStoreDbPath(str(tmp_path / "store")))
    conn.row_factory = sqlite3.Row
    try:
        return conn.execute("SELECT * FROM payments ORDER BY id").fetchall()
    finally:
        conn.close()


def test_columns_prints_header(tmp_path):
    csv_path = _write_csv(tmp_path)
    result = runner.invoke(app, [*_base(tmp_path, "r-cols"), "columns", "--csv", csv_path])

    assert result.exit_code == 0
    assert "Amount\nTax\nState\nItems\nEmail" in result.stdout
    assert (tmp_path / "reports" / "report_columns_r-cols.json").exists()
    assert (tmp_path / "logs" / "columns_r-cols.log").exists()


def test_import_run_writes_payments_and_report(tmp_path):
    csv_path = _write_csv(tmp_path, "\n".join(CSV.splitlines()[:4]))
    result = runner.invoke(
        app,
        [*_base(tmp_path, "r-run"), "import", "run", "--csv", csv_path, "--import-id", "imp-1", *_maps()],
    )

    assert result.exit_code == 0, result.stdout
    assert "import_id=imp-1" in result.stdout
    assert "status=done" in result.stdout

    rows = _payments(tmp_path)
    assert [row["status"] for row in rows] == ["complete", "pending", "refunded"]
    assert [row["subtotal"] for row in rows] == ["100.00", "20.00", "5.00"]

    report = json.loads((tmp_path / "reports" / "report_import-run_r-run.json").read_text(encoding="utf-8"))
    assert report["meta"]["import_id"] == "imp-1"
    assert report["summary"]["rows_imported"] == 3
    assert report["summary"]["ops"]["catalog.create"]["ok"] == 2
    assert report["rows"][1]["payload"]["line_items"][0]["tax"] == "0.00"
    assert report["rows"][1]["step"] == 1

    log_text = (tmp_path / "logs" / "import-run_r-run.log").read_text(encoding="utf-8")
    assert "runId=r-run importId=imp-1 step=1 comp=import msg=line:3 status=OK" in log_text


def test_start_step_status_reset(tmp_path):
    csv_path = _write_csv(tmp_path, "\n".join(CSV.splitlines()[:4]))
    mapping = tmp_path / "mapping.yml"
    mapping.write_text("total: Amount\ntax: Tax\nstatus: State\nemail: Email\n", encoding="utf-8")

    start = runner.invoke(
        app,
        [*_base(tmp_path, "r-start"), "--per-step", "2", "import", "start",
         "--csv", csv_path, "--mapping", str(mapping), "--import-id", "imp-2"],
    )
    assert start.exit_code == 0, start.stdout
    assert "import_id=imp-2" in start.stdout

    step = runner.invoke(app, [*_base(tmp_path, "r-step1"), "import", "step", "--import-id", "imp-2"])
    assert step.exit_code == 0, step.stdout
    assert "more=True step=1" in step.stdout
    assert len(_payments(tmp_path)) == 1

    status = runner.invoke(app, [*_base(tmp_path, "r-status"), "import", "status", "--import-id", "imp-2"])
    assert status.exit_code == 0
    assert "status=in-progress step=2 per_step=2 total_rows=3 rows_processed=1" in status.stdout

    reset = runner.invoke(app, [*_base(tmp_path, "r-reset"), "import", "reset", "--import-id", "imp-2"])
    assert reset.exit_code == 0
    assert "deleted=True" in reset.stdout

    missing = runner.invoke(app, [*_base(tmp_path, "r-missing"), "import", "step", "--import-id", "imp-2"])
    assert missing.exit_code == 2


def test_csv_with_bad_row_is_format_error(tmp_path):
    csv_path = _write_csv(tmp_path)
    result = runner.invoke(
        app,
        [*_base(tmp_path, "r-bad"), "import", "run", "--csv", csv_path, *_maps()],
    )
    # строка "1,000.00,..." без кавычек даёт лишнюю колонку
    assert result.exit_code == 2
    assert _payments(tmp_path) == []


def test_unknown_mapping_field(tmp_path):
    csv_path = _write_csv(tmp_path)
    result = runner.invoke(
        app,
        [*_base(tmp_path, "r-map"), "import", "start", "--csv", csv_path, "--map", "price=Amount"],
    )
    assert result.exit_code == 2


def test_permission_denied_exit_code(tmp_path, monkeypatch):
    monkeypatch.setenv("BATCHIMPORT_OPERATOR_CAPABILITIES", "view_reports")
    csv_path = _write_csv(tmp_path, "\n".join(CSV.splitlines()[:2]))
    result = runner.invoke(
        app,
        [*_base(tmp_path, "r-denied"), "import", "run", "--csv", csv_path, *_maps()],
    )

    assert result.exit_code == 3
    assert _payments(tmp_path) == []
    report = json.loads((tmp_path / "reports" / "report_import-run_r-denied.json").read_text(encoding="utf-8"))
    assert report["context"]["error"]["code"] == "PERMISSION_DENIED"
