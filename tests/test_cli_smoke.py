from typer.testing import CliRunner

from batchimport.main import app

runner = CliRunner()


def _dirs(tmp_path) -> list[str]:
    return [
        "--log-dir", str(tmp_path / "logs"),
        "--report-dir", str(tmp_path / "reports"),
        "--store-dir", str(tmp_path / "store"),
    ]


def test_help_shows_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "import" in result.stdout
    assert "columns" in result.stdout


def test_import_help_shows_subcommands():
    result = runner.invoke(app, ["import", "--help"])
    assert result.exit_code == 0
    for name in ("start", "step", "run", "status", "reset"):
        assert name in result.stdout


def test_columns_requires_csv(tmp_path):
    result = runner.invoke(app, [*_dirs(tmp_path), "columns"])
    assert result.exit_code == 2


def test_columns_missing_file(tmp_path):
    result = runner.invoke(app, [*_dirs(tmp_path), "columns", "--csv", str(tmp_path / "nope.csv")])
    assert result.exit_code == 2


def test_invalid_per_step(tmp_path):
    result = runner.invoke(app, [*_dirs(tmp_path), "--per-step", "1", "columns", "--csv", "x.csv"])
    assert result.exit_code == 2
