from __future__ import annotations

import logging
import sqlite3
import sys
import time
from pathlib import Path

import typer
import yaml

from batchimport.common.run_id import generate_run_id
from batchimport.common.time import SystemClock, getDurationMs
from batchimport.config.config import Settings, loadSettings
from batchimport.domain.exceptions import ImportStateNotFoundError, PermissionDeniedError
from batchimport.domain.ports.import_state import StoredImport
from batchimport.domain.transform.field_mapping import FieldMapping, parseMapOptions
from batchimport.infra.artifacts.report_writer import createEmptyReport, finalizeReport, writeReportJson
from batchimport.infra.logging.setup import (
    LoggedStream,
    closeCommandLogger,
    createCommandLogger,
    logEvent,
)
from batchimport.infra.sources.csv_reader import CsvRecordSource
from batchimport.infra.sources.csv_utils import CsvFormatError
from batchimport.infra.store.bundle import openStore
from batchimport.usecases.import_service import ImportService, StepOutcome

app = typer.Typer(no_args_is_help=True, add_completion=False)
importApp = typer.Typer(no_args_is_help=True)


def ensureDir(path: str) -> None:
    """
    Назначение:
        Создаёт каталог, если он отсутствует.
    """
    Path(path).mkdir(parents=True, exist_ok=True)


def requireCsv(csvPath: str | None) -> None:
    """
    Назначение:
        Базовая проверка наличия CSV-файла.

    Поведение:
        - Если csvPath не задан или файл не существует, завершает процесс с exit code 2.
    """
    if not csvPath:
        typer.echo("ERROR: --csv is required", err=True)
        raise typer.Exit(code=2)

    p = Path(csvPath)
    if not p.exists() or not p.is_file():
        typer.echo(f"ERROR: CSV file not found: {csvPath}", err=True)
        raise typer.Exit(code=2)


def printRunHeader(runId: str, command: str, settings: Settings, sources: list[str]) -> None:
    typer.echo(
        f"run_id={runId} command={command} store_dir={settings.store_dir} "
        f"per_step={settings.per_step} test_mode={settings.test_mode} "
        f"operator_id={settings.operator_id} sources={sources} log_level={settings.log_level}"
    )


def loadMapping(settings: Settings, mappingFile: str | None, mapOptions: list[str] | None) -> FieldMapping:
    """
    Назначение:
        Собирает маппинг полей: config < --mapping FILE < --map field=column.

    Поведение:
        - Неизвестное поле или некорректный файл -> ValueError.
    """
    data: dict[str, str] = dict(settings.mapping)
    if mappingFile:
        p = Path(mappingFile)
        if not p.exists() or not p.is_file():
            raise ValueError(f"Mapping file not found: {mappingFile}")
        with p.open("r", encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid mapping file {mappingFile}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ValueError(f"Mapping file must contain a mapping: {mappingFile}")
        data.update({str(k): "" if v is None else str(v) for k, v in loaded.items()})
    data.update(parseMapOptions(mapOptions))
    return FieldMapping.from_dict(data)


def runWithReport(
    ctx: typer.Context,
    commandName: str,
    csvPath: str | None,
    requiresCsv: bool,
    runner,
) -> None:
    """
    Назначение:
        Унифицированная обвязка выполнения команд:
        - создаёт логгер + файл лога
        - создаёт report.json skeleton
        - перенаправляет stdout/stderr в лог (tee)
        - гарантирует запись отчёта в finally

    Поведение:
        - Отсутствующий CSV: ошибка в лог и exit code 2.
        - Ошибки конфигурации, CSV и хранилища: exit code 2.
        - Нет права на импорт: exit code 3.
    """
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    startMonotonic = time.monotonic()

    logger, logFilePath = createCommandLogger(
        commandName=commandName,
        logDir=settings.log_dir,
        runId=runId,
        logLevel=settings.log_level,
    )

    report = createEmptyReport(
        runId=runId,
        command=commandName,
        configSources=sources,
        rowsLimit=settings.report_items_limit,
    )
    report.meta.csv_path = csvPath

    originalStdout = sys.stdout
    originalStderr = sys.stderr

    sys.stdout = LoggedStream(originalStdout, logger, logging.INFO, "stdout")
    sys.stderr = LoggedStream(originalStderr, logger, logging.ERROR, "stderr")

    exitCode: int | None = None

    try:
        logEvent(logger, logging.INFO, runId, "core", "Command started")
        printRunHeader(runId, commandName, settings, sources)

        if requiresCsv:
            try:
                requireCsv(csvPath)
            except typer.Exit:
                logEvent(logger, logging.ERROR, runId, "csv", "CSV is missing or not accessible")
                typer.echo("ERROR: invalid or missing CSV (see logs/report)", err=True)
                exitCode = 2
                return

        try:
            exitCode = runner(logger, report)
        except PermissionDeniedError as exc:
            logEvent(logger, logging.ERROR, runId, "import", str(exc))
            report.set_context("error", {"code": exc.code.value, "message": str(exc)})
            typer.echo(f"ERROR: {exc}", err=True)
            exitCode = 3
        except CsvFormatError as exc:
            logEvent(logger, logging.ERROR, runId, "csv", f"CSV format error: {exc}")
            typer.echo(f"ERROR: {exc}", err=True)
            exitCode = 2
        except ImportStateNotFoundError as exc:
            logEvent(logger, logging.ERROR, runId, "import", str(exc))
            typer.echo(f"ERROR: {exc}", err=True)
            exitCode = 2
        except sqlite3.Error as exc:
            logEvent(logger, logging.ERROR, runId, "store", f"Store error: {exc}")
            typer.echo("ERROR: store error (see logs/report)", err=True)
            exitCode = 2
        except (ValueError, OSError) as exc:
            logEvent(logger, logging.ERROR, runId, "config", str(exc))
            typer.echo(f"ERROR: {exc}", err=True)
            exitCode = 2

    finally:
        durationMs = getDurationMs(startMonotonic, time.monotonic())
        finalizeReport(
            report=report,
            durationMs=durationMs,
            logFile=logFilePath,
            storeDir=settings.store_dir,
            reportDir=settings.report_dir,
        )
        reportPath = writeReportJson(report, settings.report_dir, f"report_{commandName}_{runId}")
        logEvent(logger, logging.INFO, runId, "report", f"Report written: {reportPath}")

        sys.stdout.flush()
        sys.stderr.flush()
        sys.stdout = originalStdout
        sys.stderr = originalStderr
        closeCommandLogger(logger)

        if exitCode is not None and exitCode != 0:
            raise typer.Exit(code=exitCode)


def runImportCommand(ctx: typer.Context, commandName: str, csvPath: str | None, requiresCsv: bool, action) -> None:
    """
    Назначение:
        Общая обвязка import-команд: открывает хранилище, собирает ImportService,
        вызывает action(service, logger, report) и закрывает хранилище.
    """
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]

    def execute(logger, report) -> int:
        clock = SystemClock()
        store = openStore(settings.store_dir, clock)
        try:
            service = ImportService(
                store=store,
                settings=settings,
                clock=clock,
                logger=logger,
                run_id=runId,
                report=report,
            )
            return action(service, logger, report)
        finally:
            store.close()

    runWithReport(
        ctx=ctx,
        commandName=commandName,
        csvPath=csvPath,
        requiresCsv=requiresCsv,
        runner=execute,
    )


def printStored(stored: StoredImport) -> None:
    state = stored.state
    typer.echo(
        f"import_id={stored.import_id} status={state.status} step={state.current_step} "
        f"per_step={state.per_step} total_rows={state.total_rows} "
        f"rows_processed={state.rows_processed} done={state.done}"
    )


def printOutcome(outcome: StepOutcome) -> None:
    typer.echo(
        f"more={outcome.more} step={outcome.last_step} percentage={outcome.percentage:.2f}"
    )


@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to config.yml"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (UUID). If omitted, generated."),
    logLevel: str | None = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for logs."),
    reportDir: str | None = typer.Option(None, "--report-dir", help="Directory for reports."),
    storeDir: str | None = typer.Option(None, "--store-dir", help="Directory for the SQLite store."),
    perStep: int | None = typer.Option(None, "--per-step", help="Batch size per step (>= 2)"),
    testMode: bool | None = typer.Option(None, "--test-mode/--live-mode", help="Default payment mode"),
    operatorId: int | None = typer.Option(None, "--operator-id", help="Operator user id"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - создаёт каталоги log/report/store
        - сохраняет всё в ctx.obj для подкоманд
    """
    if not runId:
        runId = generate_run_id()

    cliOverrides = {
        "log_level": logLevel,
        "log_dir": logDir,
        "report_dir": reportDir,
        "store_dir": storeDir,
        "per_step": perStep,
        "test_mode": testMode,
        "operator_id": operatorId,
    }
    try:
        loaded = loadSettings(config_path=config, cli_overrides=cliOverrides)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=2)

    ensureDir(loaded.settings.log_dir)
    ensureDir(loaded.settings.report_dir)
    ensureDir(loaded.settings.store_dir)

    ctx.obj = {
        "runId": runId,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }


@app.command("columns")
def columns(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV"),
):
    def execute(logger, report) -> int:
        header = CsvRecordSource(csv).columns()
        report.set_context("csv", {"columns": header})
        for column in header:
            typer.echo(column)
        return 0

    runWithReport(ctx=ctx, commandName="columns", csvPath=csv, requiresCsv=True, runner=execute)


@importApp.command("start")
def importStart(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV"),
    mappingFile: str | None = typer.Option(None, "--mapping", help="YAML file with field: column pairs"),
    mapOptions: list[str] | None = typer.Option(None, "--map", help="Field mapping field=column (repeatable)"),
    importId: str | None = typer.Option(None, "--import-id", help="Import id. If omitted, generated."),
):
    def action(service: ImportService, logger, report) -> int:
        mapping = loadMapping(service.settings, mappingFile, mapOptions)
        stored = service.start(csv, mapping, import_id=importId)
        typer.echo(f"import_id={stored.import_id}")
        return 0

    runImportCommand(ctx, "import-start", csv, True, action)


@importApp.command("step")
def importStep(
    ctx: typer.Context,
    importId: str = typer.Option(..., "--import-id", help="Import id returned by 'import start'"),
):
    def action(service: ImportService, logger, report) -> int:
        printOutcome(service.step(importId))
        return 0

    runImportCommand(ctx, "import-step", None, False, action)


@importApp.command("run")
def importRun(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV"),
    mappingFile: str | None = typer.Option(None, "--mapping", help="YAML file with field: column pairs"),
    mapOptions: list[str] | None = typer.Option(None, "--map", help="Field mapping field=column (repeatable)"),
    importId: str | None = typer.Option(None, "--import-id", help="Import id. If omitted, generated."),
):
    def action(service: ImportService, logger, report) -> int:
        mapping = loadMapping(service.settings, mappingFile, mapOptions)
        stored = service.start(csv, mapping, import_id=importId)
        outcome = service.run(stored.import_id)
        typer.echo(f"import_id={stored.import_id}")
        printOutcome(outcome)
        printStored(service.status(stored.import_id))
        return 0

    runImportCommand(ctx, "import-run", csv, True, action)


@importApp.command("status")
def importStatus(
    ctx: typer.Context,
    importId: str = typer.Option(..., "--import-id", help="Import id"),
):
    def action(service: ImportService, logger, report) -> int:
        stored = service.status(importId)
        printStored(stored)
        return 0

    runImportCommand(ctx, "import-status", None, False, action)


@importApp.command("reset")
def importReset(
    ctx: typer.Context,
    importId: str = typer.Option(..., "--import-id", help="Import id"),
):
    def action(service: ImportService, logger, report) -> int:
        deleted = service.reset(importId)
        typer.echo(f"import_id={importId} deleted={deleted}")
        return 0

    runImportCommand(ctx, "import-reset", None, False, action)


app.add_typer(importApp, name="import")
