from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s runId=%(runId)s importId=%(importId)s step=%(step)s comp=%(component)s msg=%(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"
NO_VALUE = "-"

_LEVEL_NAMES = ("ERROR", "WARNING", "INFO", "DEBUG")


class ImportContextFilter(logging.Filter):
    """
    Назначение:
        Подставляет runId/importId/step/component в LogRecord, если их не передали
        через extra. importId и step можно привязать после старта команды
        (bindImportContext), когда импорт уже известен.
    """

    def __init__(self, runId: str, component: str = "core"):
        super().__init__()
        self.runId = runId
        self.component = component
        self.importId = NO_VALUE
        self.step = NO_VALUE

    def filter(self, record: logging.LogRecord) -> bool:
        for name, default in (
            ("runId", self.runId),
            ("importId", self.importId),
            ("step", self.step),
            ("component", self.component),
        ):
            if getattr(record, name, None) is None:
                setattr(record, name, default)
        return True


class LoggedStream:
    """
    Назначение:
        Обёртка над stdout/stderr: пишет в исходный поток и построчно в лог команды.
    """

    def __init__(self, primary, logger: logging.Logger, level: int, component: str):
        self.primary = primary
        self.logger = logger
        self.level = level
        self.component = component
        self.pending = ""

    def write(self, s: str) -> int:
        written = self.primary.write(s)
        self.pending += s
        *lines, self.pending = self.pending.split("\n")
        for line in lines:
            self._emit(line)
        return written

    def flush(self) -> None:
        self.primary.flush()
        self._emit(self.pending)
        self.pending = ""

    def _emit(self, line: str) -> None:
        if line.strip():
            self.logger.log(self.level, line.rstrip(), extra={"component": self.component})


def mapLogLevel(levelName: str) -> int:
    """
    Назначение:
        ERROR|WARN|WARNING|INFO|DEBUG -> logging level.
    """
    value = (levelName or "").strip().upper()
    if value == "WARN":
        value = "WARNING"
    if value not in _LEVEL_NAMES:
        raise ValueError(f"Unsupported log level: {levelName}")
    return getattr(logging, value)


def createCommandLogger(commandName: str, logDir: str, runId: str, logLevel: str) -> tuple[logging.Logger, str]:
    """
    Назначение:
        Создаёт логгер команды с файлом {logDir}/{commandName}_{runId}.log.

    Выходные данные:
        (logger, logFilePath)
    """
    Path(logDir).mkdir(parents=True, exist_ok=True)
    logFilePath = str(Path(logDir) / f"{commandName}_{runId}.log")

    logger = logging.getLogger(f"batchimport.{commandName}.{runId}")
    closeCommandLogger(logger)
    logger.propagate = False
    level = mapLogLevel(logLevel)
    logger.setLevel(level)

    handler = logging.FileHandler(logFilePath, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    handler.addFilter(ImportContextFilter(runId=runId))
    logger.addHandler(handler)
    return logger, logFilePath


def bindImportContext(logger: logging.Logger, importId: str | None, step: int | None = None) -> None:
    """
    Назначение:
        Привязывает importId (и шаг) ко всем последующим записям логгера команды,
        включая перехваченный stdout/stderr.
    """
    for handler in logger.handlers:
        for flt in handler.filters:
            if isinstance(flt, ImportContextFilter):
                flt.importId = importId or NO_VALUE
                flt.step = NO_VALUE if step is None else step


def closeCommandLogger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def logEvent(
    logger: logging.Logger,
    level: int,
    runId: str,
    component: str,
    message: str,
    importId: str | None = None,
    step: int | None = None,
) -> None:
    """
    Назначение:
        Запись события с runId/component; importId/step, если не переданы,
        берутся из контекста, привязанного bindImportContext.
    """
    logger.log(level, message, extra={"runId": runId, "component": component, "importId": importId, "step": step})
