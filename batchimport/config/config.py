from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml


@dataclass(frozen=True)
class Settings:
    # Paths
    store_dir: str = "./store"
    log_dir: str = "./logs"
    report_dir: str = "./reports"
    log_level: str = "INFO"

    # Import
    per_step: int = 5
    test_mode: bool = False
    suppress_side_effects: bool = True
    thousands_sep: str = ","
    decimal_sep: str = "."
    report_items_limit: int = 200

    # Operator
    operator_id: int = 1
    operator_capabilities: tuple[str, ...] = ("import_payments",)

    # YAML-only
    gateways: dict[str, Any] = field(default_factory=dict)
    mapping: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


ENV_PREFIX = "BATCHIMPORT_"


def _read_yaml_config(path: Path) -> dict:
    if not path.exists() or not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML config {path}: {exc}") from exc
    if not isinstance(data, dict):
        return {}
    return data


def _env_get(name: str) -> str | None:
    v = os.getenv(ENV_PREFIX + name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def parse_int(v: Any) -> int:
    try:
        return int(v)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer value: {v}") from exc


def parse_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    vv = str(v).strip().lower()
    if vv in ("1", "true", "yes", "y", "on"):
        return True
    if vv in ("0", "false", "no", "n", "off"):
        return False
    raise ValueError(f"Invalid boolean value: {v}")


def parse_list(v: Any) -> tuple[str, ...]:
    if isinstance(v, (list, tuple)):
        return tuple(str(item).strip() for item in v if str(item).strip())
    return tuple(part.strip() for part in str(v).split(",") if part.strip())


def _keep_separator(v: Any) -> str:
    # пробел - допустимый разделитель тысяч, strip() здесь не применяется
    return str(v)


_PARSERS: dict[str, Callable[[Any], Any]] = {
    "store_dir": str,
    "log_dir": str,
    "report_dir": str,
    "log_level": str,
    "per_step": parse_int,
    "test_mode": parse_bool,
    "suppress_side_effects": parse_bool,
    "thousands_sep": _keep_separator,
    "decimal_sep": _keep_separator,
    "report_items_limit": parse_int,
    "operator_id": parse_int,
    "operator_capabilities": parse_list,
}


def loadSettings(
    config_path: str | None,
    cli_overrides: dict,
) -> LoadedSettings:
    """
    Назначение:
        Собирает итоговые настройки запуска.

    Поведение:
        - Priority: CLI > ENV > config > defaults
        - gateways и mapping читаются только из YAML.
        - Некорректные значения -> ValueError.
    """
    sources: list[str] = []
    defaults = Settings()

    # 1) config file
    cfg: dict = {}
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")

    merged: dict[str, Any] = {name: getattr(defaults, name) for name in _PARSERS}
    for name, parser in _PARSERS.items():
        if name in cfg and cfg[name] is not None:
            merged[name] = parser(cfg[name])

    # 2) env
    env = {name: _env_get(name.upper()) for name in _PARSERS}
    if any(v is not None for v in env.values()):
        sources.append("env")
    for name, value in env.items():
        if value is not None:
            merged[name] = _PARSERS[name](value)

    # 3) CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")
    for name, value in cli_overrides.items():
        if value is None:
            continue
        if name not in _PARSERS:
            raise ValueError(f"Unknown setting: {name}")
        merged[name] = _PARSERS[name](value)

    gateways = cfg.get("gateways") or {}
    mapping = cfg.get("mapping") or {}
    if not isinstance(gateways, dict):
        raise ValueError("config 'gateways' must be a mapping")
    if not isinstance(mapping, dict):
        raise ValueError("config 'mapping' must be a mapping")
    if merged["per_step"] < 2:
        raise ValueError("per_step must be >= 2")
    if not merged["thousands_sep"] or not merged["decimal_sep"]:
        raise ValueError("thousands_sep and decimal_sep must be non-empty")

    settings = Settings(
        **merged,
        gateways=dict(gateways),
        mapping={str(k): "" if v is None else str(v) for k, v in mapping.items()},
    )
    return LoadedSettings(settings=settings, sources_used=sources)
