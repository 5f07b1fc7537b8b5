from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

DEFAULT_MOUNTINFO = "/proc/self/mountinfo"
SYSTEM_CONFIG = Path("/etc/volstat/config.yaml")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigError(ValueError):
    """Invalid or incomplete configuration; fatal at startup."""


@dataclass(frozen=True)
class VolstatConfig:
    target_path: str
    http_host: str = "0.0.0.0"
    http_port: int = 8080
    interval_seconds: float = 60.0
    mountinfo_path: str = DEFAULT_MOUNTINFO
    log_level: str = "INFO"
    config_path: Optional[str] = None


def _first_existing(paths: List[Path]) -> Optional[Path]:
    for p in paths:
        if p.exists() and p.is_file():
            return p
    return None


def get_config_path(explicit: Optional[str] = None) -> Optional[Path]:
    if explicit:
        p = Path(explicit).expanduser()
        if not p.is_file():
            raise ConfigError(f"config file not found: {p}")
        return p

    candidates: List[Path] = []
    env = os.environ.get("VOLSTAT_CONFIG")
    if env:
        candidates.append(Path(env).expanduser())
    candidates.append(SYSTEM_CONFIG)
    candidates.append(Path.cwd() / "config" / "volstat.yaml")
    return _first_existing(candidates)


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def _positive(value: Any, name: str, cast: type) -> Any:
    try:
        v = cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e
    if v <= 0:
        raise ConfigError(f"{name} must be positive, got {v}")
    return v


def load_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> VolstatConfig:
    """Build the runtime config from the YAML file (if any) and CLI overrides.

    Overrides whose value is None are ignored. A missing target path is a
    ConfigError.
    """
    path = get_config_path(config_file)
    data: Dict[str, Any] = _read_yaml(path) if path else {}

    http = data.get("http", {}) or {}
    scan = data.get("scan", {}) or {}

    values: Dict[str, Any] = {
        "target_path": data.get("target_path"),
        "http_host": str(http.get("host", "0.0.0.0")),
        "http_port": http.get("port", 8080),
        "interval_seconds": scan.get("interval_seconds", 60),
        "mountinfo_path": str(scan.get("mountinfo_path", DEFAULT_MOUNTINFO)),
        "log_level": str(data.get("log_level", "INFO")).upper(),
    }
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    target = values["target_path"]
    if not target or not str(target).strip():
        raise ConfigError("no target path defined")

    port = _positive(values["http_port"], "http.port", int)
    if port > 65535:
        raise ConfigError(f"http.port out of range: {port}")

    log_level = str(values["log_level"]).upper()
    if log_level not in LOG_LEVELS:
        choices = ", ".join(LOG_LEVELS)
        raise ConfigError(f"log_level must be one of {choices}, got {values['log_level']!r}")

    return VolstatConfig(
        target_path=str(target),
        http_host=values["http_host"],
        http_port=port,
        interval_seconds=_positive(values["interval_seconds"], "scan.interval_seconds", float),
        mountinfo_path=values["mountinfo_path"],
        log_level=log_level,
        config_path=str(path) if path else None,
    )
