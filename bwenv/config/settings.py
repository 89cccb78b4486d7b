"""Settings loader for bwenv."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

DEFAULT_FOLDER = "bwenv"
DEFAULT_RBW_COMMAND = "rbw"
DEFAULT_LOG_LEVEL = "WARNING"
FOLDER_ENV = "BWENV_FOLDER"
CONFIG_ENV = "BWENV_CONFIG"
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


@dataclass(frozen=True)
class Settings:
    folder: Optional[str] = None
    log_level: str = DEFAULT_LOG_LEVEL
    rbw_command: str = DEFAULT_RBW_COMMAND


class SettingsError(RuntimeError):
    """Raised when the config file cannot be loaded."""


def default_config_path(environ: Mapping[str, str]) -> Path:
    explicit = environ.get(CONFIG_ENV, "").strip()
    if explicit:
        return Path(explicit).expanduser()
    xdg = environ.get("XDG_CONFIG_HOME", "").strip()
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / "bwenv" / "config.yaml"


def _optional_str(raw: dict[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise SettingsError(f"{key} must be a string")
    return value.strip() or None


def load_settings(path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    config_path = path or default_config_path(env)
    if not config_path.exists():
        return Settings()

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise SettingsError(f"failed to read config {config_path}: {exc}") from exc
    if raw is None:
        return Settings()
    if not isinstance(raw, dict):
        raise SettingsError(f"config root must be an object: {config_path}")

    log_level = (_optional_str(raw, "log_level") or DEFAULT_LOG_LEVEL).upper()
    if log_level not in LOG_LEVELS:
        raise SettingsError(f"invalid log_level: {log_level}")

    rbw_raw = raw.get("rbw", {})
    if rbw_raw is None:
        rbw_raw = {}
    if not isinstance(rbw_raw, dict):
        raise SettingsError("rbw must be an object")

    return Settings(
        folder=_optional_str(raw, "folder"),
        log_level=log_level,
        rbw_command=_optional_str(rbw_raw, "command") or DEFAULT_RBW_COMMAND,
    )


def resolve_folder(
    flag: Optional[str],
    settings: Settings,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Pick the folder: --folder, then BWENV_FOLDER, then config, then the default."""
    env = os.environ if environ is None else environ
    for candidate in (flag, env.get(FOLDER_ENV), settings.folder):
        if candidate and candidate.strip():
            return candidate.strip()
    return DEFAULT_FOLDER
