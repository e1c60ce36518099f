from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict

import yaml

from cashflow.core.errors import ConfigError

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "CASHFLOW_DATA_DIR"
CONFIG_PATH_ENV = "CASHFLOW_CONFIG"
DATA_FILENAME = "data.yaml"

DEFAULT_CONFIG: Dict[str, object] = {
    "data_dir": "~/.cashflow",
    "default_days": 30,
    "warning_threshold": "10000",
    "currency": "Kč",
    "output_dir": "./data",
    "output_modules": {
        "csv": "cashflow.outputs.csv_output.CSVOutput",
        "excel": "cashflow.outputs.excel_output.ExcelOutput",
    },
}


def default_config_path() -> Path:
    explicit = os.environ.get(CONFIG_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return Path("~/.cashflow/config.yaml").expanduser()


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = value
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def load_config(path: Path | str | None = None) -> Dict[str, object]:
    target = Path(path) if path else default_config_path()
    if not target.exists():
        logger.debug("No config file at %s, using defaults", target)
        return _merge_defaults({}, DEFAULT_CONFIG)
    with target.open("r", encoding="utf-8") as fp:
        try:
            data = yaml.safe_load(fp) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse config file {target}: {exc}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {target} must contain a mapping.")
    logger.debug("Loaded config from %s", target)
    return _merge_defaults(data, DEFAULT_CONFIG)


def save_config(config: Dict[str, object], path: Path | str | None = None) -> Path:
    target = Path(path) if path else default_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False, allow_unicode=True)
    logger.debug("Saved config to %s", target)
    return target


def resolve_data_dir(config: Dict[str, object]) -> tuple[Path, str]:
    """Return the data directory and where it came from ("env" or "config")."""
    env_dir = os.environ.get(DATA_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser(), "env"
    return Path(str(config["data_dir"])).expanduser(), "config"


def data_file_path(config: Dict[str, object]) -> Path:
    data_dir, _ = resolve_data_dir(config)
    return data_dir / DATA_FILENAME


def set_data_dir(path: str, config_path: Path | str | None = None) -> Path:
    """Store an absolute data directory in the config file and return it."""
    data_dir = Path(path).expanduser()
    if not data_dir.is_absolute():
        data_dir = Path.cwd() / data_dir
    config = load_config(config_path)
    config["data_dir"] = str(data_dir)
    save_config(config, config_path)
    return data_dir
