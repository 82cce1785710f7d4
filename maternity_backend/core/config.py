from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


def config_dir() -> Path:
    override = os.getenv("MATERNITY_CONFIG_DIR")
    return Path(override) if override else CONFIG_DIR


def load_config(name: str, default: Any) -> Any:
    """Read one YAML file from the config directory, or ``default`` if absent."""

    path = config_dir() / name
    if not path.exists():
        logger.info("config file %s not found, using built-in defaults", path)
        return default
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp)
    return default if data is None else data
