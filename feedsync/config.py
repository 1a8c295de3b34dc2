"""Load config.yaml and .env. Shared by the CLI and the trigger server."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parent.parent


def default_config() -> dict[str, Any]:
    """Return the default settings (no feeds configured)."""
    return {
        "run": {
            "label": "awin-sync",
            "lock_timeout_minutes": 60,  # a running marker older than this is treated as crashed
            "progress_every": 1000,
            "temp_dir": None,
        },
        "awin": {
            "compression": "zip",
        },
        "feeds": [],
        "networks": {},
    }


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """Read config.yaml. Missing or unreadable files fall back to the defaults."""
    path = config_path or os.getenv("CONFIG_PATH") or str(ROOT / "config.yaml")
    if not os.path.isfile(path):
        return default_config()
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("config %s unreadable, using defaults: %s", path, e)
        return default_config()
    if not isinstance(loaded, dict):
        return default_config()
    config = default_config()
    for key, value in loaded.items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key] = {**config[key], **value}
        else:
            config[key] = value
    return config
