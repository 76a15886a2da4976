# common/config_loader.py
import os
import yaml
import logging
import hashlib
import pathlib
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from dotenv import load_dotenv

_log = logging.getLogger("voice-booking")

ENV_FILES = ("cloud.secrets.env", ".env.local", "env.local", ".env")


def load_env_files(candidates: Iterable[str] = ENV_FILES) -> None:
    """
    Load env files from both CWD and project root (relative to this file),
    without overriding values already provided by the platform.
    """
    here = pathlib.Path(__file__).resolve()
    roots = {
        pathlib.Path.cwd(),
        here.parent.parent,
    }
    for fname in candidates:
        for root in roots:
            p = root / fname
            if p.exists():
                load_dotenv(p, override=False)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load YAML from `path`, CONFIG_PATH or ./config.yaml, with safe defaults."""
    config_path = Path(path or os.getenv("CONFIG_PATH", "config.yaml"))
    if not config_path.exists():
        _log.warning("Config file not found at %s. Using built-in defaults.", config_path)
        return {}
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except Exception as e:  # noqa: BLE001
        _log.error("Failed to parse %s: %s. Using built-in defaults.", config_path, e)
        return {}
    if not isinstance(data, dict):
        _log.error("Config root in %s is not a mapping. Using built-in defaults.", config_path)
        return {}
    return data


def cfg_get(d: Dict[str, Any], path: str, default=None):
    """Safely fetch a nested key via dotted path, e.g. cfg_get(cfg, 'booking.price_per_hour')."""
    cur = d
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return default if cur is None else cur


def mask_key(key: Optional[str]) -> str:
    if not key:
        return "<none>"
    digest = hashlib.sha256(key.encode()).hexdigest()
    return f"sha256:{digest[:8]}"
