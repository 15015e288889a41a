"""Load runtime settings from YAML (with fallbacks to config constants)."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .config import SETTINGS, AppSettings

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "project_health.yaml"

_CACHE: AppSettings | None = None


def _coerce(data: dict) -> AppSettings:
    defaults = AppSettings()
    return AppSettings(
        timezone=str(data.get("timezone") or defaults.timezone),
        hours_per_work_day=float(data.get("hours_per_work_day") or defaults.hours_per_work_day),
        fetch_max_workers=int(data.get("fetch_max_workers") or defaults.fetch_max_workers),
        activity_lookback_days=int(data.get("activity_lookback_days") or defaults.activity_lookback_days),
        activity_limit=int(data.get("activity_limit") or defaults.activity_limit),
    )


def load_settings(base_path: str | Path | None = None, *, refresh: bool = False) -> AppSettings:
    """Return settings from ``project_health.yaml`` under ``base_path``.

    The file is optional. A missing file, an unreadable file, or values of the
    wrong type all fall back to the defaults in ``config.py``. The result is
    cached until ``refresh=True`` is passed.
    """
    global _CACHE
    if _CACHE is not None and not refresh:
        return _CACHE
    base = Path(base_path or Path(__file__).resolve().parent.parent.parent)
    yaml_path = base / SETTINGS_FILE_NAME
    if not yaml_path.exists():
        _CACHE = SETTINGS
        return _CACHE
    try:
        data = yaml.safe_load(yaml_path.read_text()) or {}
        section = data.get("project_health", data) if isinstance(data, dict) else {}
        _CACHE = _coerce(section if isinstance(section, dict) else {})
    except (yaml.YAMLError, OSError, TypeError, ValueError) as exc:
        logger.warning("Ignoring malformed settings file %s: %s", yaml_path, exc)
        _CACHE = SETTINGS
    return _CACHE
