from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from ..contracts.v1 import Settings
from ..paths import config_path
from ..util.conv import coerce_bool

logger = logging.getLogger("ccnotify.settings")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        logger.warning("cannot read config %s: %s", path, e)
        return {}
    try:
        doc = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        logger.warning("invalid YAML in %s: %s", path, e)
        return {}
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        logger.warning("config %s must be a mapping, got %s", path, type(doc).__name__)
        return {}
    return doc


def load_settings(path: Optional[Path] = None, *, env: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings from YAML, falling back to defaults on any problem."""
    environ = os.environ if env is None else env
    p = path or config_path(environ)
    doc = _read_yaml(p)
    try:
        settings = Settings.model_validate(doc)
    except ValidationError as e:
        logger.warning("invalid config %s, using defaults: %s", p, e.errors()[:3])
        settings = Settings()

    level = str(environ.get("CCNOTIFY_LOG_LEVEL") or "").strip().upper()
    if level in _LOG_LEVELS:
        settings = settings.model_copy(update={"log_level": level})

    enabled = environ.get("CCNOTIFY_ENABLED")
    if enabled is not None and str(enabled).strip():
        desktop = settings.desktop.model_copy(update={"enabled": coerce_bool(enabled, default=settings.desktop.enabled)})
        settings = settings.model_copy(update={"desktop": desktop})
    return settings


def save_settings(settings: Settings, path: Optional[Path] = None) -> Path:
    p = path or config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(p.name + ".tmp")
    tmp.write_text(yaml.safe_dump(settings.model_dump(), sort_keys=False, allow_unicode=True), encoding="utf-8")
    os.replace(tmp, p)
    return p
