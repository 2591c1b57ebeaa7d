"""Configuration loading and CLI overrides for runtime tunables.

Precedence, highest first: CLI flags, an explicit --config file, the first
default-location YAML file, built-in Constants.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants, _load_yaml_config, apply_config

logger = logging.getLogger(__name__)


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML or JSON config file into a dict.

    Missing or unreadable files are logged and yield {}.
    """
    if not path:
        return {}
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Failed to load config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not a mapping", path)
        return {}
    return data


def load_config(args) -> Dict[str, Any]:
    """Load the explicit --config file, else the default YAML locations, and apply it."""
    cfg = load_config_file(getattr(args, "CONFIG", None))
    if not cfg:
        cfg = _load_yaml_config()
    apply_config(cfg)
    return cfg


def apply_cli_overrides(args) -> None:
    """Apply CLI overrides on top of Constants (CLI has highest precedence)."""
    if getattr(args, "GALLERY_URL", None):
        Constants.GALLERY_URL = args.GALLERY_URL
    if getattr(args, "VERSION_STRATEGY", None):
        Constants.VERSION_STRATEGY = args.VERSION_STRATEGY
    if getattr(args, "MAX_DEPTH", None) is not None:
        Constants.MAX_RESOLUTION_DEPTH = int(args.MAX_DEPTH)
    if getattr(args, "RETRY_DELAY", None) is not None:
        Constants.RETRY_DELAY_SEC = float(args.RETRY_DELAY)
    if getattr(args, "RETRY_FOREVER", False):
        Constants.RETRY_MAX_ATTEMPTS = None
    elif getattr(args, "MAX_ATTEMPTS", None) is not None:
        Constants.RETRY_MAX_ATTEMPTS = int(args.MAX_ATTEMPTS)
