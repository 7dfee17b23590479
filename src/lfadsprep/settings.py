# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Package-wide defaults loaded from YAML."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml

from .utils.errors import ConfigurationError

__all__ = [
    "CONFIG_ENV_VAR",
    "POSTERIOR_MEAN_KINDS",
    "ConfigurationError",
    "Defaults",
    "load_defaults",
]

CONFIG_ENV_VAR = "LFADSPREP_CONFIG_FILE"
PACKAGED_DEFAULTS = Path(__file__).with_name("defaults.yaml")
POSTERIOR_MEAN_KINDS = ("posterior_sample_and_average", "posterior_push_mean")
_REQUIRED_KEYS = ("layout_version", "posterior_mean_kind", "log_level")


@dataclass(frozen=True)
class Defaults:
    layout_version: int
    posterior_mean_kind: str
    log_level: str


def _config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return PACKAGED_DEFAULTS


def _parse(payload: Mapping[str, Any], source: Path) -> Defaults:
    missing = [key for key in _REQUIRED_KEYS if key not in payload]
    if missing:
        raise ConfigurationError(
            f"Settings file {source} is missing required keys: {', '.join(missing)}"
        )

    try:
        layout_version = int(payload["layout_version"])
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"layout_version in {source} must be an integer"
        ) from exc
    if layout_version < 1:
        raise ConfigurationError(f"layout_version in {source} must be >= 1")

    kind = str(payload["posterior_mean_kind"])
    if kind not in POSTERIOR_MEAN_KINDS:
        raise ConfigurationError(
            f"posterior_mean_kind '{kind}' in {source} is not one of {POSTERIOR_MEAN_KINDS}"
        )

    log_level = str(payload["log_level"]).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigurationError(f"log_level '{log_level}' in {source} is not a logging level")

    return Defaults(
        layout_version=layout_version,
        posterior_mean_kind=kind,
        log_level=log_level,
    )


@lru_cache(maxsize=1)
def load_defaults() -> Defaults:
    """Load and validate settings; cached until ``load_defaults.cache_clear()``."""
    path = _config_path()
    if not path.exists():
        raise ConfigurationError(f"Settings file not found: {path}")
    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(payload, Mapping):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")
    return _parse(payload, path)
