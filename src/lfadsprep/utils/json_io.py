# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

"""Shared helpers for reading and writing JSON payloads on disk."""

import json
from pathlib import Path
from typing import Any

import numpy as np

from .path_utils import atomic_output_path

__all__ = ["load_json_file", "normalize_for_json", "write_json_file"]


def load_json_file(path: Path | str, *, encoding: str = "utf-8") -> Any:
    """Read and decode JSON from ``path`` with a helpful error message."""

    json_path = Path(path)
    text = json_path.read_text(encoding=encoding)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise json.JSONDecodeError(
            f"{exc.msg} (file: {json_path})", exc.doc, exc.pos
        ) from exc


def normalize_for_json(value: Any) -> Any:
    """Recursively convert numpy scalars/arrays into JSON-serializable types.

    - numpy scalars become Python scalars, arrays become nested lists.
    - dicts, lists and tuples are walked; tuples become lists.
    """
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, dict):
        return {str(k): normalize_for_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_for_json(v) for v in value]
    return value


def write_json_file(path: Path | str, payload: Any, *, indent: int | None = 2) -> Path:
    """Atomically write ``payload`` as JSON to ``path``."""

    target = Path(path)
    text = json.dumps(normalize_for_json(payload), indent=indent, sort_keys=False)
    with atomic_output_path(target) as tmp:
        tmp.write_text(text, encoding="utf-8")
    return target
