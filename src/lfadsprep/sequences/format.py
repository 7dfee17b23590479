# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

"""NPZ/JSON serialization helpers for per-dataset sequence files."""

from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from ..utils.errors import SequenceDataError
from ..utils.json_io import load_json_file, write_json_file
from ..utils.path_utils import atomic_output_path, remove_if_exists
from .builder import check_sequence_struct
from .schema import SequenceRecord

__all__ = [
    "SEQUENCE_SCHEMA_VERSION",
    "write_sequence_file",
    "read_sequence_file",
    "sequence_file_exists",
    "delete_sequence_file",
]

SEQUENCE_SCHEMA_VERSION = "1"


def _sidecar(npz_path: Path) -> Path:
    return Path(npz_path).with_suffix(".json")


def _key(field: str, index: int) -> str:
    return f"{field}_{index:05d}"


def write_sequence_file(records: Sequence[SequenceRecord], npz_path: Path) -> Tuple[Path, Path]:
    """Persist records as ``<stem>.npz`` arrays plus a ``<stem>.json`` sidecar.

    The JSON sidecar is written last and acts as the completion marker.
    """

    npz_path = Path(npz_path)
    json_path = _sidecar(npz_path)

    arrays: Dict[str, np.ndarray] = {}
    trials: List[Dict[str, Any]] = []
    for i, record in enumerate(records):
        arrays[_key("counts", i)] = np.asarray(record.counts)
        arrays[_key("time_ms", i)] = np.asarray(record.time_ms)
        if record.ground_truth is not None:
            arrays[_key("ground_truth", i)] = np.asarray(record.ground_truth)
        if record.external_inputs is not None:
            arrays[_key("external_inputs", i)] = np.asarray(record.external_inputs)
        trials.append(
            {
                "bin_width_ms": float(record.bin_width_ms),
                "condition_id": record.condition_id,
            }
        )

    with atomic_output_path(npz_path) as tmp:
        with open(tmp, "wb") as fh:
            np.savez(fh, **arrays)

    payload = {
        "schema_version": SEQUENCE_SCHEMA_VERSION,
        "n_trials": len(trials),
        "trials": trials,
    }
    write_json_file(json_path, payload)
    return npz_path, json_path


def read_sequence_file(
    npz_path: Path,
    *,
    run_name: str | None = None,
    dataset_name: str | None = None,
) -> List[SequenceRecord]:
    """Load records written by :func:`write_sequence_file` and re-check them."""

    npz_path = Path(npz_path)
    payload = load_json_file(_sidecar(npz_path))
    version = str(payload.get("schema_version", ""))
    if version != SEQUENCE_SCHEMA_VERSION:
        raise SequenceDataError(
            f"Sequence file {npz_path} has schema_version {version!r}, "
            f"expected {SEQUENCE_SCHEMA_VERSION!r}"
        )

    entries: List[Dict[str, Any]] = []
    with np.load(npz_path, allow_pickle=False) as npz:
        for i, meta in enumerate(payload.get("trials", [])):
            entry: Dict[str, Any] = dict(meta)
            for field in ("counts", "time_ms", "ground_truth", "external_inputs"):
                key = _key(field, i)
                if key in npz.files:
                    entry[field] = np.array(npz[key])
            entries.append(entry)

    return check_sequence_struct(entries, run_name=run_name, dataset_name=dataset_name)


def sequence_file_exists(npz_path: Path) -> bool:
    npz_path = Path(npz_path)
    return npz_path.exists() and _sidecar(npz_path).exists()


def delete_sequence_file(npz_path: Path) -> None:
    remove_if_exists(npz_path)
    remove_if_exists(_sidecar(npz_path))
