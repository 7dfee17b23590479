# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Readers for trainer outputs other than posterior means.

``fitlog.csv`` holds one row per logged epoch as ``label,value[,value...]``
groups, for example ``epoch,3, step,120, total,1.2,1.4, ...``. A label with
one value becomes a column of that name; a label with two values becomes
``<label>_train`` and ``<label>_valid``; further values are numbered.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import h5py
import numpy as np

logger = logging.getLogger(__name__)

__all__ = [
    "FitLog",
    "ReadoutMatrices",
    "load_fit_log",
    "load_readout_matrices",
    "readout_keys",
]

_SPLIT_SUFFIXES = ("train", "valid")


def _is_number(token: str) -> bool:
    try:
        float(token)
    except ValueError:
        return False
    return True


def _parse_row(tokens: Sequence[str]) -> List[Tuple[str, float]]:
    groups: List[Tuple[str, List[float]]] = []
    for token in (t.strip() for t in tokens):
        if not token:
            continue
        if _is_number(token):
            if not groups:
                raise ValueError(f"value {token!r} appears before any label")
            groups[-1][1].append(float(token))
        else:
            groups.append((token.replace(" ", "_"), []))

    out: List[Tuple[str, float]] = []
    for label, values in groups:
        if len(values) == 1:
            out.append((label, values[0]))
            continue
        for k, value in enumerate(values):
            suffix = _SPLIT_SUFFIXES[k] if len(values) == 2 else str(k)
            out.append((f"{label}_{suffix}", value))
    return out


@dataclass
class FitLog:
    """Training curves read from ``fitlog.csv``, one array per column."""

    run_name: str
    columns: Dict[str, np.ndarray] = field(default_factory=dict)

    def __getitem__(self, name: str) -> np.ndarray:
        return self.columns[name]

    def __contains__(self, name: object) -> bool:
        return name in self.columns

    @property
    def n_entries(self) -> int:
        return 0 if not self.columns else len(next(iter(self.columns.values())))

    @property
    def epoch(self) -> np.ndarray:
        return self.columns["epoch"]

    @property
    def step(self) -> np.ndarray:
        return self.columns["step"]


def load_fit_log(path: Path, run_name: str = "") -> FitLog:
    """Parse a trainer fit log. Columns missing from some rows hold NaN."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Fit log {path} not found; the model has not been trained yet"
        )
    rows: List[Dict[str, float]] = []
    names: List[str] = []
    with open(path, newline="", encoding="utf-8") as handle:
        for line_no, tokens in enumerate(csv.reader(handle), start=1):
            if not any(t.strip() for t in tokens):
                continue
            try:
                parsed = _parse_row(tokens)
            except ValueError as exc:
                raise ValueError(f"{path}:{line_no}: {exc}") from exc
            for name, _ in parsed:
                if name not in names:
                    names.append(name)
            rows.append(dict(parsed))

    columns = {
        name: np.array([row.get(name, np.nan) for row in rows], dtype=float) for name in names
    }
    logger.debug("Read %d fit log entries from %s", len(rows), path)
    return FitLog(run_name=run_name, columns=columns)


@dataclass(frozen=True)
class ReadoutMatrices:
    """Trained factors-to-log-rates readout for one dataset.

    ``weights`` is stored as written by the trainer, ``[factors, channels]``.
    """

    dataset_name: str
    weights: np.ndarray
    bias: np.ndarray


def readout_keys(dataset_name: str) -> Tuple[str, str]:
    stem = f"LFADS_glm_fac_2_logrates_{dataset_name}.h5"
    return f"{stem}_W:0", f"{stem}_b:0"


def load_readout_matrices(path: Path, dataset_names: Sequence[str]) -> List[ReadoutMatrices]:
    """Read each dataset's readout weights and bias from ``model_params``."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Model parameter file {path} not found; write the model parameters first"
        )
    out: List[ReadoutMatrices] = []
    with h5py.File(path, "r") as h5:
        for name in dataset_names:
            w_key, b_key = readout_keys(name)
            missing = [k for k in (w_key, b_key) if k not in h5]
            if missing:
                raise KeyError(f"{path} lacks readout entries for dataset {name}: {', '.join(missing)}")
            out.append(
                ReadoutMatrices(
                    dataset_name=name,
                    weights=np.asarray(h5[w_key][()]),
                    bias=np.asarray(h5[b_key][()]).reshape(-1),
                )
            )
    return out
