# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

"""Per-dataset posterior means written by the trainer, in original trial order."""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import h5py
import numpy as np

from ..sequences.schema import SequenceRecord
from ..utils.errors import SequenceDataError

__all__ = ["PosteriorMeans", "attach_to_records", "merge_splits", "read_posterior_file"]

# trainer dataset name -> attribute
_FIELDS = {
    "factors": "factors",
    "output_dist_params": "rates",
    "gen_states": "generator_states",
    "gen_ics": "generator_ics",
    "controller_outputs": "controller_outputs",
    "post_g0_mean": "post_g0_mean",
    "post_g0_logvar": "post_g0_logvar",
}
_REQUIRED = ("factors", "output_dist_params", "gen_states", "gen_ics")


def read_posterior_file(path: Path) -> Dict[str, np.ndarray]:
    """Read the known arrays from one posterior-mean HDF5 file."""
    out: Dict[str, np.ndarray] = {}
    with h5py.File(path, "r") as h5:
        missing = [name for name in _REQUIRED if name not in h5]
        if missing:
            raise KeyError(f"Posterior mean file {path} lacks datasets: {', '.join(missing)}")
        for name in _FIELDS:
            if name in h5:
                out[name] = np.asarray(h5[name][()])
    return out


def merge_splits(
    train: np.ndarray,
    valid: np.ndarray,
    train_inds: np.ndarray,
    valid_inds: np.ndarray,
) -> np.ndarray:
    """Interleave train/valid arrays (trials first) back into trial order.

    Indices are 1-based trial numbers.
    """
    train = np.asarray(train)
    valid = np.asarray(valid)
    n_trials = int(len(train_inds) + len(valid_inds))
    merged = np.empty((n_trials,) + train.shape[1:], dtype=np.result_type(train, valid))
    merged[np.asarray(train_inds, dtype=np.int64) - 1] = train
    merged[np.asarray(valid_inds, dtype=np.int64) - 1] = valid
    return merged


@dataclass
class PosteriorMeans:
    """Posterior means for one dataset.

    Arrays are ``[trials, time, dim]`` (``generator_ics`` is
    ``[trials, gen_dim]``). ``rates`` are spikes per second. A default
    instance is an invalid placeholder used when output files are missing.
    """

    dataset_name: str = ""
    kind: str = ""
    time_ms: Optional[np.ndarray] = None
    factors: Optional[np.ndarray] = None
    rates: Optional[np.ndarray] = None
    generator_states: Optional[np.ndarray] = None
    generator_ics: Optional[np.ndarray] = None
    controller_outputs: Optional[np.ndarray] = None
    post_g0_mean: Optional[np.ndarray] = None
    post_g0_logvar: Optional[np.ndarray] = None
    train_inds: Optional[np.ndarray] = None
    valid_inds: Optional[np.ndarray] = None
    condition_ids: List[Any] = field(default_factory=list)
    raw_counts: Optional[np.ndarray] = None
    external_inputs: Optional[np.ndarray] = None
    is_valid: bool = False

    @property
    def n_trials(self) -> int:
        return 0 if self.factors is None else int(self.factors.shape[0])

    @property
    def n_factors(self) -> int:
        return 0 if self.factors is None else int(self.factors.shape[-1])

    @property
    def n_time(self) -> int:
        return 0 if self.factors is None else int(self.factors.shape[1])

    @classmethod
    def from_files(
        cls,
        train_file: Path,
        valid_file: Path,
        *,
        train_inds: np.ndarray,
        valid_inds: np.ndarray,
        spike_bin_ms: float,
        time_ms: np.ndarray,
        dataset_name: str = "",
        kind: str = "",
        condition_ids: Optional[List[Any]] = None,
        raw_counts: Optional[np.ndarray] = None,
        external_inputs: Optional[np.ndarray] = None,
    ) -> "PosteriorMeans":
        train = read_posterior_file(train_file)
        valid = read_posterior_file(valid_file)
        merged: Dict[str, np.ndarray] = {}
        for name, attr in _FIELDS.items():
            if name in train and name in valid:
                merged[attr] = merge_splits(train[name], valid[name], train_inds, valid_inds)
        # trainer writes per-bin rates
        merged["rates"] = merged["rates"] * (1000.0 / float(spike_bin_ms))
        return cls(
            dataset_name=dataset_name,
            kind=kind,
            time_ms=np.asarray(time_ms, dtype=float),
            train_inds=np.asarray(train_inds, dtype=np.int64),
            valid_inds=np.asarray(valid_inds, dtype=np.int64),
            condition_ids=list(condition_ids or []),
            raw_counts=raw_counts,
            external_inputs=external_inputs,
            is_valid=True,
            **merged,
        )


def _trial_slice(arr: Optional[np.ndarray], trial: int) -> Optional[np.ndarray]:
    if arr is None:
        return None
    # [trials, time, dim] -> [dim, time]; [trials, dim] -> [dim]
    return arr[trial].T if arr.ndim == 3 else arr[trial]


def attach_to_records(
    records: Sequence[SequenceRecord], means: PosteriorMeans
) -> List[SequenceRecord]:
    """Return copies of ``records`` carrying each trial's posterior means.

    Per-trial arrays follow the record orientation, ``[dim, time]``, on the
    rebinned time axis of ``means.time_ms``.
    """
    if not means.is_valid:
        raise SequenceDataError(
            f"Posterior means for dataset {means.dataset_name} are not loaded"
        )
    if means.n_trials != len(records):
        raise SequenceDataError(
            f"Dataset {means.dataset_name}: {means.n_trials} posterior trials "
            f"for {len(records)} sequence records"
        )
    return [
        replace(
            record,
            rates=_trial_slice(means.rates, i),
            factors=_trial_slice(means.factors, i),
            generator_states=_trial_slice(means.generator_states, i),
            generator_ics=_trial_slice(means.generator_ics, i),
            controller_outputs=_trial_slice(means.controller_outputs, i),
        )
        for i, record in enumerate(records)
    ]
