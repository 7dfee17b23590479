# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Canonical per-dataset input files.

Two files are produced for every dataset:

``lfads_<dataset>.h5``
    The trainer input. Counts are rebinned by summing to the run's bin
    width and stored as ``[trials, time, neurons]`` split into train and
    valid groups. Alignment seeds, when present, are stored as
    ``alignment_matrix_cxf`` and ``alignment_bias_c``.

``inputInfo_<dataset>.json``
    Bookkeeping needed after training: 1-based trial numbers, the input
    data hash, the sequence time vector and the raw counts and condition
    labels, so posterior means can be loaded without regenerating data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import h5py
import numpy as np
from scipy import linalg

from ..sequences.rebin import rebin_factor, rebin_mean, rebin_sum
from ..sequences.schema import SequenceRecord
from ..utils.errors import SequenceDataError
from ..utils.json_io import load_json_file, write_json_file
from ..utils.path_utils import atomic_output_path

logger = logging.getLogger(__name__)

__all__ = [
    "InputInfo",
    "channel_space_bias",
    "write_lfads_input_file",
    "write_input_info",
    "load_input_info",
]

_RESERVED_DATASETS = {
    "train_data",
    "valid_data",
    "train_inds",
    "valid_inds",
    "train_truth",
    "valid_truth",
    "train_ext_input",
    "valid_ext_input",
    "alignment_matrix_cxf",
    "alignment_bias_c",
}


def channel_space_bias(weights: np.ndarray, bias: np.ndarray) -> np.ndarray:
    """Convert a regression intercept into the bias subtracted before the read-in.

    The trainer computes ``(x - bias_c) @ W``; matching ``x @ W + b`` needs
    ``bias_c = -pinv(W.T) @ b``.
    """
    weights = np.asarray(weights, dtype=float)
    bias = np.asarray(bias, dtype=float).reshape(-1)
    return -(linalg.pinv(weights.T) @ bias)


def _stack(records: Sequence[SequenceRecord], attr: str) -> Optional[np.ndarray]:
    values = [getattr(r, attr) for r in records]
    if all(v is None for v in values):
        return None
    if any(v is None for v in values):
        raise SequenceDataError(f"Field '{attr}' is present on some trials but not all")
    return np.stack([np.asarray(v) for v in values], axis=0)


def _to_trainer_order(arr: np.ndarray) -> np.ndarray:
    # [trials, channels, time] -> [trials, time, channels]
    return np.ascontiguousarray(np.transpose(arr, (0, 2, 1)))


def write_lfads_input_file(
    path: Path,
    records: Sequence[SequenceRecord],
    *,
    train_trials: np.ndarray,
    valid_trials: np.ndarray,
    spike_bin_ms: float,
    input_bin_ms: float,
    alignment_matrix: Optional[np.ndarray] = None,
    alignment_bias: Optional[np.ndarray] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> Path:
    """Write the HDF5 trainer input for one dataset.

    ``train_trials`` and ``valid_trials`` are 1-based trial numbers; the
    file stores them 0-based as ``train_inds`` and ``valid_inds``.
    """

    factor = rebin_factor(spike_bin_ms, input_bin_ms)
    counts = _stack(records, "counts")
    if counts is None:
        raise SequenceDataError(f"No trials to write to {path}")
    data = _to_trainer_order(rebin_sum(counts, factor))
    truth = _stack(records, "ground_truth")
    ext = _stack(records, "external_inputs")

    train_idx = np.asarray(train_trials, dtype=np.int64) - 1
    valid_idx = np.asarray(valid_trials, dtype=np.int64) - 1

    with atomic_output_path(path) as tmp:
        with h5py.File(tmp, "w") as h5:
            h5.create_dataset("train_data", data=data[train_idx], compression="gzip")
            h5.create_dataset("valid_data", data=data[valid_idx], compression="gzip")
            h5.create_dataset("train_inds", data=train_idx)
            h5.create_dataset("valid_inds", data=valid_idx)
            if truth is not None:
                truth = _to_trainer_order(rebin_sum(truth, factor))
                h5.create_dataset("train_truth", data=truth[train_idx])
                h5.create_dataset("valid_truth", data=truth[valid_idx])
            if ext is not None:
                ext = _to_trainer_order(rebin_mean(ext, factor))
                h5.create_dataset("train_ext_input", data=ext[train_idx])
                h5.create_dataset("valid_ext_input", data=ext[valid_idx])
            if alignment_matrix is not None:
                weights = np.asarray(alignment_matrix, dtype=float)
                h5.create_dataset("alignment_matrix_cxf", data=weights)
                if alignment_bias is not None:
                    h5.create_dataset(
                        "alignment_bias_c", data=channel_space_bias(weights, alignment_bias)
                    )
            for name, value in (extra or {}).items():
                if name in _RESERVED_DATASETS:
                    raise ValueError(f"Extra input field '{name}' collides with a reserved dataset")
                h5.create_dataset(name, data=np.asarray(value))
            h5.attrs["conversion_factor"] = 1.0
            h5.attrs["bin_size_ms"] = float(spike_bin_ms)

    logger.debug("Wrote %s (%d train, %d valid trials)", path, train_idx.size, valid_idx.size)
    return Path(path)


@dataclass
class InputInfo:
    """Contents of an ``inputInfo_<dataset>.json`` cache."""

    train_inds: np.ndarray  # 1-based
    valid_inds: np.ndarray  # 1-based
    param_input_data_hash: str
    seq_time_vector: Optional[np.ndarray]
    seq_bin_size_ms: Optional[float]
    condition_id: List[Any]
    counts: Optional[np.ndarray]  # [trials, channels, time]
    truth: Optional[np.ndarray] = None
    external_inputs: Optional[np.ndarray] = None

    @property
    def n_trials(self) -> int:
        return int(self.train_inds.size + self.valid_inds.size)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "trainInds": self.train_inds,
            "validInds": self.valid_inds,
            "paramInputDataHash": self.param_input_data_hash,
            "seq_timeVector": self.seq_time_vector,
            "seq_binSizeMs": self.seq_bin_size_ms,
            "conditionId": list(self.condition_id),
            "counts": self.counts,
        }
        if self.truth is not None:
            payload["truth"] = self.truth
        if self.external_inputs is not None:
            payload["externalInputs"] = self.external_inputs
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "InputInfo":
        def _array(key: str, dtype: Any = None) -> Optional[np.ndarray]:
            value = payload.get(key)
            return None if value is None else np.asarray(value, dtype=dtype)

        bin_size = payload.get("seq_binSizeMs")
        return cls(
            train_inds=np.asarray(payload.get("trainInds", []), dtype=np.int64),
            valid_inds=np.asarray(payload.get("validInds", []), dtype=np.int64),
            param_input_data_hash=str(payload.get("paramInputDataHash", "")),
            seq_time_vector=_array("seq_timeVector", float),
            seq_bin_size_ms=None if bin_size is None else float(bin_size),
            condition_id=list(payload.get("conditionId") or []),
            counts=_array("counts"),
            truth=_array("truth"),
            external_inputs=_array("externalInputs"),
        )


def write_input_info(
    path: Path,
    records: Sequence[SequenceRecord],
    *,
    train_trials: np.ndarray,
    valid_trials: np.ndarray,
    input_data_hash: str,
    input_bin_ms: float,
) -> InputInfo:
    """Write the JSON bookkeeping cache for one dataset and return it."""

    info = InputInfo(
        train_inds=np.asarray(train_trials, dtype=np.int64),
        valid_inds=np.asarray(valid_trials, dtype=np.int64),
        param_input_data_hash=input_data_hash,
        seq_time_vector=np.asarray(records[0].time_ms, dtype=float) if records else None,
        seq_bin_size_ms=float(input_bin_ms),
        condition_id=[r.condition_id for r in records],
        counts=_stack(records, "counts"),
        truth=_stack(records, "ground_truth"),
        external_inputs=_stack(records, "external_inputs"),
    )
    write_json_file(path, info.to_payload(), indent=None)
    return info


def load_input_info(path: Path) -> InputInfo:
    return InputInfo.from_payload(load_json_file(path))
