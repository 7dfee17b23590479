# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Convert raw per-dataset spike tensors into validated sequence records.

Two entry points exist:

``build_sequence_records``
    Validates a :class:`RawCounts` tensor produced by a data source and
    slices it into one :class:`SequenceRecord` per trial.

``check_sequence_struct``
    Re-validates records loaded from a cache file, including the legacy
    dict layout (``y``/``y_time``/``params.dtMS``).

Any violation raises :class:`SequenceDataError`; no partial result is ever
returned.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Sequence

import numpy as np

from ..utils.errors import SequenceDataError
from ..utils.validation import any_nan, require
from .schema import RawCounts, SequenceRecord

logger = logging.getLogger(__name__)

__all__ = ["build_sequence_records", "check_sequence_struct", "dataset_bin_width"]


def _context(run_name: str | None, dataset_name: str | None) -> str:
    return f"Run {run_name or '?'}: dataset {dataset_name or '?'}"


def _fail_unless(condition: bool, ctx: str, message: str) -> None:
    require(condition, f"{ctx}: {message}", error=SequenceDataError)


def build_sequence_records(
    raw: RawCounts,
    *,
    ext_input_dim: int = 0,
    run_name: str | None = None,
    dataset_name: str | None = None,
) -> List[SequenceRecord]:
    """Validate ``raw`` and split it into one record per trial."""

    ctx = _context(run_name, dataset_name)
    _fail_unless(isinstance(raw, RawCounts), ctx, "data source must return RawCounts")
    _fail_unless(raw.counts is not None, ctx, "spike counts are missing")

    counts = np.asarray(raw.counts)
    _fail_unless(
        np.issubdtype(counts.dtype, np.number) and counts.ndim == 3,
        ctx,
        f"counts must be a rank-3 numeric tensor, got shape {counts.shape} dtype {counts.dtype}",
    )
    _fail_unless(not any_nan(counts), ctx, "spike counts have NaN values")
    n_trials, n_channels, n_time = counts.shape

    if raw.time_vec_ms is None:
        time_vec = np.arange(1, n_time + 1, dtype=float)
    else:
        time_vec = np.asarray(raw.time_vec_ms)
        _fail_unless(
            np.issubdtype(time_vec.dtype, np.number) and time_vec.ndim == 1,
            ctx,
            "timeVecMs must be a numeric vector",
        )
    _fail_unless(not any_nan(time_vec), ctx, "time vector has NaN values")
    _fail_unless(
        time_vec.size == n_time,
        ctx,
        f"timeVecMs length {time_vec.size} must match counts time dimension {n_time}",
    )
    _fail_unless(n_time >= 2, ctx, "at least two time bins are needed to derive the bin width")
    bin_width_ms = float(time_vec[1] - time_vec[0])
    _fail_unless(bin_width_ms > 0, ctx, f"bin width must be positive, got {bin_width_ms}")

    condition_ids: Sequence[Any] | None = None
    if raw.condition_id is not None:
        condition_ids = list(np.asarray(raw.condition_id, dtype=object).reshape(-1))
        _fail_unless(
            len(condition_ids) == n_trials,
            ctx,
            f"conditionId has {len(condition_ids)} entries for {n_trials} trials",
        )

    truth = None
    if raw.truth is not None:
        truth = np.asarray(raw.truth)
        _fail_unless(
            truth.shape == counts.shape,
            ctx,
            f"truth shape {truth.shape} must equal counts shape {counts.shape}",
        )

    ext = None
    if raw.external_inputs is not None:
        ext = np.asarray(raw.external_inputs)
        _fail_unless(
            ext.ndim == 3 and ext.shape[0] == n_trials and ext.shape[2] == n_time,
            ctx,
            f"externalInputs shape {ext.shape} must match counts along trials and time",
        )
        _fail_unless(
            ext.shape[1] == ext_input_dim,
            ctx,
            f"externalInputs has {ext.shape[1]} inputs but c_ext_input_dim is {ext_input_dim}",
        )
    else:
        _fail_unless(
            ext_input_dim == 0,
            ctx,
            f"c_ext_input_dim is {ext_input_dim} but no externalInputs were generated",
        )

    records: List[SequenceRecord] = []
    for i in range(n_trials):
        records.append(
            SequenceRecord(
                counts=counts[i],
                time_ms=time_vec,
                bin_width_ms=bin_width_ms,
                condition_id=_scalar(condition_ids[i]) if condition_ids is not None else None,
                ground_truth=truth[i] if truth is not None else None,
                external_inputs=ext[i] if ext is not None else None,
            )
        )
    logger.debug("%s: built %d sequence records", ctx, n_trials)
    return records


def _scalar(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def _record_from_mapping(entry: Mapping[str, Any], ctx: str, index: int) -> SequenceRecord:
    if "counts" in entry:
        counts = entry["counts"]
    elif "y" in entry:
        counts = entry["y"]
    else:
        raise SequenceDataError(f"{ctx}: sequence record {index} missing counts field")

    if "time_ms" in entry:
        time_ms = entry["time_ms"]
    elif "y_time" in entry:
        time_ms = entry["y_time"]
    else:
        raise SequenceDataError(f"{ctx}: sequence record {index} missing time field")

    bin_width = entry.get("bin_width_ms", entry.get("binWidthMs"))
    if bin_width is None:
        params = entry.get("params")
        if isinstance(params, Mapping) and "dtMS" in params:
            bin_width = params["dtMS"]
        else:
            raise SequenceDataError(f"{ctx}: sequence record {index} missing binWidthMs field")

    return SequenceRecord(
        counts=np.asarray(counts),
        time_ms=np.asarray(time_ms),
        bin_width_ms=float(bin_width),
        condition_id=_scalar(entry.get("condition_id", entry.get("conditionId"))),
        ground_truth=_optional(entry.get("ground_truth", entry.get("y_true"))),
        external_inputs=_optional(entry.get("external_inputs", entry.get("externalInputs"))),
    )


def _optional(value: Any) -> np.ndarray | None:
    if value is None:
        return None
    return np.asarray(value)


def check_sequence_struct(
    records: Sequence[SequenceRecord | Mapping[str, Any]],
    *,
    run_name: str | None = None,
    dataset_name: str | None = None,
) -> List[SequenceRecord]:
    """Re-validate cached sequence data and normalize legacy dict entries."""

    ctx = _context(run_name, dataset_name)
    checked: List[SequenceRecord] = []
    for index, entry in enumerate(records):
        if isinstance(entry, SequenceRecord):
            record = entry
        elif isinstance(entry, Mapping):
            record = _record_from_mapping(entry, ctx, index)
        else:
            raise SequenceDataError(
                f"{ctx}: sequence record {index} has unsupported type {type(entry).__name__}"
            )
        _fail_unless(record.counts is not None, ctx, f"sequence record {index} missing counts field")
        _fail_unless(record.time_ms is not None, ctx, f"sequence record {index} missing time field")
        checked.append(record)

    widths = {float(r.bin_width_ms) for r in checked}
    _fail_unless(len(widths) <= 1, ctx, f"binWidthMs mismatch across trials: {sorted(widths)}")
    return checked


def dataset_bin_width(records: Sequence[SequenceRecord]) -> float:
    """Return the shared bin width of a checked dataset."""
    require(len(records) > 0, "dataset has no sequence records", error=SequenceDataError)
    return float(records[0].bin_width_ms)
