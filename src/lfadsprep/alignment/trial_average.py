# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

"""Condition-averaged responses used to seed multi-session alignment."""

import numbers
from typing import Any, Dict, Hashable, List, Sequence, Tuple

import numpy as np

from ..sequences.rebin import rebin_sum
from ..sequences.schema import SequenceRecord
from ..utils.validation import is_missing_label

__all__ = ["condition_key", "sort_conditions", "group_trials", "condition_averages"]


def condition_key(value: Any) -> Hashable | None:
    """Normalize a condition label, or return ``None`` when it is excluded.

    Integral numbers collapse to ``int`` so that ``3`` and ``3.0`` group
    together across datasets.
    """
    if is_missing_label(value):
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, numbers.Real):
        as_float = float(value)
        return int(as_float) if as_float.is_integer() else as_float
    return str(value)


def sort_conditions(keys: Sequence[Hashable]) -> List[Hashable]:
    """Numbers first in numeric order, then strings lexicographically."""
    return sorted(
        set(keys),
        key=lambda k: (0, float(k), "") if isinstance(k, numbers.Real) else (1, 0.0, str(k)),
    )


def group_trials(records: Sequence[SequenceRecord]) -> Dict[Hashable, List[int]]:
    groups: Dict[Hashable, List[int]] = {}
    for index, record in enumerate(records):
        key = condition_key(record.condition_id)
        if key is None:
            continue
        groups.setdefault(key, []).append(index)
    return groups


def condition_averages(
    records: Sequence[SequenceRecord],
    conditions: Sequence[Hashable],
    *,
    rebin: int = 1,
) -> Tuple[np.ndarray, np.ndarray]:
    """Return the ``[channels, conditions, time]`` trial average and a presence mask.

    Conditions without any trial in ``records`` are filled with NaN and
    flagged ``False`` in the mask.
    """
    groups = group_trials(records)
    first = rebin_sum(np.asarray(records[0].counts, dtype=float), rebin)
    n_channels, n_time = first.shape
    out = np.full((n_channels, len(conditions), n_time), np.nan, dtype=float)
    present = np.zeros(len(conditions), dtype=bool)
    for c, key in enumerate(conditions):
        members = groups.get(key)
        if not members:
            continue
        stack = np.stack(
            [rebin_sum(np.asarray(records[i].counts, dtype=float), rebin) for i in members],
            axis=0,
        )
        out[:, c, :] = stack.mean(axis=0)
        present[c] = True
    return out, present
