# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

"""Core per-trial data structures shared by builders, caches and alignment."""

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

import numpy as np

__all__ = ["ConditionId", "RawCounts", "SequenceRecord", "EXPORT", "ALIGNMENT", "MODES"]

EXPORT = "export"
ALIGNMENT = "alignment"
MODES = (EXPORT, ALIGNMENT)

ConditionId = Union[str, int, float, None]


@dataclass
class RawCounts:
    """Binned spike tensor for one dataset as produced by a data source.

    ``counts`` holds total spike counts (not rates), since rebinning sums
    adjacent bins.
    """

    counts: np.ndarray  # [trials, channels, time]
    time_vec_ms: Optional[np.ndarray] = None  # [time]
    condition_id: Optional[Sequence[Any]] = None  # [trials]
    truth: Optional[np.ndarray] = None  # [trials, channels, time]
    external_inputs: Optional[np.ndarray] = None  # [trials, inputs, time]


@dataclass
class SequenceRecord:
    """Canonical single-trial bundle of counts, time vector and metadata."""

    counts: np.ndarray  # [channels, time]
    time_ms: np.ndarray  # [time]
    bin_width_ms: float
    condition_id: ConditionId = None
    ground_truth: Optional[np.ndarray] = None  # [channels, time]
    external_inputs: Optional[np.ndarray] = None  # [inputs, time]

    # filled from posterior means; never written to sequence files
    rates: Optional[np.ndarray] = None  # [channels, rebinned time]
    factors: Optional[np.ndarray] = None  # [factors, rebinned time]
    generator_states: Optional[np.ndarray] = None  # [gen_dim, rebinned time]
    generator_ics: Optional[np.ndarray] = None  # [gen_dim]
    controller_outputs: Optional[np.ndarray] = None  # [co_dim, rebinned time]

    @property
    def n_channels(self) -> int:
        return int(self.counts.shape[0])

    @property
    def n_time(self) -> int:
        return int(self.counts.shape[1])
