# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

"""Deterministic train/validation split of a dataset's trials."""

from typing import Tuple

import numpy as np

from ..utils.errors import ConfigurationError
from ..utils.validation import require

__all__ = ["partition_trials", "required_trial_count"]


def partition_trials(n_trials: int, train_to_test_ratio: int) -> Tuple[np.ndarray, np.ndarray]:
    """Split ``n_trials`` into 1-based ``(train, valid)`` trial numbers.

    Every ``train_to_test_ratio + 1``-th trial starting from trial 1 is held
    out for validation; the rest are used for training.
    """
    require(n_trials >= 0, f"n_trials must be >= 0, got {n_trials}", error=ConfigurationError)
    require(
        train_to_test_ratio >= 1,
        f"train_to_test_ratio must be >= 1, got {train_to_test_ratio}",
        error=ConfigurationError,
    )
    all_trials = np.arange(1, n_trials + 1, dtype=np.int64)
    valid = np.arange(1, n_trials + 1, int(train_to_test_ratio) + 1, dtype=np.int64)
    train = np.setdiff1d(all_trials, valid, assume_unique=True)
    return train, valid


def required_trial_count(batch_size: int, train_to_test_ratio: int) -> int:
    """Trials needed so the trainer never samples a batch with replacement."""
    return int(batch_size) * (1 + int(train_to_test_ratio))
