# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

"""Integer rebinning of time-binned arrays along their last axis."""

import math

import numpy as np

from ..utils.errors import ConfigurationError

__all__ = ["rebin_factor", "rebin_sum", "rebin_mean", "rebin_time"]

_RATIO_TOL = 1e-9


def rebin_factor(target_bin_ms: float, source_bin_ms: float) -> int:
    """Return ``target_bin_ms / source_bin_ms`` as a positive integer.

    Raises :class:`ConfigurationError` when the ratio is not a whole number
    or the target bin is finer than the source bin.
    """
    if source_bin_ms <= 0 or target_bin_ms <= 0:
        raise ConfigurationError(
            f"Bin widths must be positive (target={target_bin_ms}, source={source_bin_ms})"
        )
    ratio = float(target_bin_ms) / float(source_bin_ms)
    factor = int(round(ratio))
    if factor < 1 or not math.isclose(ratio, factor, rel_tol=0.0, abs_tol=_RATIO_TOL * max(1.0, ratio)):
        raise ConfigurationError(
            f"Bin width {target_bin_ms} ms is not an integer multiple of "
            f"input bin width {source_bin_ms} ms (ratio {ratio:g})"
        )
    return factor


def _grouped(arr: np.ndarray, factor: int) -> np.ndarray:
    arr = np.asarray(arr)
    n_out = arr.shape[-1] // factor
    trimmed = arr[..., : n_out * factor]
    return trimmed.reshape(*arr.shape[:-1], n_out, factor)


def rebin_sum(arr: np.ndarray, factor: int) -> np.ndarray:
    """Sum adjacent bins; a trailing partial bin is dropped."""
    if factor == 1:
        return np.asarray(arr)
    return _grouped(arr, factor).sum(axis=-1)


def rebin_mean(arr: np.ndarray, factor: int) -> np.ndarray:
    """Average adjacent bins; a trailing partial bin is dropped."""
    if factor == 1:
        return np.asarray(arr)
    return _grouped(arr, factor).mean(axis=-1)


def rebin_time(time_ms: np.ndarray, factor: int) -> np.ndarray:
    """Subsample a time vector by ``factor`` (the first bin of each group).

    A trailing partial group is dropped, as in :func:`rebin_sum`, so the
    result has one entry per rebinned bin.
    """
    time_ms = np.asarray(time_ms)
    n_out = time_ms.shape[-1] // factor
    return time_ms[: n_out * factor : factor]
