# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Common validation helpers shared across lfadsprep modules."""

from __future__ import annotations

from typing import Any, Type

import numpy as np

__all__ = ["require", "any_nan", "is_missing_label"]


def require(
    condition: bool, message: str, *, error: Type[Exception] = ValueError
) -> None:
    """Raise ``error`` (``ValueError`` by default) when *condition* is false."""
    if not condition:
        raise error(message)


def _to_ndarray(values: Any) -> np.ndarray:
    """Convert *values* to a :class:`~numpy.ndarray` without copying when possible."""

    if isinstance(values, np.ndarray):
        return values
    return np.asarray(values)


def any_nan(values: Any) -> bool:
    """Return ``True`` when a numeric array holds at least one NaN.

    Non-floating arrays cannot hold NaN and always return ``False``.
    """

    arr = _to_ndarray(values)
    if arr.size == 0 or not np.issubdtype(arr.dtype, np.floating):
        return False
    return bool(np.isnan(arr).any())


def is_missing_label(value: Any) -> bool:
    """Return ``True`` for condition labels that exclude a trial from averaging.

    ``None``, empty strings and floating NaN all count as missing.
    """

    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (float, np.floating)):
        return bool(np.isnan(value))
    return False
