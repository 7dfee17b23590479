"""Tests for :mod:`lfadsprep.utils.validation`."""

from __future__ import annotations

import math

import numpy as np
import pytest

from lfadsprep.utils.errors import SequenceDataError
from lfadsprep.utils.validation import any_nan, is_missing_label, require


def test_require_raises_requested_error() -> None:
    require(True, "never raised")
    with pytest.raises(SequenceDataError, match="bad counts"):
        require(False, "bad counts", error=SequenceDataError)
    with pytest.raises(ValueError):
        require(False, "default error type")


def test_any_nan_ignores_integer_arrays() -> None:
    assert any_nan(np.array([1, 2, 3])) is False
    assert any_nan(np.array([1.0, np.nan])) is True
    assert any_nan([]) is False


@pytest.mark.parametrize("value", [None, "", "   ", math.nan, np.float64("nan")])
def test_is_missing_label_true_for_excluded_labels(value) -> None:
    assert is_missing_label(value) is True


@pytest.mark.parametrize("value", [0, 3, 2.5, "reach", np.int64(1)])
def test_is_missing_label_false_for_real_labels(value) -> None:
    assert is_missing_label(value) is False
