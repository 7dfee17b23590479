from __future__ import annotations

import numpy as np
import pytest

from lfadsprep.sequences.rebin import rebin_factor, rebin_mean, rebin_sum, rebin_time
from lfadsprep.utils.errors import ConfigurationError


@pytest.mark.parametrize(
    ("target", "source", "expected"),
    [(10.0, 10.0, 1), (30.0, 10.0, 3), (20, 2, 10), (0.3, 0.1, 3)],
)
def test_rebin_factor_integer_ratios(target, source, expected):
    assert rebin_factor(target, source) == expected


@pytest.mark.parametrize(
    ("target", "source"),
    [(25.0, 10.0), (5.0, 10.0), (0.0, 10.0), (10.0, -1.0)],
)
def test_rebin_factor_rejects_bad_ratios(target, source):
    with pytest.raises(ConfigurationError):
        rebin_factor(target, source)


def test_rebin_sum_drops_partial_bin():
    arr = np.arange(2 * 7).reshape(2, 7)

    out = rebin_sum(arr, 3)

    np.testing.assert_array_equal(out, [[0 + 1 + 2, 3 + 4 + 5], [7 + 8 + 9, 10 + 11 + 12]])


def test_rebin_mean_averages_groups():
    arr = np.array([[1.0, 3.0, 5.0, 7.0]])

    np.testing.assert_allclose(rebin_mean(arr, 2), [[2.0, 6.0]])


def test_rebin_time_takes_every_nth_entry():
    time_ms = np.arange(10.0, 210.0, 10.0)

    np.testing.assert_array_equal(rebin_time(time_ms, 4), time_ms[::4])
    assert rebin_time(time_ms, 4)[1] == 50.0


def test_rebin_time_matches_rebinned_length():
    time_ms = np.arange(10.0, 210.0, 10.0)
    counts = np.ones((2, 3, 20))

    rebinned = rebin_time(time_ms, 3)

    assert rebinned.shape[0] == rebin_sum(counts, 3).shape[-1] == 6
    np.testing.assert_array_equal(rebinned, time_ms[::3][:6])
    np.testing.assert_array_equal(rebin_time(time_ms, 1), time_ms)
