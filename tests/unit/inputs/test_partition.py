from __future__ import annotations

import numpy as np
import pytest

from lfadsprep.inputs import partition_trials, required_trial_count
from lfadsprep.utils.errors import ConfigurationError


def test_ten_trials_ratio_three():
    train, valid = partition_trials(10, 3)

    assert valid.tolist() == [1, 5, 9]
    assert train.tolist() == [2, 3, 4, 6, 7, 8, 10]


@pytest.mark.parametrize(("n", "ratio"), [(1, 4), (7, 1), (100, 4), (0, 2)])
def test_partition_covers_every_trial_once(n, ratio):
    train, valid = partition_trials(n, ratio)

    merged = np.sort(np.concatenate([train, valid]))
    np.testing.assert_array_equal(merged, np.arange(1, n + 1))
    assert np.intersect1d(train, valid).size == 0


def test_partition_rejects_bad_ratio():
    with pytest.raises(ConfigurationError):
        partition_trials(10, 0)


def test_required_trial_count():
    assert required_trial_count(4, 4) == 20
