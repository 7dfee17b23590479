from __future__ import annotations

import numpy as np
import pytest

from lfadsprep.sequences import (
    RawCounts,
    SequenceRecord,
    build_sequence_records,
    check_sequence_struct,
    dataset_bin_width,
)
from lfadsprep.utils.errors import SequenceDataError


def _raw(n_trials=4, n_channels=3, n_time=6, **kwargs) -> RawCounts:
    counts = np.arange(n_trials * n_channels * n_time, dtype=np.int64).reshape(
        n_trials, n_channels, n_time
    )
    return RawCounts(counts=counts, **kwargs)


def test_build_splits_trials_and_defaults_time_vector():
    records = build_sequence_records(_raw(), run_name="r", dataset_name="d")

    assert len(records) == 4
    assert records[0].counts.shape == (3, 6)
    np.testing.assert_array_equal(records[0].time_ms, np.arange(1, 7, dtype=float))
    assert records[0].bin_width_ms == 1.0
    assert records[2].condition_id is None


def test_build_keeps_condition_truth_and_inputs():
    raw = _raw(
        time_vec_ms=np.arange(6) * 10.0,
        condition_id=np.array([1, 2, 1, 2]),
        truth=np.ones((4, 3, 6)),
        external_inputs=np.zeros((4, 2, 6)),
    )

    records = build_sequence_records(raw, ext_input_dim=2)

    assert [r.condition_id for r in records] == [1, 2, 1, 2]
    assert isinstance(records[0].condition_id, int)
    assert records[1].bin_width_ms == 10.0
    assert records[3].ground_truth.shape == (3, 6)
    assert records[3].external_inputs.shape == (2, 6)


@pytest.mark.parametrize(
    "field",
    ["counts", "time"],
)
def test_build_rejects_nan(field):
    raw = _raw(time_vec_ms=np.arange(6, dtype=float))
    if field == "counts":
        raw.counts = raw.counts.astype(float)
        raw.counts[1, 2, 3] = np.nan
    else:
        raw.time_vec_ms[4] = np.nan

    with pytest.raises(SequenceDataError, match="NaN"):
        build_sequence_records(raw, run_name="run1", dataset_name="sessA")


def test_error_messages_name_run_and_dataset():
    raw = _raw(time_vec_ms=np.arange(5, dtype=float))

    with pytest.raises(SequenceDataError, match="Run run1: dataset sessA"):
        build_sequence_records(raw, run_name="run1", dataset_name="sessA")


@pytest.mark.parametrize(
    "kwargs, ext_dim, message",
    [
        ({"condition_id": [1, 2, 3]}, 0, "conditionId"),
        ({"truth": np.ones((4, 3, 5))}, 0, "truth shape"),
        ({"external_inputs": np.zeros((3, 2, 6))}, 2, "externalInputs shape"),
        ({"external_inputs": np.zeros((4, 2, 6))}, 1, "c_ext_input_dim"),
        ({}, 2, "no externalInputs"),
        ({"time_vec_ms": np.array([5.0, 4.0, 3.0, 2.0, 1.0, 0.0])}, 0, "bin width"),
    ],
)
def test_build_rejects_inconsistent_inputs(kwargs, ext_dim, message):
    with pytest.raises(SequenceDataError, match=message):
        build_sequence_records(_raw(**kwargs), ext_input_dim=ext_dim)


def test_build_rejects_wrong_rank():
    with pytest.raises(SequenceDataError, match="rank-3"):
        build_sequence_records(RawCounts(counts=np.zeros((3, 4))))


def test_check_sequence_struct_accepts_legacy_dicts():
    legacy = [
        {"y": np.zeros((2, 4)), "y_time": np.arange(4.0), "params": {"dtMS": 2.0}, "conditionId": 7},
        {"y": np.ones((2, 4)), "y_time": np.arange(4.0), "params": {"dtMS": 2.0}, "conditionId": 8},
    ]

    records = check_sequence_struct(legacy)

    assert all(isinstance(r, SequenceRecord) for r in records)
    assert dataset_bin_width(records) == 2.0
    assert records[1].condition_id == 8


def test_check_sequence_struct_requires_fields():
    with pytest.raises(SequenceDataError, match="missing counts"):
        check_sequence_struct([{"y_time": np.arange(3.0), "binWidthMs": 1.0}])
    with pytest.raises(SequenceDataError, match="binWidthMs"):
        check_sequence_struct([{"y": np.zeros((1, 3)), "y_time": np.arange(3.0)}])


def test_check_sequence_struct_requires_uniform_bin_width():
    records = [
        {"counts": np.zeros((1, 3)), "time_ms": np.arange(3.0), "bin_width_ms": 1.0},
        {"counts": np.zeros((1, 3)), "time_ms": np.arange(3.0), "bin_width_ms": 2.0},
    ]
    with pytest.raises(SequenceDataError, match="bin"):
        check_sequence_struct(records)
