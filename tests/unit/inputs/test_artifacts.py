from __future__ import annotations

import h5py
import numpy as np
import pytest

from lfadsprep.inputs import (
    channel_space_bias,
    load_input_info,
    partition_trials,
    write_input_info,
    write_lfads_input_file,
)
from lfadsprep.sequences import RawCounts, build_sequence_records
from lfadsprep.utils.errors import ConfigurationError


def _records(n_trials=6, n_channels=3, n_time=8, **kwargs):
    counts = np.arange(n_trials * n_channels * n_time, dtype=np.int64).reshape(
        n_trials, n_channels, n_time
    )
    raw = RawCounts(
        counts=counts,
        time_vec_ms=10.0 * np.arange(1, n_time + 1),
        condition_id=list(range(n_trials)),
        **kwargs,
    )
    return build_sequence_records(raw, ext_input_dim=2 if "external_inputs" in kwargs else 0)


def test_channel_space_bias_reproduces_intercept():
    rng = np.random.default_rng(3)
    weights = rng.normal(size=(6, 2))
    bias = np.array([0.5, -1.0])
    x = rng.normal(size=(4, 6))

    bias_c = channel_space_bias(weights, bias)

    assert bias_c.shape == (6,)
    np.testing.assert_allclose((x - bias_c) @ weights, x @ weights + bias, atol=1e-10)


def test_input_file_layout(tmp_path):
    records = _records(
        truth=np.ones((6, 3, 8)),
        external_inputs=np.ones((6, 2, 8)),
    )
    train, valid = partition_trials(len(records), 2)
    weights = np.arange(6, dtype=float).reshape(3, 2) + 1.0
    path = tmp_path / "lfads_sessA.h5"

    write_lfads_input_file(
        path,
        records,
        train_trials=train,
        valid_trials=valid,
        spike_bin_ms=20.0,
        input_bin_ms=10.0,
        alignment_matrix=weights,
        alignment_bias=np.array([1.0, 2.0]),
        extra={"condition_labels": np.arange(6)},
    )

    with h5py.File(path, "r") as h5:
        assert h5["train_data"].shape == (4, 4, 3)
        assert h5["valid_data"].shape == (2, 4, 3)
        np.testing.assert_array_equal(h5["valid_inds"][()], [0, 3])
        np.testing.assert_array_equal(h5["train_inds"][()], [1, 2, 4, 5])
        # trial 0, neuron 0: bins [0, 1] summed
        assert h5["valid_data"][0, 0, 0] == 0 + 1
        assert h5["train_truth"].shape == (4, 4, 3)
        np.testing.assert_allclose(h5["valid_ext_input"][()], 1.0)
        np.testing.assert_array_equal(h5["alignment_matrix_cxf"][()], weights)
        assert h5["alignment_bias_c"].shape == (3,)
        np.testing.assert_array_equal(h5["condition_labels"][()], np.arange(6))
        assert h5.attrs["bin_size_ms"] == 20.0
        assert h5.attrs["conversion_factor"] == 1.0


def test_input_file_rejects_non_integer_rebin(tmp_path):
    records = _records()
    train, valid = partition_trials(len(records), 2)

    with pytest.raises(ConfigurationError):
        write_lfads_input_file(
            tmp_path / "lfads_sessA.h5",
            records,
            train_trials=train,
            valid_trials=valid,
            spike_bin_ms=25.0,
            input_bin_ms=10.0,
        )
    assert list(tmp_path.iterdir()) == []


def test_extra_fields_cannot_shadow_data(tmp_path):
    records = _records()
    train, valid = partition_trials(len(records), 2)

    with pytest.raises(ValueError, match="reserved"):
        write_lfads_input_file(
            tmp_path / "lfads_sessA.h5",
            records,
            train_trials=train,
            valid_trials=valid,
            spike_bin_ms=10.0,
            input_bin_ms=10.0,
            extra={"train_data": np.zeros(2)},
        )


def test_input_info_round_trip(tmp_path):
    records = _records()
    train, valid = partition_trials(len(records), 2)
    path = tmp_path / "inputInfo_sessA.json"

    write_input_info(
        path,
        records,
        train_trials=train,
        valid_trials=valid,
        input_data_hash="abc123",
        input_bin_ms=10.0,
    )
    info = load_input_info(path)

    np.testing.assert_array_equal(info.train_inds, train)
    np.testing.assert_array_equal(info.valid_inds, valid)
    assert info.param_input_data_hash == "abc123"
    assert info.seq_bin_size_ms == 10.0
    np.testing.assert_array_equal(info.seq_time_vector, 10.0 * np.arange(1, 9))
    assert info.condition_id == list(range(6))
    assert info.counts.shape == (6, 3, 8)
    assert info.truth is None
    assert info.n_trials == 6
