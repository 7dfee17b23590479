from __future__ import annotations

from pathlib import Path

import pytest

from lfadsprep.params import RunConfig
from lfadsprep.paths import (
    CurrentLayout,
    LegacyLayout,
    RunPaths,
    SharedDataLayout,
    select_layout,
)
from lfadsprep.utils.errors import ConfigurationError

ROOT = Path("/collection")


@pytest.mark.parametrize(
    ("version", "expected"),
    [
        (1, LegacyLayout),
        (2, LegacyLayout),
        (3, SharedDataLayout),
        (20171106, SharedDataLayout),
        (20171107, CurrentLayout),
        (20190809, CurrentLayout),
    ],
)
def test_select_layout_thresholds(version, expected):
    layout = select_layout(version)
    assert type(layout) is expected
    assert layout.version == version


@pytest.mark.parametrize("version", [0, -5, "newest"])
def test_select_layout_rejects_bad_versions(version):
    with pytest.raises(ConfigurationError):
        select_layout(version)


def _paths(version):
    return RunPaths.for_version(ROOT, "run1", "param_aaaaaa", "data_bbbbbb", version)


def test_current_layout_paths():
    paths = _paths(20171107)

    assert paths.run_dir == ROOT / "param_aaaaaa" / "run1"
    assert paths.data_dir == ROOT / "data_bbbbbb" / "run1"
    assert paths.sequence_dir == ROOT / "data_bbbbbb" / "run1" / "seq"
    assert paths.input_file("sessA") == paths.data_dir / "lfads_sessA.h5"
    assert paths.info_file("sessA") == paths.data_dir / "inputInfo_sessA.json"
    assert paths.input_link("sessA") == paths.run_dir / "lfadsInput" / "lfads_sessA.h5"
    assert paths.info_link("sessA") == paths.run_dir / "lfadsInput" / "inputInfo_sessA.json"
    assert paths.sequence_file("sessA") == paths.sequence_dir / "seq_sessA.npz"


def test_shared_data_layout_paths():
    paths = _paths(5)

    assert paths.run_dir == ROOT / "param_aaaaaa" / "run1"
    assert paths.data_dir == ROOT / "data_bbbbbb"
    assert paths.sequence_dir == ROOT / "data_bbbbbb" / "seq"
    assert paths.input_file_name("sessA") == "lfads_sessA.h5"


def test_version_three_keeps_sequences_with_the_run():
    assert _paths(3).sequence_dir == ROOT / "param_aaaaaa" / "run1" / "seq"


def test_legacy_layout_paths():
    paths = _paths(1)

    assert paths.run_dir == ROOT / "run1"
    assert paths.data_dir == ROOT / "data_bbbbbb"
    assert paths.sequence_dir == ROOT / "run1" / "seq"
    assert paths.input_file_name("sessA") == "lfads_run1__param_aaaaaa_sessA_spikes.h5"
    assert paths.sequence_file_name("sessA") == "run1__param_aaaaaa_sessA_seq.npz"
    train, valid = paths.posterior_file_names("sessA", "posterior_sample_and_average")
    assert train == "model_runs_run1__param_aaaaaa_sessA_spikes.h5_train_posterior_sample"
    assert valid.endswith("_valid_posterior_sample")


def test_run_files():
    paths = _paths(20171107)

    assert paths.lfads_output_dir == paths.run_dir / "lfadsOutput"
    assert paths.train_script.name == "lfads_train.sh"
    assert paths.posterior_mean_script.name == "lfads_posterior_mean_sample.sh"
    assert paths.write_model_params_script.name == "lfads_write_model_params.sh"
    assert paths.lfads_log == paths.run_dir / "lfads.out"
    assert paths.model_params == paths.lfads_output_dir / "model_params"
    assert paths.fit_log == paths.lfads_output_dir / "fitlog.csv"


@pytest.mark.parametrize(
    ("kind", "suffix"),
    [
        ("posterior_sample_and_average", "posterior_sample_and_average"),
        ("posterior_push_mean", "posterior_push_mean"),
    ],
)
def test_posterior_file_names(kind, suffix):
    train, valid = _paths(20171107).posterior_files("sessA", kind)

    assert train.name == f"model_runs_sessA.h5_train_{suffix}"
    assert valid.name == f"model_runs_sessA.h5_valid_{suffix}"
    assert train.parent.name == "lfadsOutput"


def test_unknown_posterior_kind_rejected():
    with pytest.raises(ConfigurationError):
        _paths(20171107).posterior_file_names("sessA", "posterior_mode")


def test_training_fields_share_data_dir_but_not_run_dir():
    base = RunConfig(spike_bin_ms=20.0)
    tweaked = base.with_updates(c_gen_dim=32)

    def paths_for(config):
        return RunPaths.for_version(
            ROOT, "run1", config.param_hash_name, config.input_data_hash_name, 20171107
        )

    assert paths_for(base).data_dir == paths_for(tweaked).data_dir
    assert paths_for(base).run_dir != paths_for(tweaked).run_dir

    rebinned = base.with_updates(spike_bin_ms=40.0)
    assert paths_for(base).data_dir != paths_for(rebinned).data_dir
