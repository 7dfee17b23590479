from __future__ import annotations

import json
import math
from pathlib import Path

import numpy as np
import pytest

from lfadsprep.utils.json_io import load_json_file, normalize_for_json, write_json_file


def test_load_json_file_reads_payload(tmp_path: Path) -> None:
    path = tmp_path / "inputInfo_sessA.json"
    path.write_text('{"paramInputDataHash": "abc123", "seq_binSizeMs": 10}')

    data = load_json_file(path)

    assert data == {"paramInputDataHash": "abc123", "seq_binSizeMs": 10}


def test_load_json_file_annotates_decode_error(tmp_path: Path) -> None:
    path = tmp_path / "invalid.json"
    path.write_text('{"trainInds": ')

    with pytest.raises(json.JSONDecodeError) as excinfo:
        load_json_file(path)

    assert str(path) in str(excinfo.value)


def test_normalize_for_json_converts_numpy_values() -> None:
    payload = {
        "inds": np.array([1, 5, 9], dtype=np.int64),
        "scalar": np.float32(2.5),
        "nested": ({"k": np.int16(3)},),
    }

    assert normalize_for_json(payload) == {
        "inds": [1, 5, 9],
        "scalar": 2.5,
        "nested": [{"k": 3}],
    }


def test_write_json_file_round_trips_and_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "info.json"

    write_json_file(target, {"time": np.arange(3, dtype=float), "label": math.nan})

    loaded = load_json_file(target)
    assert loaded["time"] == [0.0, 1.0, 2.0]
    assert math.isnan(loaded["label"])
    assert sorted(p.name for p in target.parent.iterdir()) == ["info.json"]
