# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pytest configuration and fixtures for LFADSPREP tests."""

import os
import zlib
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
import pytest

from lfadsprep.params import RunConfig
from lfadsprep.run import Dataset, Run
from lfadsprep.sequences.schema import ALIGNMENT, RawCounts
from lfadsprep.settings import CONFIG_ENV_VAR, load_defaults


class SyntheticSource:
    """Poisson spikes driven by condition-specific latent trajectories.

    Every dataset observes the same three latent signals through its own
    random loading matrix, so stitching has a common structure to find.
    """

    def __init__(
        self,
        *,
        n_trials: int = 24,
        n_time: int = 20,
        bin_ms: float = 10.0,
        n_conditions: int = 4,
        ext_input_dim: int = 0,
        different_alignment: bool = False,
        nan_datasets: Sequence[str] = (),
    ) -> None:
        self.n_trials = n_trials
        self.n_time = n_time
        self.bin_ms = bin_ms
        self.n_conditions = n_conditions
        self.ext_input_dim = ext_input_dim
        self.different_alignment = different_alignment
        self.nan_datasets = set(nan_datasets)
        self.calls: List[tuple] = []

    def uses_different_data_for_alignment(self) -> bool:
        return self.different_alignment

    def generate(self, dataset: Dataset, mode: str) -> RawCounts:
        self.calls.append((dataset.name, mode))
        rng = np.random.default_rng(zlib.crc32(dataset.name.encode()))
        t = np.linspace(0.0, 1.0, self.n_time)
        conditions = np.arange(self.n_trials) % self.n_conditions
        latent = np.stack(
            [
                np.stack(
                    [
                        np.sin(2 * np.pi * (t + c / self.n_conditions)),
                        np.cos(2 * np.pi * t * (1 + c)),
                        t * (c - self.n_conditions / 2),
                    ]
                )
                for c in range(self.n_conditions)
            ]
        )  # [conditions, 3, time]
        loading = rng.normal(scale=0.6, size=(dataset.n_channels, 3))
        log_rates = np.einsum("nk,ckt->cnt", loading, latent) + 1.0
        rates = np.exp(log_rates)[conditions]
        counts = rng.poisson(rates).astype(np.int64)
        if dataset.name in self.nan_datasets:
            counts = counts.astype(float)
            counts[0, 0, 0] = np.nan
        time_ms = self.bin_ms * np.arange(1, self.n_time + 1, dtype=float)
        ext = None
        if self.ext_input_dim:
            ext = rng.normal(size=(self.n_trials, self.ext_input_dim, self.n_time))
        condition_id = conditions
        if mode == ALIGNMENT:
            # alignment sees only the even trials
            keep = np.arange(self.n_trials) % 2 == 0
            return RawCounts(counts[keep], time_ms, condition_id[keep])
        return RawCounts(counts, time_ms, condition_id, external_inputs=ext)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    load_defaults.cache_clear()
    yield
    load_defaults.cache_clear()


@pytest.fixture
def source_factory() -> Callable[..., SyntheticSource]:
    return SyntheticSource


@pytest.fixture
def source() -> SyntheticSource:
    return SyntheticSource()


@pytest.fixture
def datasets() -> List[Dataset]:
    return [Dataset("sessA", 5), Dataset("sessB", 7), Dataset("sessC", 9)]


@pytest.fixture
def base_config() -> RunConfig:
    return RunConfig(
        spike_bin_ms=20.0,
        train_to_test_ratio=3,
        c_factors_dim=3,
        c_batch_size=2,
        use_alignment_matrix=True,
    )


@pytest.fixture
def make_run(tmp_path, source, datasets, base_config) -> Callable[..., Run]:
    def _make(
        config: Optional[RunConfig] = None,
        *,
        name: str = "stitched",
        dataset_list: Optional[Sequence[Dataset]] = None,
        data_source=None,
        version: Optional[int] = None,
        **kwargs,
    ) -> Run:
        return Run(
            name,
            config or base_config,
            list(dataset_list or datasets),
            data_source or source,
            tmp_path / "runs",
            version=version,
            **kwargs,
        )

    return _make


def _snapshot_tree(root) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            full = os.path.join(dirpath, name)
            out[full] = os.lstat(full).st_mtime_ns
    return out


@pytest.fixture
def tree_snapshot() -> Callable[..., Dict[str, int]]:
    """Map every entry under a root to its mtime without following links."""
    return _snapshot_tree

