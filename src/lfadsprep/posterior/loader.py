# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Load posterior means written by the trainer back into a run."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

import numpy as np

from ..sequences.rebin import rebin_factor, rebin_time
from ..settings import POSTERIOR_MEAN_KINDS, load_defaults
from ..utils.errors import ConfigurationError
from .means import PosteriorMeans

if TYPE_CHECKING:
    from ..run import Run

logger = logging.getLogger(__name__)

__all__ = ["load_posterior_means", "posterior_means_exist", "resolve_posterior_files"]

_SAMPLE_AND_AVERAGE = "posterior_sample_and_average"
_LEGACY_SAMPLE = "posterior_sample"


def _resolve_kind(run: "Run", kind: Optional[str]) -> str:
    if kind is None:
        kind = run.config.posterior_mean_kind or load_defaults().posterior_mean_kind
    if kind not in POSTERIOR_MEAN_KINDS:
        raise ConfigurationError(
            f"Unknown posterior_mean_kind '{kind}', expected one of {POSTERIOR_MEAN_KINDS}"
        )
    return kind


def _existing(path: Path, kind: str) -> Optional[Path]:
    if path.exists():
        return path
    if kind == _SAMPLE_AND_AVERAGE:
        old = path.with_name(path.name.replace(_SAMPLE_AND_AVERAGE, _LEGACY_SAMPLE))
        if old.exists():
            return old
    return None


def resolve_posterior_files(
    run: "Run", dataset_name: str, kind: str
) -> Tuple[Optional[Path], Optional[Path]]:
    """Train/valid files for one dataset, or ``None`` where neither name exists."""
    train, valid = run.paths.posterior_files(dataset_name, kind)
    return _existing(train, kind), _existing(valid, kind)


def posterior_means_exist(run: "Run", kind: Optional[str] = None) -> bool:
    kind = _resolve_kind(run, kind)
    for name in run.dataset_names:
        train, valid = resolve_posterior_files(run, name, kind)
        if train is None or valid is None:
            return False
    return True


def load_posterior_means(
    run: "Run",
    dataset_indices: Optional[Sequence[int]] = None,
    kind: Optional[str] = None,
    reload: bool = False,
) -> Tuple[List[PosteriorMeans], np.ndarray]:
    """Load posterior means for the selected datasets of ``run``.

    Returns the means and a boolean mask of which entries were loaded. A
    dataset whose output files are missing yields an invalid placeholder
    and a warning; loading continues with the next dataset. When every
    dataset is requested the result is cached on the run and reused for
    the same ``kind`` until ``reload`` is set.
    """

    n = run.n_datasets
    indices = list(range(n)) if dataset_indices is None else [int(i) for i in dataset_indices]
    kind = _resolve_kind(run, kind)

    cached = run.cached_posterior_means
    if (
        cached is not None
        and not reload
        and all(pm.is_valid and pm.kind == kind for pm in cached)
    ):
        picked = [cached[i] for i in indices]
        return picked, np.ones(len(picked), dtype=bool)

    infos = run.load_input_info(indices)
    expected_hash = run.config.input_data_hash
    for i, info in zip(indices, infos):
        if info.param_input_data_hash != expected_hash:
            logger.warning(
                "Run %s: input data hash saved in %s does not match the current parameters",
                run.name,
                run.paths.info_file_name(run.dataset_names[i]),
            )

    if any(info.seq_time_vector is None or info.seq_bin_size_ms is None for info in infos):
        seq = run.load_sequence_data(dataset_indices=indices)
        for info, records in zip(infos, seq):
            info.seq_bin_size_ms = float(records[0].bin_width_ms)
            info.seq_time_vector = np.asarray(records[0].time_ms, dtype=float)

    means: List[PosteriorMeans] = []
    valid = np.zeros(len(indices), dtype=bool)
    for j, (i, info) in enumerate(zip(indices, infos)):
        name = run.dataset_names[i]
        train_file, valid_file = resolve_posterior_files(run, name, kind)
        if train_file is None or valid_file is None:
            expected = run.paths.posterior_files(name, kind)[0 if train_file is None else 1]
            logger.warning(
                "Run %s: posterior mean %s file not found for dataset %s: %s",
                run.name,
                "train" if train_file is None else "valid",
                name,
                expected,
            )
            means.append(PosteriorMeans(dataset_name=name, kind=kind))
            continue

        factor = rebin_factor(run.config.spike_bin_ms, info.seq_bin_size_ms)
        means.append(
            PosteriorMeans.from_files(
                train_file,
                valid_file,
                train_inds=info.train_inds,
                valid_inds=info.valid_inds,
                spike_bin_ms=run.config.spike_bin_ms,
                time_ms=rebin_time(info.seq_time_vector, factor),
                dataset_name=name,
                kind=kind,
                condition_ids=info.condition_id,
                raw_counts=info.counts,
                external_inputs=info.external_inputs,
            )
        )
        valid[j] = True

    if indices == list(range(n)):
        run.cached_posterior_means = means
    return means, valid
