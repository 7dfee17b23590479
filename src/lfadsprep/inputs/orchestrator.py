# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Make a run's trainer inputs exist, reusing cached files where possible.

Canonical files live in the run's data directory, keyed by the input-data
hash, and are exposed to the run through relative symlinks in
``lfadsInput/``. A dataset is regenerated when asked to, or when its
canonical file, its info cache or either symlink is missing. Sequence
data for every dataset is loaded whenever anything is regenerated, since
alignment needs all of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

import numpy as np

from ..alignment.pcr import AlignmentResult
from ..sequences.builder import dataset_bin_width
from ..utils.logging_utils import StageTimer
from ..utils.path_utils import ensure_directory, make_relative_symlink
from .artifacts import write_input_info, write_lfads_input_file
from .partition import partition_trials, required_trial_count

if TYPE_CHECKING:
    from ..run import Run

logger = logging.getLogger(__name__)

__all__ = [
    "DatasetInputState",
    "InputPreparationReport",
    "InputCacheOrchestrator",
    "ProgressReporter",
    "check_trial_capacity",
]

ProgressCB = Callable[[str, Mapping[str, Any]], None]


class DatasetInputState(str, Enum):
    MISSING = "missing"
    GENERATING = "generating"
    SYMLINKED = "symlinked"
    READY = "ready"


class ProgressReporter:
    """Forward progress events to an optional user callback."""

    def __init__(self, cb: Optional[ProgressCB]) -> None:
        self._cb = cb

    def emit(self, event: str, data: Mapping[str, Any]) -> None:
        if self._cb is None:
            return
        try:
            self._cb(event, dict(data))
        except Exception:
            logger.debug("Progress callback failed for event %s", event, exc_info=True)


@dataclass
class InputPreparationReport:
    """Outcome of one :meth:`InputCacheOrchestrator.ensure_inputs_ready` call."""

    run_name: str
    states: Dict[str, DatasetInputState] = field(default_factory=dict)
    generated: List[str] = field(default_factory=list)
    linked: List[str] = field(default_factory=list)
    alignment: Optional[AlignmentResult] = None

    @property
    def all_ready(self) -> bool:
        return all(s is DatasetInputState.READY for s in self.states.values())

    @property
    def wrote_anything(self) -> bool:
        return bool(self.generated or self.linked)


def check_trial_capacity(
    n_trials_by_dataset: Mapping[str, int],
    batch_size: int,
    train_to_test_ratio: int,
    *,
    run_name: str = "",
) -> List[str]:
    """Warn about datasets too small for one batch; return their names.

    The comparison is strict: exactly ``batch_size * (1 + ratio)`` trials
    is enough.
    """
    required = required_trial_count(batch_size, train_to_test_ratio)
    too_few = [name for name, n in n_trials_by_dataset.items() if n < required]
    if too_few:
        logger.warning(
            "Run %s: %d trials are needed for c_batch_size=%d and train_to_test_ratio=%d "
            "or batches will be sampled with replacement. Datasets with too few trials: %s",
            run_name,
            required,
            batch_size,
            train_to_test_ratio,
            ", ".join(too_few),
        )
    return too_few


class InputCacheOrchestrator:
    """Drive each dataset of ``run`` from MISSING to READY."""

    def __init__(self, run: "Run", *, progress_callback: Optional[ProgressCB] = None) -> None:
        self.run = run
        self._reporter = ProgressReporter(progress_callback)

    # ------------------------------------------------------------------

    def dataset_needs_generation(self, dataset_name: str, regenerate: bool = False) -> bool:
        if regenerate:
            return True
        paths = self.run.paths
        required = (
            paths.input_file(dataset_name),
            paths.info_file(dataset_name),
            paths.input_link(dataset_name),
            paths.info_link(dataset_name),
        )
        return not all(p.exists() for p in required)

    def ensure_inputs_ready(self, regenerate: bool = False) -> InputPreparationReport:
        run = self.run
        names = run.dataset_names
        report = InputPreparationReport(run_name=run.name)
        mask = np.array([self.dataset_needs_generation(n, regenerate) for n in names], dtype=bool)
        for name, stale in zip(names, mask):
            report.states[name] = DatasetInputState.MISSING if stale else DatasetInputState.READY

        seq_data = None
        if mask.any():
            if regenerate:
                run.delete_sequence_files()
            with StageTimer("sequence data", logger=logger, run_name=run.name):
                seq_data = run.load_sequence_data(reload=regenerate)
            check_trial_capacity(
                {n: len(s) for n, s in zip(names, seq_data)},
                run.config.c_batch_size,
                run.config.train_to_test_ratio,
                run_name=run.name,
            )

            if run.alignment_enabled:
                regenerate_alignment = regenerate and run.uses_different_data_for_alignment()
                with StageTimer("alignment", logger=logger, run_name=run.name):
                    report.alignment = run.do_multisession_alignment(regenerate=regenerate_alignment)

            extra_by_dataset = run.extra_inputs_by_dataset(seq_data, regenerate, mask)
            self._write_artifacts(seq_data, mask, report, extra_by_dataset)

        self._ensure_symlinks(regenerate, report)
        run.post_process(seq_data, regenerate, mask)

        for name in names:
            report.states[name] = DatasetInputState.READY
        self._reporter.emit(
            "inputs_ready",
            {"run": run.name, "generated": len(report.generated), "linked": len(report.linked)},
        )
        if report.wrote_anything:
            logger.info(
                "Run %s: generated %d and linked %d input file set(s)",
                run.name,
                len(report.generated),
                len(report.linked),
            )
        return report

    # ------------------------------------------------------------------

    def _write_artifacts(
        self,
        seq_data: List[List[Any]],
        mask: np.ndarray,
        report: InputPreparationReport,
        extra_by_dataset: Mapping[str, Mapping[str, Any]],
    ) -> None:
        run = self.run
        config = run.config
        paths = run.paths
        ensure_directory(paths.data_dir)
        alignment = report.alignment
        total = int(mask.sum())
        done = 0
        with StageTimer("input files", logger=logger, run_name=run.name):
            for i, (name, records) in enumerate(zip(run.dataset_names, seq_data)):
                if not mask[i]:
                    continue
                report.states[name] = DatasetInputState.GENERATING
                train, valid = partition_trials(len(records), config.train_to_test_ratio)
                input_bin_ms = dataset_bin_width(records)
                write_lfads_input_file(
                    paths.input_file(name),
                    records,
                    train_trials=train,
                    valid_trials=valid,
                    spike_bin_ms=config.spike_bin_ms,
                    input_bin_ms=input_bin_ms,
                    alignment_matrix=None if alignment is None else alignment.matrices[i],
                    alignment_bias=None if alignment is None else alignment.biases[i],
                    extra=extra_by_dataset.get(name),
                )
                write_input_info(
                    paths.info_file(name),
                    records,
                    train_trials=train,
                    valid_trials=valid,
                    input_data_hash=config.input_data_hash,
                    input_bin_ms=input_bin_ms,
                )
                report.generated.append(name)
                done += 1
                self._reporter.emit(
                    "dataset_generated", {"run": run.name, "dataset": name, "current": done, "total": total}
                )

    def _ensure_symlinks(self, regenerate: bool, report: InputPreparationReport) -> None:
        paths = self.run.paths
        ensure_directory(paths.lfads_input_dir)
        for name in self.run.dataset_names:
            pairs = (
                (paths.input_file(name), paths.input_link(name)),
                (paths.info_file(name), paths.info_link(name)),
            )
            linked = False
            for target, link in pairs:
                if regenerate or not (link.is_symlink() or link.exists()):
                    make_relative_symlink(target, link, replace=True)
                    linked = True
            if linked:
                report.linked.append(name)
                report.states[name] = DatasetInputState.SYMLINKED
