# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""A single LFADS run: datasets, parameters and the caches derived from them.

A :class:`Run` owns three in-memory caches: sequence records, the alignment
result and loaded posterior means. They are filled lazily and dropped by
:meth:`Run.invalidate` or by passing ``reload``/``regenerate`` to the
loading methods.

Application code supplies data through a :class:`DataSource`, which turns
one dataset into a :class:`~lfadsprep.sequences.RawCounts` tensor. The
optional ``uses_different_data_for_alignment`` method lets a source build
alignment matrices from a subset of trials (for example correct trials
only).
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

import numpy as np

from .alignment.pcr import AlignmentResult, compute_alignment
from .inputs.artifacts import InputInfo, load_input_info
from .inputs.orchestrator import InputCacheOrchestrator, InputPreparationReport, ProgressCB
from .params import RunConfig
from .paths.layout import RunPaths, select_layout
from .posterior.loader import load_posterior_means
from .posterior.means import PosteriorMeans, attach_to_records
from .posterior.model_outputs import FitLog, ReadoutMatrices, load_fit_log, load_readout_matrices
from .sequences.builder import build_sequence_records
from .sequences.format import (
    delete_sequence_file,
    read_sequence_file,
    sequence_file_exists,
    write_sequence_file,
)
from .sequences.schema import ALIGNMENT, EXPORT, MODES, RawCounts, SequenceRecord
from .settings import load_defaults
from .utils.errors import AlignmentError, ConfigurationError
from .utils.path_utils import remove_if_exists

logger = logging.getLogger(__name__)

__all__ = ["Dataset", "DataSource", "Run"]

ExtraInputsHook = Callable[["Run", Optional[List[List[SequenceRecord]]], bool, np.ndarray], Mapping[str, Mapping[str, Any]]]
PostProcessHook = Callable[["Run", Optional[List[List[SequenceRecord]]], bool, np.ndarray], None]
PostLoadHook = Callable[["Run", List[List[SequenceRecord]]], List[List[SequenceRecord]]]


@dataclass(frozen=True)
class Dataset:
    """One recording session. Only ``name`` and ``n_channels`` are used here."""

    name: str
    n_channels: int
    path: Optional[str] = None


@runtime_checkable
class DataSource(Protocol):
    def generate(self, dataset: Dataset, mode: str) -> RawCounts:
        ...


class Run:
    """One parameter set applied to an ordered list of datasets."""

    def __init__(
        self,
        name: str,
        config: RunConfig,
        datasets: Sequence[Dataset],
        source: DataSource,
        root: Union[str, Path],
        *,
        version: Optional[int] = None,
        extra_inputs_hook: Optional[ExtraInputsHook] = None,
        post_process_hook: Optional[PostProcessHook] = None,
        post_load_hook: Optional[PostLoadHook] = None,
    ) -> None:
        if not datasets:
            raise ConfigurationError(f"Run {name} has no datasets")
        names = [d.name for d in datasets]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Run {name} has duplicate dataset names: {names}")
        self.name = name
        self.config = config
        self.datasets: Tuple[Dataset, ...] = tuple(datasets)
        self.source = source
        self.root = Path(root)
        self.version = int(version if version is not None else load_defaults().layout_version)
        self.layout = select_layout(self.version)
        self._extra_inputs_hook = extra_inputs_hook
        self._post_process_hook = post_process_hook
        self._post_load_hook = post_load_hook

        self._sequence_data: Optional[List[List[SequenceRecord]]] = None
        self._alignment: Optional[AlignmentResult] = None
        self.cached_posterior_means: Optional[List[PosteriorMeans]] = None

    def __repr__(self) -> str:
        return f"Run(name={self.name!r}, datasets={len(self.datasets)}, {self.config.param_hash_name})"

    # ------------------------------------------------------------------
    # basic properties

    @property
    def paths(self) -> RunPaths:
        return RunPaths(
            self.root,
            self.name,
            self.config.param_hash_name,
            self.config.input_data_hash_name,
            self.layout,
        )

    @property
    def dataset_names(self) -> List[str]:
        return [d.name for d in self.datasets]

    @property
    def n_datasets(self) -> int:
        return len(self.datasets)

    @property
    def n_channels_total(self) -> int:
        return sum(d.n_channels for d in self.datasets)

    @property
    def alignment_enabled(self) -> bool:
        if self.n_datasets > 1:
            return bool(self.config.use_alignment_matrix)
        return bool(
            self.config.use_single_dataset_alignment_matrix
            and self.layout.supports_single_dataset_alignment
        )

    def uses_different_data_for_alignment(self) -> bool:
        check = getattr(self.source, "uses_different_data_for_alignment", None)
        return bool(check()) if callable(check) else False

    def invalidate(self) -> None:
        """Drop every in-memory cache."""
        self._sequence_data = None
        self._alignment = None
        self.cached_posterior_means = None

    # ------------------------------------------------------------------
    # sequence data

    def _select(self, dataset_indices: Optional[Sequence[int]]) -> List[int]:
        if dataset_indices is None:
            return list(range(self.n_datasets))
        return [int(i) for i in dataset_indices]

    def generate_sequence_records(self, index: int, mode: str = EXPORT) -> List[SequenceRecord]:
        """Ask the data source for one dataset and validate the result."""
        if mode not in MODES:
            raise ConfigurationError(f"Unknown sequence mode '{mode}', expected one of {MODES}")
        dataset = self.datasets[index]
        raw = self.source.generate(dataset, mode)
        return build_sequence_records(
            raw,
            ext_input_dim=self.config.c_ext_input_dim,
            run_name=self.name,
            dataset_name=dataset.name,
        )

    def load_sequence_data(
        self,
        reload: bool = False,
        mode: str = EXPORT,
        dataset_indices: Optional[Sequence[int]] = None,
    ) -> List[List[SequenceRecord]]:
        """Return sequence records per dataset, from cache, disk or the source.

        Export records come from memory unless ``reload`` is set, then from
        the sequence files when present, and are otherwise generated and
        written there. Alignment records are always generated; when the
        source does not distinguish the two modes the export records are
        used instead.
        """

        if mode == ALIGNMENT and not self.uses_different_data_for_alignment():
            mode = EXPORT
        indices = self._select(dataset_indices)

        if mode == EXPORT and not reload and self._sequence_data is not None:
            return [self._sequence_data[i] for i in indices]

        out: List[List[SequenceRecord]] = []
        for i in indices:
            name = self.dataset_names[i]
            seq_file = self.paths.sequence_file(name)
            if mode != EXPORT:
                out.append(self.generate_sequence_records(i, mode))
            elif sequence_file_exists(seq_file):
                out.append(read_sequence_file(seq_file, run_name=self.name, dataset_name=name))
            else:
                records = self.generate_sequence_records(i, mode)
                write_sequence_file(records, seq_file)
                out.append(records)

        if mode == EXPORT:
            out = self.modify_sequence_data_post_loading(out)
        if mode == EXPORT and indices == list(range(self.n_datasets)):
            self._sequence_data = out
        return out

    def modify_sequence_data_post_loading(
        self, seq_data: List[List[SequenceRecord]]
    ) -> List[List[SequenceRecord]]:
        """Apply the post-load hook to freshly loaded export records.

        The result is what the run caches and exports; sequence files keep
        the unmodified records.
        """
        if self._post_load_hook is None:
            return seq_data
        modified = self._post_load_hook(self, seq_data)
        if modified is None or len(modified) != len(seq_data):
            raise ConfigurationError(
                f"Run {self.name}: post-load hook must return one record list per loaded dataset"
            )
        return list(modified)

    def make_sequence_files(self) -> None:
        """Generate and write every dataset's sequence file."""
        self.delete_sequence_files()
        self.load_sequence_data(reload=True)

    def delete_sequence_files(self) -> None:
        for name in self.dataset_names:
            delete_sequence_file(self.paths.sequence_file(name))

    # ------------------------------------------------------------------
    # alignment

    def do_multisession_alignment(self, regenerate: bool = False) -> AlignmentResult:
        """Compute (or return the cached) alignment seeds for every dataset."""
        if not self.alignment_enabled:
            raise AlignmentError(
                f"Run {self.name}: alignment matrices need a multi-dataset run with "
                "use_alignment_matrix or a single-dataset run with "
                "use_single_dataset_alignment_matrix"
            )
        if self._alignment is not None and not regenerate:
            return self._alignment

        seq_data = self.load_sequence_data(reload=regenerate, mode=ALIGNMENT)
        result = compute_alignment(
            seq_data,
            self.config.alignment_approach,
            n_factors=self.config.c_factors_dim,
            spike_bin_ms=self.config.spike_bin_ms,
            dataset_names=self.dataset_names,
            run_name=self.name,
            extra_args=self.config.alignment_kwargs,
        )
        for dataset, weights in zip(self.datasets, result.matrices):
            if weights.shape[0] != dataset.n_channels:
                logger.warning(
                    "Run %s: dataset %s declares %d channels but its data has %d",
                    self.name,
                    dataset.name,
                    dataset.n_channels,
                    weights.shape[0],
                )
        self._alignment = result
        return result

    @property
    def alignment(self) -> Optional[AlignmentResult]:
        return self._alignment

    # ------------------------------------------------------------------
    # input files

    def prepare_for_lfads(
        self, regenerate: bool = False, progress_callback: Optional[ProgressCB] = None
    ) -> InputPreparationReport:
        """Make every input file the trainer needs; see :class:`InputCacheOrchestrator`."""
        return InputCacheOrchestrator(self, progress_callback=progress_callback).ensure_inputs_ready(
            regenerate=regenerate
        )

    def extra_inputs_by_dataset(
        self,
        seq_data: Optional[List[List[SequenceRecord]]],
        regenerate: bool,
        mask: np.ndarray,
    ) -> Mapping[str, Mapping[str, Any]]:
        """Extra arrays to store in each dataset's input file, keyed by dataset name."""
        if self._extra_inputs_hook is None:
            return {}
        return self._extra_inputs_hook(self, seq_data, regenerate, mask) or {}

    def post_process(
        self,
        seq_data: Optional[List[List[SequenceRecord]]],
        regenerate: bool,
        mask: np.ndarray,
    ) -> None:
        if self._post_process_hook is not None:
            self._post_process_hook(self, seq_data, regenerate, mask)

    def load_input_info(self, dataset_indices: Optional[Sequence[int]] = None) -> List[InputInfo]:
        """Read the info caches through the run's ``lfadsInput`` links."""
        return [
            load_input_info(self.paths.info_link(self.dataset_names[i]))
            for i in self._select(dataset_indices)
        ]

    def delete_lfads_input_files(self) -> None:
        """Remove canonical input files and the links pointing at them."""
        paths = self.paths
        for name in self.dataset_names:
            for p in (
                paths.input_file(name),
                paths.info_file(name),
                paths.input_link(name),
                paths.info_link(name),
            ):
                remove_if_exists(p)

    def delete_lfads_output(self) -> None:
        """Remove trainer output, its log and completion markers."""
        paths = self.paths
        if paths.lfads_output_dir.exists():
            shutil.rmtree(paths.lfads_output_dir)
        for p in (paths.lfads_log, paths.done_file, paths.posterior_mean_done_file):
            remove_if_exists(p)
        self.cached_posterior_means = None

    # ------------------------------------------------------------------
    # posterior means

    def load_posterior_means(
        self,
        dataset_indices: Optional[Sequence[int]] = None,
        kind: Optional[str] = None,
        reload: bool = False,
    ) -> Tuple[List[PosteriorMeans], np.ndarray]:
        return load_posterior_means(self, dataset_indices=dataset_indices, kind=kind, reload=reload)

    def add_posterior_means_to_sequences(self) -> List[List[SequenceRecord]]:
        """Attach every trial's posterior means to the cached sequence records.

        Posterior means are (re)loaded unless all of them are cached and
        valid. The updated records replace the run's sequence cache.
        """
        cached = self.cached_posterior_means
        if cached is None or not all(pm.is_valid for pm in cached):
            means, _ = self.load_posterior_means()
        else:
            means = cached
        seq_data = self.load_sequence_data()
        merged = [attach_to_records(records, pm) for records, pm in zip(seq_data, means)]
        self._sequence_data = merged
        return merged

    def load_fit_log(self) -> FitLog:
        return load_fit_log(self.paths.fit_log, run_name=self.name)

    def load_readout_matrices_by_dataset(self) -> List[ReadoutMatrices]:
        """Trained readout weights and biases from ``model_params``, in dataset order."""
        return load_readout_matrices(self.paths.model_params, self.dataset_names)

    def trainer_options(self, omit: Sequence[str] = ()) -> str:
        """Command-line flags for the trainer, including the run's data paths."""
        paths = self.paths
        return (
            f" --data_dir={paths.lfads_input_dir} --lfads_save_dir={paths.lfads_output_dir}"
            + self.config.command_line_options(omit=omit)
        )

    def summary(self) -> Dict[str, Any]:
        paths = self.paths
        return {
            "name": self.name,
            "path": str(paths.run_dir),
            "data": str(paths.data_dir),
            "params": str(self.config),
            "datasets": self.dataset_names,
        }
