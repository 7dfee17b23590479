# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Versioned on-disk layout of a run collection.

A layout generation is chosen once per run by :func:`select_layout` and
every path below is derived from it. Three generations exist::

    version < 3             root/<run>                 root/data_<h>
    3 <= version < 20171107 root/param_<h>/<run>       root/data_<h>
    version >= 20171107     root/param_<h>/<run>       root/data_<h>/<run>

The first column is the run directory and the second the shared directory
holding canonical input files. The current generation adds the run name
under the data directory so that runs with different alignment matrices
never share an input file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

from ..settings import POSTERIOR_MEAN_KINDS
from ..utils.errors import ConfigurationError

__all__ = [
    "SHARED_DATA_LAYOUT_VERSION",
    "CURRENT_LAYOUT_VERSION",
    "LegacyLayout",
    "SharedDataLayout",
    "CurrentLayout",
    "Layout",
    "select_layout",
    "RunPaths",
]

SHARED_DATA_LAYOUT_VERSION = 3
CURRENT_LAYOUT_VERSION = 20171107

# Versions before these kept run-specific prefixes in file names and
# sequence files under the run directory.
_PLAIN_NAMES_VERSION = 2
_SHARED_SEQUENCE_VERSION = 4


@dataclass(frozen=True)
class _BaseLayout:
    version: int

    #: Whether a single-dataset run may seed its read-in from PCA.
    supports_single_dataset_alignment = False

    def run_dir(self, root: Path, run_name: str, param_hash_name: str) -> Path:
        return root / param_hash_name / run_name

    def data_dir(self, root: Path, run_name: str, input_data_hash_name: str) -> Path:
        return root / input_data_hash_name

    def sequence_dir(self, run_dir: Path, data_dir: Path) -> Path:
        if self.version < _SHARED_SEQUENCE_VERSION:
            return run_dir / "seq"
        return data_dir / "seq"

    def name_prefix(self, run_name: str, param_hash_name: str) -> str:
        """Run-specific prefix embedded in file names, empty for newer layouts."""
        if self.version < _PLAIN_NAMES_VERSION:
            return f"{run_name}__{param_hash_name}_"
        return ""


@dataclass(frozen=True)
class LegacyLayout(_BaseLayout):
    """Run directories directly under the collection root."""

    def run_dir(self, root: Path, run_name: str, param_hash_name: str) -> Path:
        return root / run_name


@dataclass(frozen=True)
class SharedDataLayout(_BaseLayout):
    """Run directories grouped by parameter hash; one flat data dir per input hash."""


@dataclass(frozen=True)
class CurrentLayout(_BaseLayout):
    """Data directories split per run."""

    supports_single_dataset_alignment = True

    def data_dir(self, root: Path, run_name: str, input_data_hash_name: str) -> Path:
        return root / input_data_hash_name / run_name


Layout = Union[LegacyLayout, SharedDataLayout, CurrentLayout]


def select_layout(version: int) -> Layout:
    """Return the layout generation for a collection ``version``."""
    try:
        version = int(version)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Layout version must be an integer, got {version!r}") from exc
    if version < 1:
        raise ConfigurationError(f"Unsupported layout version {version}")
    if version < SHARED_DATA_LAYOUT_VERSION:
        return LegacyLayout(version)
    if version < CURRENT_LAYOUT_VERSION:
        return SharedDataLayout(version)
    return CurrentLayout(version)


@dataclass(frozen=True)
class RunPaths:
    """Every file and directory a run reads or writes.

    Pure function of its fields; nothing is created on disk.
    """

    root: Path
    run_name: str
    param_hash_name: str
    input_data_hash_name: str
    layout: Layout

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root))

    @classmethod
    def for_version(
        cls,
        root: Union[str, Path],
        run_name: str,
        param_hash_name: str,
        input_data_hash_name: str,
        version: int,
    ) -> "RunPaths":
        return cls(Path(root), run_name, param_hash_name, input_data_hash_name, select_layout(version))

    # directories -------------------------------------------------------

    @property
    def run_dir(self) -> Path:
        return self.layout.run_dir(self.root, self.run_name, self.param_hash_name)

    @property
    def data_dir(self) -> Path:
        return self.layout.data_dir(self.root, self.run_name, self.input_data_hash_name)

    @property
    def sequence_dir(self) -> Path:
        return self.layout.sequence_dir(self.run_dir, self.data_dir)

    @property
    def lfads_input_dir(self) -> Path:
        return self.run_dir / "lfadsInput"

    @property
    def lfads_output_dir(self) -> Path:
        return self.run_dir / "lfadsOutput"

    # run files ---------------------------------------------------------

    @property
    def train_script(self) -> Path:
        return self.run_dir / "lfads_train.sh"

    @property
    def posterior_mean_script(self) -> Path:
        return self.run_dir / "lfads_posterior_mean_sample.sh"

    @property
    def write_model_params_script(self) -> Path:
        return self.run_dir / "lfads_write_model_params.sh"

    @property
    def lfads_log(self) -> Path:
        return self.run_dir / "lfads.out"

    @property
    def done_file(self) -> Path:
        return self.run_dir / "lfads.done"

    @property
    def posterior_mean_done_file(self) -> Path:
        return self.run_dir / "lfads.done.posteriorMeanOnly"

    @property
    def model_params(self) -> Path:
        return self.lfads_output_dir / "model_params"

    @property
    def fit_log(self) -> Path:
        return self.lfads_output_dir / "fitlog.csv"

    # per-dataset names -------------------------------------------------

    @property
    def _prefix(self) -> str:
        return self.layout.name_prefix(self.run_name, self.param_hash_name)

    def input_file_name(self, dataset_name: str) -> str:
        if self._prefix:
            return f"lfads_{self._prefix}{dataset_name}_spikes.h5"
        return f"lfads_{dataset_name}.h5"

    def info_file_name(self, dataset_name: str) -> str:
        return f"inputInfo_{dataset_name}.json"

    def sequence_file_name(self, dataset_name: str) -> str:
        if self._prefix:
            return f"{self._prefix}{dataset_name}_seq.npz"
        return f"seq_{dataset_name}.npz"

    def input_file(self, dataset_name: str) -> Path:
        """Canonical input artifact shared by every run with this input hash."""
        return self.data_dir / self.input_file_name(dataset_name)

    def info_file(self, dataset_name: str) -> Path:
        return self.data_dir / self.info_file_name(dataset_name)

    def input_link(self, dataset_name: str) -> Path:
        return self.lfads_input_dir / self.input_file_name(dataset_name)

    def info_link(self, dataset_name: str) -> Path:
        return self.lfads_input_dir / self.info_file_name(dataset_name)

    def sequence_file(self, dataset_name: str) -> Path:
        return self.sequence_dir / self.sequence_file_name(dataset_name)

    def posterior_file_names(self, dataset_name: str, kind: str) -> Tuple[str, str]:
        """Train and valid posterior-mean file names written by the trainer."""
        if kind not in POSTERIOR_MEAN_KINDS:
            raise ConfigurationError(
                f"Unknown posterior_mean_kind '{kind}', expected one of {POSTERIOR_MEAN_KINDS}"
            )
        if self._prefix and kind == "posterior_sample_and_average":
            stem = f"model_runs_{self._prefix}{dataset_name}_spikes.h5"
            return f"{stem}_train_posterior_sample", f"{stem}_valid_posterior_sample"
        stem = f"model_runs_{dataset_name}.h5"
        return f"{stem}_train_{kind}", f"{stem}_valid_{kind}"

    def posterior_files(self, dataset_name: str, kind: str) -> Tuple[Path, Path]:
        train, valid = self.posterior_file_names(dataset_name, kind)
        return self.lfads_output_dir / train, self.lfads_output_dir / valid
