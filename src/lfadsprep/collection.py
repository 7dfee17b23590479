# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""A grid of runs: every run spec crossed with every parameter set."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .inputs.orchestrator import InputPreparationReport
from .params import RunConfig
from .run import DataSource, Dataset, Run
from .settings import load_defaults
from .utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = ["RunSpec", "RunCollection"]


@dataclass(frozen=True)
class RunSpec:
    """Named selection of datasets that share one model."""

    name: str
    dataset_names: Tuple[str, ...]


class RunCollection:
    """Runs stored under ``root/name`` that share a dataset pool and data source."""

    def __init__(
        self,
        root: Union[str, Path],
        name: str,
        datasets: Sequence[Dataset],
        source: DataSource,
        *,
        version: Optional[int] = None,
    ) -> None:
        self.name = name
        self.path = Path(root) / name
        self.datasets: Dict[str, Dataset] = {d.name: d for d in datasets}
        self.source = source
        self.version = int(version if version is not None else load_defaults().layout_version)
        self.specs: List[RunSpec] = []
        self.params: List[RunConfig] = []
        self._runs: Dict[Tuple[str, str], Run] = {}

    def __repr__(self) -> str:
        return (
            f"RunCollection(name={self.name!r}, specs={len(self.specs)}, "
            f"params={len(self.params)}, version={self.version})"
        )

    def add_run_spec(self, name: str, dataset_names: Iterable[str]) -> RunSpec:
        names = tuple(dataset_names)
        unknown = [n for n in names if n not in self.datasets]
        if unknown:
            raise ConfigurationError(f"Run spec {name} references unknown datasets: {unknown}")
        if any(s.name == name for s in self.specs):
            raise ConfigurationError(f"Run spec {name} already exists")
        spec = RunSpec(name, names)
        self.specs.append(spec)
        return spec

    def add_params(self, configs: Union[RunConfig, Iterable[RunConfig]]) -> None:
        """Add one or more parameter sets; duplicates by parameter hash are skipped."""
        if isinstance(configs, RunConfig):
            configs = [configs]
        known = {c.param_hash for c in self.params}
        for config in configs:
            if config.param_hash in known:
                logger.info("Skipping duplicate parameters %s", config.param_hash_name)
                continue
            self.params.append(config)
            known.add(config.param_hash)

    def _run_for(self, spec: RunSpec, config: RunConfig) -> Run:
        key = (spec.name, config.param_hash)
        run = self._runs.get(key)
        if run is None:
            run = Run(
                spec.name,
                config,
                [self.datasets[n] for n in spec.dataset_names],
                self.source,
                self.path,
                version=self.version,
            )
            self._runs[key] = run
        return run

    @property
    def runs(self) -> List[Run]:
        return [self._run_for(s, p) for p in self.params for s in self.specs]

    def find_runs(
        self, spec_name: str = "all", param_index: Optional[int] = None
    ) -> Union[Run, List[Run]]:
        """Look up runs by spec name (or ``"all"``) and 0-based parameter index.

        With both a single spec and an index, the one matching run is
        returned; otherwise a list.
        """
        if spec_name == "all":
            specs = list(self.specs)
        else:
            specs = [s for s in self.specs if s.name == spec_name]
            if not specs:
                raise KeyError(f"No run spec named {spec_name!r}")
        if param_index is None:
            params = list(self.params)
        else:
            if not 0 <= param_index < len(self.params):
                raise IndexError(f"Parameter index {param_index} out of range")
            params = [self.params[param_index]]
        runs = [self._run_for(s, p) for p in params for s in specs]
        if len(runs) == 1 and spec_name != "all" and param_index is not None:
            return runs[0]
        return runs

    def prepare_for_lfads(self, regenerate: bool = False) -> List[InputPreparationReport]:
        reports = []
        for run in self.runs:
            reports.append(run.prepare_for_lfads(regenerate=regenerate))
        return reports
