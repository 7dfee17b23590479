# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Trial-averaged principal component regression for multi-session stitching.

The global basis is built once from every dataset's condition-averaged
responses, stacked in dataset order:

1. average trials sharing a condition label (unlabelled trials are skipped)
   into a ``[neurons, conditions x time]`` matrix per dataset;
2. stack the datasets into ``[total neurons, conditions x time]`` and take
   the top ``n_factors`` principal components as the shared latent
   trajectories;
3. regress each dataset's own neurons onto those trajectories. The
   coefficients seed the LFADS read-in matrix and the intercept its bias.

Only conditions present in every dataset contribute columns, otherwise the
stacked matrix would not be rectangular.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Hashable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from sklearn.decomposition import PCA
from sklearn.linear_model import LinearRegression, Ridge

from ..sequences.builder import dataset_bin_width
from ..sequences.rebin import rebin_factor
from ..sequences.schema import SequenceRecord
from ..utils.errors import AlignmentError
from ..utils.validation import any_nan
from .trial_average import condition_averages, group_trials, sort_conditions

logger = logging.getLogger(__name__)

__all__ = [
    "REGRESS_GLOBAL_PCS",
    "RIDGE_REGRESS_GLOBAL_PCS",
    "ALIGNMENT_APPROACHES",
    "AlignmentResult",
    "compute_alignment",
]

REGRESS_GLOBAL_PCS = "regressGlobalPCs"
RIDGE_REGRESS_GLOBAL_PCS = "ridgeRegressGlobalPCs"
ALIGNMENT_APPROACHES = (REGRESS_GLOBAL_PCS, RIDGE_REGRESS_GLOBAL_PCS)

_KNOWN_EXTRA_ARGS = {"alpha"}


@dataclass
class AlignmentResult:
    """Per-dataset read-in seeds plus the data used to derive them."""

    matrices: List[np.ndarray]  # each [neurons, factors]
    biases: List[np.ndarray]  # each [factors]
    dataset_names: Tuple[str, ...]
    condition_ids: Tuple[Hashable, ...]
    n_time: int
    global_scores: np.ndarray  # [conditions * time, factors]
    averages: List[np.ndarray] = field(repr=False)  # each [neurons, conditions * time]

    @property
    def n_factors(self) -> int:
        return int(self.global_scores.shape[1])

    def reconstruction(self, index: int) -> np.ndarray:
        """Global PC scores as linearly reconstructed from one dataset alone."""
        return self.averages[index].T @ self.matrices[index] + self.biases[index]

    def reconstruction_error(self, index: int) -> float:
        """Fraction of global-score variance not explained by dataset ``index``."""
        residual = self.global_scores - self.reconstruction(index)
        total = float(np.sum((self.global_scores - self.global_scores.mean(axis=0)) ** 2))
        if total == 0.0:
            return 0.0
        return float(np.sum(residual**2) / total)


def _regressor(approach: str, alpha: float):
    if approach == REGRESS_GLOBAL_PCS:
        return LinearRegression(fit_intercept=True)
    return Ridge(alpha=alpha, fit_intercept=True)


def compute_alignment(
    sequences_by_dataset: Sequence[Sequence[SequenceRecord]],
    approach: str,
    *,
    n_factors: int,
    spike_bin_ms: Optional[float] = None,
    dataset_names: Optional[Sequence[str]] = None,
    run_name: Optional[str] = None,
    extra_args: Optional[Mapping[str, Any]] = None,
) -> AlignmentResult:
    """Compute alignment matrices and biases for every dataset.

    Parameters
    ----------
    sequences_by_dataset:
        One list of sequence records per dataset, in run order.
    approach:
        ``"regressGlobalPCs"`` (ordinary least squares) or
        ``"ridgeRegressGlobalPCs"`` (ridge, strength ``extra_args["alpha"]``).
    n_factors:
        Number of shared latent factors.
    spike_bin_ms:
        When given, counts are rebinned to this width before averaging.
    dataset_names, run_name:
        Used only to make error messages specific.
    """

    if approach not in ALIGNMENT_APPROACHES:
        raise AlignmentError(
            f"Run {run_name}: unknown alignment approach '{approach}', "
            f"expected one of {ALIGNMENT_APPROACHES}"
        )
    extra = dict(extra_args or {})
    unknown = set(extra) - _KNOWN_EXTRA_ARGS
    if unknown:
        raise AlignmentError(
            f"Run {run_name}: unsupported alignment arguments {sorted(unknown)}"
        )
    alpha = float(extra.get("alpha", 1.0))

    n_datasets = len(sequences_by_dataset)
    if n_datasets == 0:
        raise AlignmentError(f"Run {run_name}: no datasets supplied for alignment")
    names = tuple(dataset_names) if dataset_names is not None else tuple(
        f"dataset{i}" for i in range(n_datasets)
    )
    if len(names) != n_datasets:
        raise AlignmentError(
            f"Run {run_name}: {len(names)} dataset names for {n_datasets} datasets"
        )
    if n_factors < 1:
        raise AlignmentError(f"Run {run_name}: n_factors must be positive, got {n_factors}")

    keys: List[Hashable] = []
    rebins: List[int] = []
    for name, records in zip(names, sequences_by_dataset):
        groups = group_trials(records) if records else {}
        if not groups:
            raise AlignmentError(
                f"Run {run_name}: dataset {name} has no trials with a valid conditionId "
                "and cannot be aligned"
            )
        lengths = {int(np.asarray(r.counts).shape[-1]) for r in records}
        if len(lengths) != 1:
            raise AlignmentError(
                f"Run {run_name}: dataset {name} has trials of differing lengths {sorted(lengths)}"
            )
        keys.extend(groups)
        rebins.append(
            rebin_factor(spike_bin_ms, dataset_bin_width(records)) if spike_bin_ms else 1
        )
    conditions = sort_conditions(keys)

    averaged: List[np.ndarray] = []
    shared = np.ones(len(conditions), dtype=bool)
    for records, rebin in zip(sequences_by_dataset, rebins):
        avg, present = condition_averages(records, conditions, rebin=rebin)
        averaged.append(avg)
        shared &= present
    if not shared.any():
        raise AlignmentError(
            f"Run {run_name}: no condition is shared by all datasets {list(names)}"
        )
    n_time_set = {avg.shape[2] for avg in averaged}
    if len(n_time_set) != 1:
        raise AlignmentError(
            f"Run {run_name}: datasets have differing trial lengths after rebinning {sorted(n_time_set)}"
        )
    n_time = n_time_set.pop()
    kept_conditions = tuple(c for c, keep in zip(conditions, shared) if keep)
    dropped = len(conditions) - len(kept_conditions)
    if dropped:
        logger.warning(
            "Run %s: %d condition(s) missing from at least one dataset were excluded from alignment",
            run_name,
            dropped,
        )

    per_dataset = [avg[:, shared, :].reshape(avg.shape[0], -1) for avg in averaged]
    global_matrix = np.vstack(per_dataset)
    n_samples = global_matrix.shape[1]
    max_factors = min(n_samples, global_matrix.shape[0])
    if n_factors > max_factors:
        raise AlignmentError(
            f"Run {run_name}: cannot extract {n_factors} factors from a "
            f"{global_matrix.shape[0]} x {n_samples} trial-averaged matrix"
        )

    pca = PCA(n_components=n_factors, svd_solver="full")
    scores = pca.fit_transform(global_matrix.T)
    logger.info(
        "Run %s: top %d global PCs explain %.1f%% of trial-averaged variance",
        run_name,
        n_factors,
        100.0 * float(np.sum(pca.explained_variance_ratio_)),
    )

    matrices: List[np.ndarray] = []
    biases: List[np.ndarray] = []
    for name, X in zip(names, per_dataset):
        model = _regressor(approach, alpha).fit(X.T, scores)
        weights = np.asarray(model.coef_, dtype=float).T.reshape(X.shape[0], n_factors)
        bias = np.asarray(model.intercept_, dtype=float).reshape(n_factors)
        if any_nan(weights) or any_nan(bias):
            raise AlignmentError(
                f"Run {run_name}: NaNs found in alignment matrix or bias for dataset {name}"
            )
        matrices.append(weights)
        biases.append(bias)

    if len(matrices) != n_datasets or len(biases) != n_datasets:
        raise AlignmentError(
            f"Run {run_name}: expected {n_datasets} alignment matrices, got {len(matrices)}"
        )

    return AlignmentResult(
        matrices=matrices,
        biases=biases,
        dataset_names=names,
        condition_ids=kept_conditions,
        n_time=int(n_time),
        global_scores=np.asarray(scores, dtype=float),
        averages=per_dataset,
    )
