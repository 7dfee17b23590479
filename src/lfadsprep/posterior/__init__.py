# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from .loader import load_posterior_means, posterior_means_exist, resolve_posterior_files
from .means import PosteriorMeans, attach_to_records, merge_splits, read_posterior_file
from .model_outputs import (
    FitLog,
    ReadoutMatrices,
    load_fit_log,
    load_readout_matrices,
    readout_keys,
)

__all__ = [
    "FitLog",
    "PosteriorMeans",
    "ReadoutMatrices",
    "attach_to_records",
    "load_fit_log",
    "load_posterior_means",
    "load_readout_matrices",
    "merge_splits",
    "posterior_means_exist",
    "read_posterior_file",
    "readout_keys",
    "resolve_posterior_files",
]
