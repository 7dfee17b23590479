# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""
LFADSPREP: input preparation and result loading for LFADS runs

Converts per-session trial data into validated sequence records, seeds
multi-session stitching with trial-averaged PCA regression, lays out
content-addressed run directories and reads posterior means back.
"""

import logging

from .alignment import AlignmentResult, compute_alignment
from .collection import RunCollection, RunSpec
from .inputs import DatasetInputState, InputCacheOrchestrator, InputPreparationReport
from .params import RunConfig
from .paths import RunPaths, select_layout
from .posterior import PosteriorMeans, load_posterior_means
from .run import Dataset, DataSource, Run
from .sequences import RawCounts, SequenceRecord, build_sequence_records
from .settings import load_defaults
from .utils.errors import (
    AlignmentError,
    ConfigurationError,
    LfadsPrepError,
    SequenceDataError,
)
from .utils.logging_utils import configure_logging

logger = logging.getLogger("lfadsprep")
logger.addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "AlignmentError",
    "AlignmentResult",
    "ConfigurationError",
    "DataSource",
    "Dataset",
    "DatasetInputState",
    "InputCacheOrchestrator",
    "InputPreparationReport",
    "LfadsPrepError",
    "PosteriorMeans",
    "RawCounts",
    "Run",
    "RunCollection",
    "RunConfig",
    "RunPaths",
    "RunSpec",
    "SequenceDataError",
    "SequenceRecord",
    "build_sequence_records",
    "compute_alignment",
    "configure_logging",
    "load_defaults",
    "load_posterior_means",
    "select_layout",
]
