# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from .builder import build_sequence_records, check_sequence_struct, dataset_bin_width
from .format import (
    delete_sequence_file,
    read_sequence_file,
    sequence_file_exists,
    write_sequence_file,
)
from .rebin import rebin_factor, rebin_mean, rebin_sum, rebin_time
from .schema import ALIGNMENT, EXPORT, MODES, RawCounts, SequenceRecord

__all__ = [
    "ALIGNMENT",
    "EXPORT",
    "MODES",
    "RawCounts",
    "SequenceRecord",
    "build_sequence_records",
    "check_sequence_struct",
    "dataset_bin_width",
    "delete_sequence_file",
    "read_sequence_file",
    "rebin_factor",
    "rebin_mean",
    "rebin_sum",
    "rebin_time",
    "sequence_file_exists",
    "write_sequence_file",
]
