# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from .pcr import (
    ALIGNMENT_APPROACHES,
    REGRESS_GLOBAL_PCS,
    RIDGE_REGRESS_GLOBAL_PCS,
    AlignmentResult,
    compute_alignment,
)
from .trial_average import condition_averages, condition_key, group_trials

__all__ = [
    "ALIGNMENT_APPROACHES",
    "REGRESS_GLOBAL_PCS",
    "RIDGE_REGRESS_GLOBAL_PCS",
    "AlignmentResult",
    "compute_alignment",
    "condition_averages",
    "condition_key",
    "group_trials",
]
