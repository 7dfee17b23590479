# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from .artifacts import (
    InputInfo,
    channel_space_bias,
    load_input_info,
    write_input_info,
    write_lfads_input_file,
)
from .orchestrator import (
    DatasetInputState,
    InputCacheOrchestrator,
    InputPreparationReport,
    check_trial_capacity,
)
from .partition import partition_trials, required_trial_count

__all__ = [
    "DatasetInputState",
    "InputCacheOrchestrator",
    "InputInfo",
    "InputPreparationReport",
    "channel_space_bias",
    "check_trial_capacity",
    "load_input_info",
    "partition_trials",
    "required_trial_count",
    "write_input_info",
    "write_lfads_input_file",
]
