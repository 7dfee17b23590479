# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from .layout import (
    CURRENT_LAYOUT_VERSION,
    SHARED_DATA_LAYOUT_VERSION,
    CurrentLayout,
    Layout,
    LegacyLayout,
    RunPaths,
    SharedDataLayout,
    select_layout,
)

__all__ = [
    "CURRENT_LAYOUT_VERSION",
    "SHARED_DATA_LAYOUT_VERSION",
    "CurrentLayout",
    "Layout",
    "LegacyLayout",
    "RunPaths",
    "SharedDataLayout",
    "select_layout",
]
