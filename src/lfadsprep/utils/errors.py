# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Project-specific exception hierarchy for input preparation and loading."""

from __future__ import annotations


class LfadsPrepError(Exception):
    """Base class for lfadsprep errors."""


class SequenceDataError(LfadsPrepError, ValueError):
    """Spike counts, time vectors or trial metadata violate sequence invariants."""


class AlignmentError(LfadsPrepError, ValueError):
    """Alignment matrices could not be computed or contain invalid values."""


class ConfigurationError(LfadsPrepError, ValueError):
    """Run parameters, layout versions or settings are inconsistent."""
