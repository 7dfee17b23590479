# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

"""Logging setup and timing helpers for pipeline stages."""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from time import perf_counter
from types import TracebackType
from typing import Literal

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int | str | None = None) -> logging.Logger:
    """Attach a single stream handler to the ``lfadsprep`` logger.

    Without an explicit ``level`` the ``log_level`` setting is used.
    """

    if level is None:
        from ..settings import load_defaults

        level = load_defaults().log_level
    logger = logging.getLogger("lfadsprep")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)
    if not any(getattr(h, "_lfadsprep_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._lfadsprep_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


def format_duration(seconds: float) -> str:
    """Render a duration in seconds into a human-readable ASCII string."""

    duration = timedelta(seconds=max(seconds, 0.0))
    total_seconds = duration.total_seconds()

    if total_seconds < 1.0:
        return f"{total_seconds * 1000.0:.0f} ms"
    if total_seconds < 60.0:
        return f"{total_seconds:.2f} s"

    days = duration.days
    remaining_seconds = duration.seconds
    hours, remaining_seconds = divmod(remaining_seconds, 3600)
    minutes, seconds_whole = divmod(remaining_seconds, 60)
    seconds_fraction = seconds_whole + duration.microseconds / 1_000_000

    if days == 0 and hours == 0:
        return f"{minutes} min {seconds_fraction:.1f} s"
    if days == 0:
        return f"{hours} h {minutes} min {seconds_fraction:.1f} s"
    return f"{days} d {hours} h {minutes} min"


@dataclass
class StageTimer:
    """Time one preparation stage and log how it ended.

    The record is logged at ERROR when the block raises; the exception
    still propagates.
    """

    label: str
    logger: logging.Logger
    run_name: str = ""

    _start: float = field(init=False, default=0.0)
    elapsed: float = field(init=False, default=0.0)

    def __enter__(self) -> "StageTimer":
        self._start = perf_counter()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        _tb: TracebackType | None,
    ) -> Literal[False]:
        self.elapsed = perf_counter() - self._start
        status = "completed" if exc is None else "failed"
        prefix = f"Run {self.run_name}: " if self.run_name else ""
        self.logger.log(
            logging.ERROR if exc is not None else logging.INFO,
            "%s%s %s in %s",
            prefix,
            self.label,
            status,
            format_duration(self.elapsed),
        )
        return False
