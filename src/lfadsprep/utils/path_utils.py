# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

StrPath = str | os.PathLike[str]

__all__ = [
    "ensure_directory",
    "atomic_output_path",
    "make_relative_symlink",
    "remove_if_exists",
]


def ensure_directory(
    path: StrPath | Path,
    *,
    parents: bool = True,
    exist_ok: bool = True,
    mode: int | None = None,
) -> Path:
    """Create *path* as a directory if it does not already exist.

    Parameters
    ----------
    path:
        Directory path to create. May be a string or :class:`os.PathLike`.
    parents:
        Whether to create parent directories. Defaults to ``True``.
    exist_ok:
        Passed through to :meth:`pathlib.Path.mkdir`.
    mode:
        Optional POSIX permission bits to apply after creation via
        :func:`os.chmod`.

    Returns
    -------
    :class:`pathlib.Path`
        The created (or pre-existing) directory path.
    """

    directory = Path(path)
    try:
        directory.mkdir(parents=parents, exist_ok=exist_ok)
    except FileExistsError:
        if not (exist_ok and directory.is_dir()):
            raise

    if mode is not None:
        directory.chmod(mode)

    return directory


@contextmanager
def atomic_output_path(path: StrPath) -> Iterator[Path]:
    """Yield a temporary sibling of *path* and rename it into place on success.

    The cache layer treats the existence of an artifact as a completion
    signal, so a partially written file must never appear under its final
    name. On error the temporary file is removed and the exception
    propagates.
    """

    target = Path(path)
    ensure_directory(target.parent)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
    )
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        yield tmp_path
        os.replace(tmp_path, target)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def make_relative_symlink(target: StrPath, link: StrPath, *, replace: bool = False) -> Path:
    """Create ``link`` pointing at ``target`` through a path relative to the link.

    Relative links keep a run tree valid when the whole collection root is
    moved. An existing link is left alone unless ``replace`` is true.
    """

    link_path = Path(link)
    ensure_directory(link_path.parent)
    relative = os.path.relpath(Path(target), start=link_path.parent)
    if link_path.is_symlink() or link_path.exists():
        if not replace:
            return link_path
        link_path.unlink()
    os.symlink(relative, link_path)
    return link_path


def remove_if_exists(path: StrPath) -> bool:
    """Remove a file or symlink when present; return whether anything was removed."""

    p = Path(path)
    if p.is_symlink() or p.exists():
        p.unlink()
        return True
    return False
