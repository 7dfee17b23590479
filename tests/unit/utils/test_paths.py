from __future__ import annotations

import os
from pathlib import Path

import pytest

from lfadsprep.utils.path_utils import (
    atomic_output_path,
    ensure_directory,
    make_relative_symlink,
    remove_if_exists,
)


def test_ensure_directory_creates_parents(tmp_path):
    target = tmp_path / "a" / "b" / "c"

    result = ensure_directory(target)

    assert result == target
    assert target.is_dir()
    assert ensure_directory(target) == target


def test_atomic_output_path_renames_on_success(tmp_path):
    target = tmp_path / "out" / "lfads_sessA.h5"

    with atomic_output_path(target) as tmp:
        assert tmp != target
        assert tmp.parent == target.parent
        tmp.write_text("payload")
        assert not target.exists()

    assert target.read_text() == "payload"
    assert [p.name for p in target.parent.iterdir()] == ["lfads_sessA.h5"]


def test_atomic_output_path_cleans_up_on_error(tmp_path):
    target = tmp_path / "lfads_sessA.h5"

    with pytest.raises(RuntimeError):
        with atomic_output_path(target) as tmp:
            tmp.write_text("partial")
            raise RuntimeError("interrupted")

    assert list(tmp_path.iterdir()) == []


def test_make_relative_symlink_uses_relative_target(tmp_path):
    target = tmp_path / "data_abc" / "run" / "lfads_sessA.h5"
    target.parent.mkdir(parents=True)
    target.write_text("x")
    link = tmp_path / "param_def" / "run" / "lfadsInput" / "lfads_sessA.h5"

    make_relative_symlink(target, link)

    stored = os.readlink(link)
    assert not os.path.isabs(stored)
    assert Path(stored) == Path("..", "..", "..", "data_abc", "run", "lfads_sessA.h5")
    assert link.read_text() == "x"


def test_make_relative_symlink_keeps_existing_unless_replaced(tmp_path):
    first = tmp_path / "first.txt"
    second = tmp_path / "second.txt"
    first.write_text("1")
    second.write_text("2")
    link = tmp_path / "links" / "current.txt"

    make_relative_symlink(first, link)
    make_relative_symlink(second, link)
    assert link.read_text() == "1"

    make_relative_symlink(second, link, replace=True)
    assert link.read_text() == "2"


def test_remove_if_exists_handles_dangling_links(tmp_path):
    link = tmp_path / "dangling"
    os.symlink(tmp_path / "missing", link)

    assert remove_if_exists(link) is True
    assert remove_if_exists(link) is False
