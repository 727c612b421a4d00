"""Tests for gtp_ensure_dir."""

import os

import pytest

from gtp_ensure_dir import ensure_dir, ensure_parent_dir


def test_ensure_dir_creates_parents(tmp_path):
    path = str(tmp_path / 'a' / 'b' / 'c')
    ensure_dir(path)
    assert os.path.isdir(path)
    ensure_dir(path)
    assert os.path.isdir(path)


def test_ensure_parent_dir(tmp_path):
    ensure_parent_dir(str(tmp_path / 'logs' / 'transplant.log'))
    assert os.path.isdir(str(tmp_path / 'logs'))
    assert not os.path.exists(str(tmp_path / 'logs' / 'transplant.log'))


def test_regular_file_in_the_way(tmp_path):
    path = tmp_path / 'objects'
    path.write_text('not a directory')
    with pytest.raises(FileExistsError):
        ensure_dir(str(path))
    assert path.read_text() == 'not a directory'
