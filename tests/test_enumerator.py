"""
Unit tests for enumerator.py
"""
import os
from unittest.mock import patch

import pytest

from volsync.enumerator import EntryEnumerator, SearchMode, is_reserved_name, scan_volume
from volsync.exceptions import EnumerationError
from tests.fixtures.trees import BASE_MTIME_NS, make_tree


@pytest.fixture
def sample_tree(tmp_path):
    """Create a small tree with nested folders."""
    return make_tree(
        tmp_path / "root",
        {
            "a.txt": b"alpha",
            "d1/e1/f.txt": b"deep file",
            "d1/notes.md": b"notes",
            "d2/g.txt": b"gamma",
        },
        dirs=["empty"],
    )


def test_immediate_children_only(sample_tree):
    """Test that the default mode lists only the first level."""
    names = {entry.name for entry in EntryEnumerator(str(sample_tree))}

    assert names == {"a.txt", "d1", "d2", "empty"}


def test_all_descendants_visits_everything_once(sample_tree):
    """Test that a recursive walk is exhaustive and never repeats an entry."""
    entries = list(EntryEnumerator(str(sample_tree), mode=SearchMode.ALL_DESCENDANTS))
    relative = [entry.relative_path for entry in entries]

    assert len(relative) == len(set(relative))
    assert set(relative) == {
        "a.txt", "d1", "d1/e1", "d1/e1/f.txt", "d1/notes.md", "d2", "d2/g.txt", "empty",
    }


def test_subtree_finished_before_siblings(sample_tree):
    """Test that a subdirectory is walked completely before the next sibling."""
    relative = [
        entry.relative_path
        for entry in EntryEnumerator(str(sample_tree), mode=SearchMode.ALL_DESCENDANTS)
    ]

    d1_positions = [i for i, path in enumerate(relative) if path.startswith("d1/")]
    assert d1_positions == list(range(d1_positions[0], d1_positions[0] + len(d1_positions)))

    # The whole root listing comes first
    assert set(relative[:4]) == {"a.txt", "d1", "d2", "empty"}


def test_entry_metadata(sample_tree):
    """Test that entries carry size, exact timestamps and both path forms."""
    entries = {entry.relative_path: entry for entry in EntryEnumerator(str(sample_tree))}

    file_entry = entries["a.txt"]
    assert file_entry.is_directory is False
    assert file_entry.size == 5
    assert file_entry.last_modified_at == BASE_MTIME_NS
    assert file_entry.last_modified_at == os.stat(sample_tree / "a.txt").st_mtime_ns
    assert file_entry.full_path == os.path.join(str(sample_tree), "a.txt")

    dir_entry = entries["d1"]
    assert dir_entry.is_directory is True
    assert dir_entry.size == 0


def test_pattern_filters_names_but_not_descent(sample_tree):
    """Test that subdirectories are walked even when their name does not match."""
    entries = EntryEnumerator(str(sample_tree), pattern="*.txt", mode=SearchMode.ALL_DESCENDANTS)

    assert {entry.relative_path for entry in entries} == {"a.txt", "d1/e1/f.txt", "d2/g.txt"}


def test_relative_base(sample_tree):
    """Test that relative paths are prefixed with the given base."""
    entries = EntryEnumerator(
        str(sample_tree / "d1"), mode=SearchMode.ALL_DESCENDANTS, relative_base="d1"
    )

    assert {entry.relative_path for entry in entries} == {"d1/e1", "d1/e1/f.txt", "d1/notes.md"}


def test_enumerator_is_single_pass(sample_tree):
    """Test that a second iteration is refused."""
    enumerator = EntryEnumerator(str(sample_tree))
    list(enumerator)

    with pytest.raises(RuntimeError):
        iter(enumerator)


def test_empty_directory(tmp_path):
    """Test that an empty directory yields nothing without error."""
    assert list(EntryEnumerator(str(tmp_path), mode=SearchMode.ALL_DESCENDANTS)) == []


def test_missing_root_raises(tmp_path):
    """Test that a failing listing surfaces as EnumerationError."""
    missing = str(tmp_path / "missing")

    with pytest.raises(EnumerationError) as excinfo:
        list(EntryEnumerator(missing))

    assert excinfo.value.path == missing


def test_failing_subdirectory_raises(sample_tree):
    """Test that a listing failure deep in the tree is reported with its path."""
    real_scandir = os.scandir

    def failing_scandir(path):
        if str(path).endswith("e1"):
            raise PermissionError(13, "Permission denied", path)
        return real_scandir(path)

    with patch("volsync.enumerator.os.scandir", side_effect=failing_scandir):
        with pytest.raises(EnumerationError, match="Permission denied"):
            list(EntryEnumerator(str(sample_tree), mode=SearchMode.ALL_DESCENDANTS))


def test_deep_tree_does_not_recurse(tmp_path):
    """Test that a tree deeper than the recursion limit is walked."""
    depth = 1200
    current = tmp_path / "deep"
    current.mkdir()
    # relative chdir keeps each mkdir path short
    cwd = os.getcwd()
    try:
        os.chdir(current)
        for _ in range(depth):
            os.mkdir("d")
            os.chdir("d")
    finally:
        os.chdir(cwd)

    try:
        entries = list(EntryEnumerator(str(current), mode=SearchMode.ALL_DESCENDANTS))
    finally:
        for level in range(depth, 0, -1):
            os.rmdir(os.path.join(current, *["d"] * level))

    assert len(entries) == depth
    assert max(entry.relative_path.count("/") for entry in entries) == depth - 1


def test_long_paths(tmp_path):
    """Test that paths over 300 characters are enumerated like short ones."""
    segment = "s" * 60
    relative = "/".join([segment] * 6) + "/file.txt"
    make_tree(tmp_path / "root", {relative: b"long"})

    entries = {
        entry.relative_path: entry
        for entry in EntryEnumerator(str(tmp_path / "root"), mode=SearchMode.ALL_DESCENDANTS)
    }

    assert len(entries[relative].full_path) > 300
    assert entries[relative].size == 4


def test_is_reserved_name():
    """Test case-insensitive matching of reserved root names."""
    assert is_reserved_name("$RECYCLE.BIN")
    assert is_reserved_name("$Recycle.Bin")
    assert is_reserved_name("System Volume Information")
    assert not is_reserved_name("Recycle")


def test_scan_volume_skips_reserved_root_names(tmp_path):
    """Test that recycle bin and system folders are skipped only at the root."""
    root = make_tree(
        tmp_path / "volume",
        {
            "$RECYCLE.BIN/S-1-5/deleted.txt": b"trash",
            "System Volume Information/tracking.log": b"sys",
            "docs/$RECYCLE.BIN/kept.txt": b"kept",
            "top.txt": b"top",
        },
    )

    relative = {entry.relative_path for entry in scan_volume(str(root))}

    assert relative == {"docs", "docs/$RECYCLE.BIN", "docs/$RECYCLE.BIN/kept.txt", "top.txt"}
