"""
Unit tests for cli.py
"""
import logging
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from volsync.cli import EXIT_FATAL, EXIT_OK, EXIT_WITH_ERRORS, main
from tests.fixtures.fake_volumes import VOLUME_C, VOLUME_UNMOUNTED
from tests.fixtures.trees import make_tree, relative_paths


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to the runner's streams after each test."""
    yield
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def trees(tmp_path):
    """Source with two files and an empty destination."""
    source = make_tree(tmp_path / "src", {"a.txt": b"a", "sub/b.txt": b"bb"})
    dest = tmp_path / "dst"
    dest.mkdir()
    return source, dest


def test_sync_command(runner, trees):
    """Test a clean run prints the summary and exits 0."""
    source, dest = trees

    result = runner.invoke(main, ["sync", str(source), str(dest), "--no-log"])

    assert result.exit_code == EXIT_OK
    assert "Copied 2/2 files" in result.output
    assert relative_paths(dest) == {"a.txt", "sub", "sub/b.txt"}


def test_sync_command_no_sync(runner, trees):
    """Test that --no-sync only compares."""
    source, dest = trees

    result = runner.invoke(main, ["sync", str(source), str(dest), "--no-log", "--no-sync"])

    assert result.exit_code == EXIT_OK
    assert "2 files to sync" in result.output
    assert "Copied" not in result.output
    assert relative_paths(dest) == set()


def test_sync_command_silent(runner, trees):
    """Test that --silent prints nothing."""
    source, dest = trees

    result = runner.invoke(main, ["sync", str(source), str(dest), "--no-log", "--silent"])

    assert result.exit_code == EXIT_OK
    assert result.output == ""


def test_sync_command_passes_policy(runner, trees):
    """Test that comparison flags end up in the policy."""
    source, dest = trees

    with patch("volsync.cli.run_sync") as mock_run:
        mock_run.return_value.has_errors = False
        runner.invoke(
            main,
            ["sync", str(source), str(dest), "--no-log", "--silent", "--only-new",
             "--ignore-time", "--ignore-size", "--hash", "SHA1", "--time-tolerance-ms", "2000"],
        )

    policy = mock_run.call_args.args[2]
    assert policy.only_detect_new_files is True
    assert policy.ignore_modification_time is True
    assert policy.ignore_size is True
    assert policy.use_content_hash is True
    assert policy.hash_algorithm == "sha1"
    assert policy.mtime_tolerance_ns == 2 * 10**9
    assert mock_run.call_args.kwargs["execute"] is True


def test_sync_command_with_errors(runner, trees):
    """Test that per-file errors are listed with their path and exit 1."""
    source, dest = trees

    with patch("volsync.fileops.shutil.copy2", side_effect=PermissionError(13, "Access is denied")):
        result = runner.invoke(main, ["sync", str(source), str(dest), "--no-log"])

    assert result.exit_code == EXIT_WITH_ERRORS
    assert "[CopyError] Access is denied" in result.output
    assert "a.txt" in result.output


def test_sync_command_fatal(runner, tmp_path):
    """Test that a missing drive aborts with exit code 2."""
    result = runner.invoke(main, ["sync", str(tmp_path / "missing"), str(tmp_path), "--no-log"])

    assert result.exit_code == EXIT_FATAL
    assert "ERROR:" in result.output


def test_sync_command_rejects_unknown_hash(runner, trees):
    """Test that only supported algorithms are accepted."""
    source, dest = trees

    result = runner.invoke(main, ["sync", str(source), str(dest), "--no-log", "--hash", "crc32"])

    assert result.exit_code != 0
    assert relative_paths(dest) == set()


def test_drives_command(runner):
    """Test listing volumes with and without mount points."""
    with patch("volsync.cli.list_volumes", return_value=[(VOLUME_C, "C:"), (VOLUME_UNMOUNTED, None)]):
        result = runner.invoke(main, ["drives"])

    assert result.exit_code == 0
    assert VOLUME_C in result.output
    assert "C:" in result.output
    assert "*** NO MOUNTPOINT FOUND ***" in result.output


def test_sync_command_without_writable_log_dir(runner, trees, tmp_path):
    """Test that an unusable log folder only drops the log file."""
    source, dest = trees
    blocked = tmp_path / "blocked"
    blocked.write_text("a file, not a folder")

    with patch("volsync.cli.LOG_DIR", blocked / "logs"):
        result = runner.invoke(main, ["sync", str(source), str(dest)])

    assert result.exit_code == EXIT_OK
    assert "Unable to write log file" in result.output
    assert relative_paths(dest) == {"a.txt", "sub", "sub/b.txt"}
    assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)
