"""
CLI entry point for volsync.
Handles command line arguments and dispatches to the sync driver.
"""
import logging
import sys
from datetime import date
from typing import Optional

import click

from .config import LOG_DIR, LOG_FILE_TEMPLATE, SUPPORTED_CHECKSUM_ALGORITHMS
from .exceptions import SyncError
from .models import ComparisonPolicy, SyncReport
from .sync import list_volumes, run_sync


logger = logging.getLogger(__name__)

GIB = 1024 ** 3

EXIT_OK = 0
EXIT_WITH_ERRORS = 1
EXIT_FATAL = 2

STAGE_LABELS = {
    "compare": "Comparing files",
    "copy": "Copying files",
}


def setup_logging(log_level: str, log_to_file: bool = True, quiet: bool = False) -> None:
    """Configure logging with the specified level."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    handlers = []
    log_file_error = None
    if log_to_file:
        log_file = LOG_DIR / LOG_FILE_TEMPLATE.format(date=date.today().isoformat())
        try:
            LOG_DIR.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            log_file_error = e
    if not quiet:
        handlers.append(logging.StreamHandler(sys.stderr))
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )
    if log_file_error is not None:
        logger.warning(f"Unable to write log file, continuing without it: {log_file_error}")
    logger.debug(f"Logging initialized at level {log_level}")


class ProgressRenderer:
    """Feeds progress callbacks into one click progress bar per stage."""

    def __init__(self):
        self._bar = None
        self._stage: Optional[str] = None
        self._position = 0

    def __call__(self, stage: str, current: int, total: int) -> None:
        if stage != self._stage:
            self.close()
            self._stage = stage
            self._position = 0
            self._bar = click.progressbar(length=max(total, 1), label=STAGE_LABELS.get(stage, stage))
            self._bar.__enter__()
        if current > self._position:
            self._bar.update(current - self._position)
            self._position = current

    def close(self) -> None:
        if self._bar is not None:
            self._bar.__exit__(None, None, None)
            self._bar = None


def print_report(report: SyncReport) -> None:
    click.echo(f"Found {report.entries_scanned_source} entries on source drive.")
    click.echo(f"Found {report.entries_scanned_dest} entries on destination drive.")
    click.echo(f"{report.files_planned} files to sync ({report.bytes_planned / GIB:.2f} GiB)")
    click.echo(f"{report.files_to_delete_planned} files to delete on destination drive")
    click.echo(f"{report.dirs_to_delete_planned} folders to delete on destination drive")

    if report.executed:
        click.echo(
            f"Copied {report.files_copied}/{report.files_planned} files "
            f"({report.bytes_copied / GIB:.2f} GiB)"
        )
        click.echo(f"Deleted {report.files_deleted}/{report.files_to_delete_planned} files")
        click.echo(f"Deleted {report.dirs_deleted}/{report.dirs_to_delete_planned} folders")

    if report.errors:
        click.secho("ERRORS:", fg="red", err=True)
        for issue in report.errors:
            click.echo(f"  [{issue.kind}] {issue.message} - {issue.path}", err=True)


@click.group()
@click.version_option(package_name="volsync")
def main():
    """Synchronize files and folders between drives even if unmounted."""


@main.command("sync")
@click.argument("source")
@click.argument("dest")
@click.option("-s", "--silent", is_flag=True, help="Suppress all console output.")
@click.option("--no-log", is_flag=True, help="Do not write a log file.")
@click.option("--no-sync", is_flag=True, help="Compare files but do not sync.")
@click.option("--only-new", is_flag=True, help="Only copy new files, do not compare existing files.")
@click.option("--ignore-time", is_flag=True, help="Ignore file modification time.")
@click.option("--ignore-size", is_flag=True, help="Ignore file size.")
@click.option(
    "--hash", "hash_algorithm",
    type=click.Choice(SUPPORTED_CHECKSUM_ALGORITHMS, case_sensitive=False),
    help="Use checksums to compare files (slow).",
)
@click.option(
    "--time-tolerance-ms", type=click.IntRange(min=0), default=0, show_default=True,
    help="Treat modification times this close as equal.",
)
@click.option("--log-level", default="INFO", show_default=True, help="Logging level.")
def sync_command(
    source, dest, silent, no_log, no_sync, only_new, ignore_time, ignore_size,
    hash_algorithm, time_tolerance_ms, log_level,
):
    """Mirror SOURCE onto DEST (drive letters, volume GUID paths or folders)."""
    setup_logging(log_level, log_to_file=not no_log, quiet=silent)

    policy = ComparisonPolicy(
        only_detect_new_files=only_new,
        ignore_modification_time=ignore_time,
        ignore_size=ignore_size,
        use_content_hash=hash_algorithm is not None,
        hash_algorithm=hash_algorithm or ComparisonPolicy.hash_algorithm,
        mtime_tolerance_ns=time_tolerance_ms * 1_000_000,
    )

    progress = None if silent else ProgressRenderer()
    try:
        report = run_sync(source, dest, policy, execute=not no_sync, progress=progress)
    except SyncError as e:
        logger.error(f"Sync aborted: {e}")
        if not silent:
            click.secho(f"ERROR: {e}", fg="red", err=True)
        sys.exit(EXIT_FATAL)
    finally:
        if progress is not None:
            progress.close()

    if not silent:
        print_report(report)
    sys.exit(EXIT_WITH_ERRORS if report.has_errors else EXIT_OK)


@main.command("drives")
def drives_command():
    """Print all volume addresses including existing mount points."""
    click.echo("VOLUMES:")
    for address, label in list_volumes():
        click.echo(f"\t{address}")
        click.echo(f"\t\t{label or '*** NO MOUNTPOINT FOUND ***'}")


if __name__ == "__main__":
    main()
