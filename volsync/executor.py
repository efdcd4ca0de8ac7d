"""
Applies a SyncPlan to the destination tree.
"""
import logging
from typing import Optional, Set

from . import fileops
from .config import DIR_DELETE_RETRY_DELAY, MAX_RETRIES
from .exceptions import CopyError, DeleteError
from .models import ExecutionResult, ExecutorStage, SyncContext, SyncPlan
from .paths import join_relative
from .utils.retries import retry_call


logger = logging.getLogger(__name__)

GIB = 1024 ** 3


class SyncExecutor:
    """
    Copies new and changed files, then deletes stale files, then stale folders.

    A failing item is recorded in the context and skipped; the executor
    always works through the whole plan.
    """

    def __init__(
        self,
        dest_root: str,
        context: Optional[SyncContext] = None,
        dir_retry_delay: float = DIR_DELETE_RETRY_DELAY,
    ):
        """
        Args:
            dest_root: Destination root in internal addressing form
            context: Run context receiving errors and progress
            dir_retry_delay: Seconds to wait before retrying a folder deletion
        """
        self.dest_root = dest_root
        self.context = context or SyncContext()
        self.dir_retry_delay = dir_retry_delay
        self.stage = ExecutorStage.COPYING
        self._known_dirs: Set[str] = set()

    def execute(self, plan: SyncPlan) -> ExecutionResult:
        result = ExecutionResult()

        self.stage = result.stage = ExecutorStage.COPYING
        self._copy_files(plan, result)

        self.stage = result.stage = ExecutorStage.DELETING_FILES
        self._delete_files(plan, result)

        self.stage = result.stage = ExecutorStage.DELETING_DIRECTORIES
        self._delete_dirs(plan, result)

        self.stage = result.stage = ExecutorStage.DONE

        logger.info(
            f"Copied {result.files_copied}/{len(plan.files_to_copy)} files "
            f"({result.bytes_copied / GIB:.2f} GiB)"
        )
        logger.info(f"Deleted {result.files_deleted}/{len(plan.files_to_delete)} files")
        logger.info(f"Deleted {result.dirs_deleted}/{len(plan.dirs_to_delete)} folders")
        return result

    def _copy_files(self, plan: SyncPlan, result: ExecutionResult) -> None:
        for entry in plan.files_to_copy:
            destination = join_relative(self.dest_root, entry.relative_path)
            try:
                self._ensure_directory(entry.parent_relative_path)
                retry_call(
                    fileops.copy_file,
                    entry.full_path,
                    destination,
                    max_retries=MAX_RETRIES,
                    before_retry=lambda: fileops.clear_readonly(destination),
                )
            except OSError as e:
                self.context.record(CopyError(e.strerror or str(e), entry.full_path))
                continue

            result.files_copied += 1
            result.bytes_copied += entry.size
            self.context.report_progress("copy", result.bytes_copied, plan.planned_copy_bytes)

    def _ensure_directory(self, relative_dir: str) -> None:
        """Create the destination folder chain, skipping levels that already exist."""
        if not relative_dir or relative_dir in self._known_dirs:
            return

        current = ""
        for part in relative_dir.split("/"):
            current = f"{current}/{part}" if current else part
            if current in self._known_dirs:
                continue
            path = join_relative(self.dest_root, current)
            if not fileops.dir_exists(path, follow_symlinks=False):
                fileops.make_dir(path)
            self._known_dirs.add(current)

    def _delete_files(self, plan: SyncPlan, result: ExecutionResult) -> None:
        for path in plan.files_to_delete:
            try:
                retry_call(
                    fileops.delete_file,
                    path,
                    max_retries=MAX_RETRIES,
                    before_retry=lambda: fileops.clear_readonly(path),
                )
            except OSError as e:
                self.context.record(DeleteError(e.strerror or str(e), path))
                continue
            result.files_deleted += 1

    def _delete_dirs(self, plan: SyncPlan, result: ExecutionResult) -> None:
        # Reverse order puts every folder before its parent
        for path in sorted(plan.dirs_to_delete, reverse=True):
            try:
                # A parent can look non-empty right after its children were removed
                retry_call(
                    fileops.remove_dir,
                    path,
                    max_retries=MAX_RETRIES,
                    delay=self.dir_retry_delay,
                )
            except OSError as e:
                self.context.record(DeleteError(e.strerror or str(e), path))
                continue
            result.dirs_deleted += 1
