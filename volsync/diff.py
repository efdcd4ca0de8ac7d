"""
Diff engine: turns a source and a destination snapshot into a SyncPlan.
"""
import logging
from typing import Dict, Iterable, List, Optional, Set

from .config import MAX_THREADS
from .exceptions import FileProbeError
from .models import ComparisonPolicy, Entry, SyncContext, SyncPlan
from .utils.checksum import batch_compare_checksums


logger = logging.getLogger(__name__)

GIB = 1024 ** 3


class DiffEngine:
    """Computes which files to copy and which destination objects to delete."""

    def __init__(
        self,
        policy: Optional[ComparisonPolicy] = None,
        context: Optional[SyncContext] = None,
        max_workers: int = MAX_THREADS,
    ):
        self.policy = policy or ComparisonPolicy()
        self.context = context or SyncContext()
        self.max_workers = max_workers

    def compute(self, source_entries: Iterable[Entry], dest_entries: Iterable[Entry]) -> SyncPlan:
        """
        Diff two snapshots.

        Args:
            source_entries: Snapshot of the source tree
            dest_entries: Snapshot of the destination tree

        Returns:
            SyncPlan with files to copy (in source order) and destination
            files and directories to delete
        """
        source_entries = list(source_entries)
        dest_entries = list(dest_entries)
        plan = SyncPlan()

        dest_files: Dict[str, Entry] = {
            entry.relative_path: entry for entry in dest_entries if not entry.is_directory
        }

        source_dirs: Set[str] = set()
        source_files: Set[str] = set()
        source_file_entries: List[Entry] = []
        to_copy: Set[str] = set()
        hash_candidates = []

        total = len(source_entries)
        for index, entry in enumerate(source_entries, 1):
            self.context.report_progress("compare", index, total)

            if entry.is_directory:
                source_dirs.add(entry.relative_path)
                continue

            # overlapping roots may list the same file twice
            if entry.relative_path in source_files:
                continue
            source_files.add(entry.relative_path)
            source_file_entries.append(entry)
            plan.total_source_bytes += entry.size

            dest = dest_files.get(entry.relative_path)
            if dest is None:
                to_copy.add(entry.relative_path)
            elif self.policy.only_detect_new_files:
                continue
            elif self._metadata_differs(entry, dest):
                to_copy.add(entry.relative_path)
            elif self.policy.use_content_hash:
                hash_candidates.append((entry.relative_path, entry.full_path, dest.full_path))

        if hash_candidates:
            to_copy.update(self._compare_content(hash_candidates))

        plan.files_to_copy = [entry for entry in source_file_entries if entry.relative_path in to_copy]
        plan.planned_copy_bytes = sum(entry.size for entry in plan.files_to_copy)
        plan.source_files = len(source_files)
        plan.source_dirs = len(source_dirs)

        seen_deletions: Set[str] = set()
        for entry in dest_entries:
            if entry.full_path in seen_deletions:
                continue
            if entry.is_directory:
                if entry.relative_path not in source_dirs:
                    plan.dirs_to_delete.append(entry.full_path)
                    seen_deletions.add(entry.full_path)
            elif entry.relative_path not in source_files:
                plan.files_to_delete.append(entry.full_path)
                seen_deletions.add(entry.full_path)

        self._log_summary(plan)
        return plan

    def _metadata_differs(self, source: Entry, dest: Entry) -> bool:
        """Size stage, then modification time stage."""
        if not self.policy.ignore_size and source.size != dest.size:
            return True
        if not self.policy.ignore_modification_time:
            drift = abs(source.last_modified_at - dest.last_modified_at)
            if drift > self.policy.mtime_tolerance_ns:
                return True
        return False

    def _compare_content(self, candidates) -> Set[str]:
        """Hash stage; files whose comparison failed are recorded and left out."""
        logger.info(f"Comparing checksums of {len(candidates)} files ({self.policy.hash_algorithm})")
        results = batch_compare_checksums(candidates, self.policy.hash_algorithm, self.max_workers)

        differing = set()
        for relative_path, source_path, dest_path in candidates:
            result = results[relative_path]
            if isinstance(result, OSError):
                path = result.filename or dest_path
                self.context.record(FileProbeError(result.strerror or str(result), str(path)))
            elif result:
                differing.add(relative_path)
        return differing

    def _log_summary(self, plan: SyncPlan) -> None:
        logger.info(
            f"Processed {plan.source_files} files on source drive "
            f"({plan.total_source_bytes / GIB:.2f} GiB)"
        )
        logger.info(f"{len(plan.files_to_copy)} files to sync ({plan.planned_copy_bytes / GIB:.2f} GiB)")
        logger.info(f"{len(plan.files_to_delete)} files to delete on destination drive")
        logger.info(f"{len(plan.dirs_to_delete)} folders to delete on destination drive")
