"""
Models for volume synchronization.
Contains the entry snapshot, sync plan, policy and report structures.
"""
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .config import CHECKSUM_ALGORITHM, SUPPORTED_CHECKSUM_ALGORITHMS
from .exceptions import FileOperationError


logger = logging.getLogger(__name__)

# progress(stage, current, total)
ProgressCallback = Callable[[str, int, int], None]


@dataclass(frozen=True)
class Entry:
    """One file or directory discovered while walking a tree."""

    name: str
    full_path: str
    relative_path: str
    is_directory: bool
    size: int = 0
    created_at: int = 0
    last_accessed_at: int = 0
    last_modified_at: int = 0

    @classmethod
    def from_dir_entry(cls, dir_entry: os.DirEntry, full_path: str, relative_path: str) -> "Entry":
        """
        Build an Entry from an os.scandir result.

        Timestamps are kept as integer nanoseconds so equality is exact.
        Symbolic links are described by the link itself, not its target.
        """
        st = dir_entry.stat(follow_symlinks=False)
        is_directory = dir_entry.is_dir(follow_symlinks=False)
        created_at = getattr(st, "st_birthtime_ns", None) or st.st_ctime_ns
        return cls(
            name=dir_entry.name,
            full_path=full_path,
            relative_path=relative_path,
            is_directory=is_directory,
            size=0 if is_directory else st.st_size,
            created_at=created_at,
            last_accessed_at=st.st_atime_ns,
            last_modified_at=st.st_mtime_ns,
        )

    @property
    def parent_relative_path(self) -> str:
        return self.relative_path.rpartition("/")[0]


@dataclass
class ComparisonPolicy:
    """Which comparison stages decide that an existing file must be copied again."""

    only_detect_new_files: bool = False
    ignore_modification_time: bool = False
    ignore_size: bool = False
    use_content_hash: bool = False
    hash_algorithm: str = CHECKSUM_ALGORITHM
    mtime_tolerance_ns: int = 0

    def __post_init__(self):
        self.hash_algorithm = self.hash_algorithm.lower()
        if self.hash_algorithm not in SUPPORTED_CHECKSUM_ALGORITHMS:
            raise ValueError(f"'{self.hash_algorithm}' is not a valid hash algorithm")
        if self.mtime_tolerance_ns < 0:
            raise ValueError("mtime_tolerance_ns must not be negative")


@dataclass
class SyncPlan:
    """Copy and delete actions computed by diffing two snapshots."""

    files_to_copy: List[Entry] = field(default_factory=list)
    files_to_delete: List[str] = field(default_factory=list)
    dirs_to_delete: List[str] = field(default_factory=list)
    total_source_bytes: int = 0
    planned_copy_bytes: int = 0
    source_files: int = 0
    source_dirs: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.files_to_copy or self.files_to_delete or self.dirs_to_delete)


@dataclass(frozen=True)
class SyncIssue:
    """A non-fatal error recorded during a run."""

    kind: str
    message: str
    path: str

    def __str__(self) -> str:
        return f"{self.message} - {self.path}"


@dataclass
class SyncContext:
    """Mutable state of a single run, threaded through scan, diff and execution."""

    progress: Optional[ProgressCallback] = None
    errors: List[SyncIssue] = field(default_factory=list)
    entries_scanned_source: int = 0
    entries_scanned_dest: int = 0

    def record(self, error: FileOperationError) -> None:
        """Keep a per-item error for the final report."""
        issue = SyncIssue(type(error).__name__, error.message, error.path)
        self.errors.append(issue)
        logger.error(f"{issue.kind}: {issue}")

    def report_progress(self, stage: str, current: int, total: int) -> None:
        if self.progress is not None:
            self.progress(stage, current, total)


class ExecutorStage(Enum):
    COPYING = "copying"
    DELETING_FILES = "deleting_files"
    DELETING_DIRECTORIES = "deleting_directories"
    DONE = "done"


@dataclass
class ExecutionResult:
    """Counts of what the executor actually changed."""

    files_copied: int = 0
    bytes_copied: int = 0
    files_deleted: int = 0
    dirs_deleted: int = 0
    stage: ExecutorStage = ExecutorStage.COPYING


@dataclass
class SyncReport:
    """Result of a sync run."""

    entries_scanned_source: int = 0
    entries_scanned_dest: int = 0
    files_copied: int = 0
    files_deleted: int = 0
    dirs_deleted: int = 0
    bytes_copied: int = 0
    bytes_planned: int = 0
    total_source_bytes: int = 0
    files_planned: int = 0
    files_to_delete_planned: int = 0
    dirs_to_delete_planned: int = 0
    executed: bool = False
    errors: List[SyncIssue] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
