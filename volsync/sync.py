"""
Core synchronization driver.
Resolves both volumes, scans them, diffs the snapshots and applies the plan.
"""
import logging
import os
from typing import List, Optional

from . import fileops
from .diff import DiffEngine
from .enumerator import scan_volume
from .exceptions import VolumeNotFoundError
from .executor import SyncExecutor
from .models import ComparisonPolicy, ProgressCallback, SyncContext, SyncReport
from .paths import (
    UNC_PREFIX,
    is_volume_reference,
    join_relative,
    strip_root,
    to_internal_form,
    to_relative_path,
)
from .volumes import Mount, VolumeAddressResolver, VolumeDirectory


# Configure logger
logger = logging.getLogger(__name__)


def resolve_root(reference: str, resolver: VolumeAddressResolver) -> str:
    """
    Turn a user supplied reference into a root in internal addressing form.

    Drive letters and volume addresses go through the resolver; a folder
    below a drive letter ("D:\\photos") is joined onto the resolved volume.
    Any other reference is treated as a plain directory.

    Raises:
        VolumeNotFoundError: The volume is not mounted or the root is not
            an accessible directory
    """
    if is_volume_reference(reference):
        root = resolver.resolve(reference)
        if not reference.startswith(UNC_PREFIX):
            root = join_relative(root, to_relative_path(strip_root(reference)))
    else:
        root = to_internal_form(os.path.abspath(reference))

    if not fileops.dir_exists(root):
        raise VolumeNotFoundError(reference, f"Unable to find provided drive '{reference}'")
    return root


def run_sync(
    source: str,
    dest: str,
    policy: Optional[ComparisonPolicy] = None,
    *,
    volumes: Optional[VolumeDirectory] = None,
    execute: bool = True,
    progress: Optional[ProgressCallback] = None,
) -> SyncReport:
    """
    Mirror source onto dest.

    Args:
        source: Source drive letter, volume address or directory
        dest: Destination drive letter, volume address or directory
        policy: Comparison policy (defaults compare size and modification time)
        volumes: Volume table used to resolve drive letters
        execute: False only computes and reports the plan
        progress: Optional progress(stage, current, total) callback

    Returns:
        SyncReport with counts and every per-item error

    Raises:
        VolumeNotFoundError: A root could not be resolved
        EnumerationError: A side could not be scanned completely
    """
    policy = policy or ComparisonPolicy()
    context = SyncContext(progress=progress)
    resolver = VolumeAddressResolver(volumes)

    source_root = resolve_root(source, resolver)
    dest_root = resolve_root(dest, resolver)
    logger.info(f"Synchronizing {source_root} -> {dest_root}")

    if policy.use_content_hash:
        logger.warning("Hash option detected. This can take a VERY long time.")

    source_entries = scan_volume(source_root)
    context.entries_scanned_source = len(source_entries)
    logger.info(f"Found {len(source_entries)} entries on source drive.")

    dest_entries = scan_volume(dest_root)
    context.entries_scanned_dest = len(dest_entries)
    logger.info(f"Found {len(dest_entries)} entries on destination drive.")

    plan = DiffEngine(policy, context).compute(source_entries, dest_entries)

    report = SyncReport(
        entries_scanned_source=context.entries_scanned_source,
        entries_scanned_dest=context.entries_scanned_dest,
        bytes_planned=plan.planned_copy_bytes,
        total_source_bytes=plan.total_source_bytes,
        files_planned=len(plan.files_to_copy),
        files_to_delete_planned=len(plan.files_to_delete),
        dirs_to_delete_planned=len(plan.dirs_to_delete),
        errors=context.errors,
    )

    if not execute:
        return report

    result = SyncExecutor(dest_root, context).execute(plan)
    report.executed = True
    report.files_copied = result.files_copied
    report.bytes_copied = result.bytes_copied
    report.files_deleted = result.files_deleted
    report.dirs_deleted = result.dirs_deleted

    if report.has_errors:
        logger.warning(f"Sync completed with {len(report.errors)} errors")
    else:
        logger.info("Sync completed successfully.")
    return report


def list_volumes(volumes: Optional[VolumeDirectory] = None) -> List[Mount]:
    """List every known volume address with its current mount label (or None)."""
    return VolumeAddressResolver(volumes).list_volumes()
