"""
File system primitives used by the executor.
All paths are accepted in internal form and converted before each OS call.
"""
import logging
import os
import shutil
import stat
import uuid

from .config import PARTIAL_SUFFIX
from .paths import to_external_form


logger = logging.getLogger(__name__)


def dir_exists(path: str, follow_symlinks: bool = True) -> bool:
    """
    True when path is a directory.

    With follow_symlinks=False a link to a directory does not count, so
    nothing is ever written through a link out of the destination tree.
    """
    try:
        mode = os.stat(to_external_form(path), follow_symlinks=follow_symlinks).st_mode
    except OSError:
        return False
    return stat.S_ISDIR(mode)


def make_dir(path: str) -> None:
    """Create a single directory level; an existing directory is not an error."""
    try:
        os.mkdir(to_external_form(path))
    except FileExistsError:
        if not dir_exists(path, follow_symlinks=False):
            raise


def copy_file(source: str, destination: str) -> None:
    """
    Copy content and timestamps from source to destination.

    Data is written to a short temporary name in the destination folder and
    renamed over destination once complete, so an interrupted copy never
    leaves a truncated destination file. The temporary name does not grow
    with the destination name, which may already be at the length limit.
    """
    temp_path = os.path.join(os.path.dirname(destination), f".{uuid.uuid4().hex}{PARTIAL_SUFFIX}")
    external_temp = to_external_form(temp_path)
    try:
        shutil.copy2(to_external_form(source), external_temp, follow_symlinks=False)
        os.replace(external_temp, to_external_form(destination))
    except OSError:
        if os.path.lexists(external_temp):
            os.remove(external_temp)
        raise


def delete_file(path: str) -> None:
    os.remove(to_external_form(path))


def remove_dir(path: str) -> None:
    """Remove an empty directory; a non-empty one fails instead of cascading."""
    os.rmdir(to_external_form(path))


def clear_readonly(path: str) -> None:
    """Make path writable again so a retried copy or delete can replace it."""
    external = to_external_form(path)
    try:
        mode = os.stat(external, follow_symlinks=False).st_mode
    except FileNotFoundError:
        return
    if stat.S_ISLNK(mode):
        return
    logger.debug(f"Clearing read-only attribute on {path}")
    os.chmod(external, mode | stat.S_IWRITE)
