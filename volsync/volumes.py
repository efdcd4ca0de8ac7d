"""
Volume discovery and resolution.

Translates mount references (drive letters) into persistent volume addresses
so a run keeps working when a drive is remounted under another letter.
The live mount table is queried through a VolumeDirectory so it can be faked.
"""
import ctypes
import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from .exceptions import VolumeNotFoundError
from .paths import ensure_trailing_separator, to_internal_form


logger = logging.getLogger(__name__)

Mount = Tuple[str, Optional[str]]

MAX_VOLUME_NAME = 50
MAX_PATH_NAMES = 1024

_OCTAL_ESCAPE_RE = re.compile(r"\\([0-7]{3})")


class VolumeDirectory(Protocol):
    """Source of (persistent volume address, current mount label or None) pairs."""

    def current_mounts(self) -> List[Mount]:
        ...


class WindowsVolumeDirectory:
    """Volume table read through kernel32 volume management functions."""

    def __init__(self):
        from ctypes import wintypes

        self._wintypes = wintypes
        self.kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)

        self.kernel32.FindFirstVolumeW.argtypes = [wintypes.LPWSTR, wintypes.DWORD]
        self.kernel32.FindFirstVolumeW.restype = wintypes.HANDLE

        self.kernel32.FindNextVolumeW.argtypes = [wintypes.HANDLE, wintypes.LPWSTR, wintypes.DWORD]
        self.kernel32.FindNextVolumeW.restype = wintypes.BOOL

        self.kernel32.FindVolumeClose.argtypes = [wintypes.HANDLE]
        self.kernel32.FindVolumeClose.restype = wintypes.BOOL

        self.kernel32.GetVolumePathNamesForVolumeNameW.argtypes = [
            wintypes.LPCWSTR,
            wintypes.LPWSTR,
            wintypes.DWORD,
            ctypes.POINTER(wintypes.DWORD),
        ]
        self.kernel32.GetVolumePathNamesForVolumeNameW.restype = wintypes.BOOL

    def current_mounts(self) -> List[Mount]:
        """
        List every volume with its drive letter.

        Returns:
            List of (volume GUID path, "X:" or None)
        """
        buffer = ctypes.create_unicode_buffer(MAX_VOLUME_NAME)
        handle = self.kernel32.FindFirstVolumeW(buffer, MAX_VOLUME_NAME)
        if handle == self._wintypes.HANDLE(-1).value:
            raise ctypes.WinError(ctypes.get_last_error())

        mounts = []
        try:
            while True:
                volume = buffer.value
                mounts.append((volume, self._drive_letter(volume)))
                if not self.kernel32.FindNextVolumeW(handle, buffer, MAX_VOLUME_NAME):
                    break
        finally:
            self.kernel32.FindVolumeClose(handle)

        return mounts

    def _drive_letter(self, volume: str) -> Optional[str]:
        names = ctypes.create_unicode_buffer(MAX_PATH_NAMES)
        returned = self._wintypes.DWORD()
        ok = self.kernel32.GetVolumePathNamesForVolumeNameW(
            volume, names, MAX_PATH_NAMES, ctypes.byref(returned)
        )
        if not ok:
            logger.warning(f"Could not read mount points of {volume}: {ctypes.WinError(ctypes.get_last_error())}")
            return None

        # Multi-string: entries separated by NUL, terminated by an empty entry
        for name in names[:returned.value].split("\0"):
            if len(name) >= 2 and name[1] == ":":
                return name[:2]
        return None


class MountTableVolumeDirectory:
    """
    Volume table for POSIX hosts.

    Persistent addresses are the /dev/disk/by-uuid links; labels are the
    mount points found in the kernel mount table.
    """

    def __init__(self, mounts_file: str = "/proc/self/mounts", by_uuid_dir: str = "/dev/disk/by-uuid"):
        self.mounts_file = Path(mounts_file)
        self.by_uuid_dir = Path(by_uuid_dir)

    def current_mounts(self) -> List[Mount]:
        mount_points = self._read_mount_table()
        if not self.by_uuid_dir.is_dir():
            return []

        mounts = []
        for link in sorted(self.by_uuid_dir.iterdir()):
            device = os.path.realpath(link)
            mounts.append((str(link), mount_points.get(device)))
        return mounts

    def _read_mount_table(self):
        mount_points = {}
        if not self.mounts_file.exists():
            return mount_points

        for line in self.mounts_file.read_text().splitlines():
            fields = line.split()
            if len(fields) < 2 or not fields[0].startswith("/"):
                continue
            device = os.path.realpath(_unescape_mount_field(fields[0]))
            # first mount of a device wins
            mount_points.setdefault(device, _unescape_mount_field(fields[1]))
        return mount_points


def _unescape_mount_field(value: str) -> str:
    """Decode the octal escapes (\\040 for space, ...) used by the mount table."""
    return _OCTAL_ESCAPE_RE.sub(lambda match: chr(int(match.group(1), 8)), value)


def default_volume_directory() -> VolumeDirectory:
    if os.name == "nt":
        return WindowsVolumeDirectory()
    return MountTableVolumeDirectory()


class VolumeAddressResolver:
    """Resolves mount references to persistent volume addresses."""

    def __init__(self, directory: Optional[VolumeDirectory] = None):
        self.directory = directory if directory is not None else default_volume_directory()

    def resolve(self, mount_reference: str) -> str:
        """
        Return the persistent address of the volume behind mount_reference.

        Args:
            mount_reference: Drive letter ("D:", "D:\\") or an already resolved
                "\\\\?\\" / "\\\\.\\" volume address

        Returns:
            Volume address in internal form with a trailing separator

        Raises:
            VolumeNotFoundError: No live mount matches the reference
        """
        if mount_reference.startswith("\\\\"):
            return ensure_trailing_separator(to_internal_form(mount_reference))

        label = mount_reference[:2].upper()
        for address, mount_label in self.directory.current_mounts():
            if mount_label and mount_label[:2].upper() == label:
                logger.debug(f"Resolved {mount_reference} to {address}")
                return ensure_trailing_separator(to_internal_form(address))

        raise VolumeNotFoundError(mount_reference)

    def list_volumes(self) -> List[Mount]:
        return sorted(self.directory.current_mounts(), key=lambda mount: mount[0])
