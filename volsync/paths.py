"""
Extended-length path addressing.

Paths are kept internally in the "\\\\.\\" form, which lifts the conventional
maximum path length and lets volume GUID roots be used like any other root.
OS calls get the "\\\\?\\" form back through to_external_form().
POSIX paths have no length-limited form and pass through untouched.
"""
import os
import re


INTERNAL_PREFIX = "\\\\.\\"
EXTENDED_PREFIX = "\\\\?\\"
UNC_PREFIX = "\\\\"

# \\?\Volume{xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx}\
VOLUME_ROOT_LENGTH = 49

_VOLUME_ROOT_RE = re.compile(r"^\\\\[.?]\\Volume\{[0-9A-Fa-f-]{36}\}\\?")
_PREFIXED_DRIVE_ROOT_RE = re.compile(r"^\\\\[.?]\\[A-Za-z]:\\?")
_UNC_ROOT_RE = re.compile(r"^\\\\(?![.?]\\)[^\\]+\\[^\\]+\\?")
_DRIVE_ROOT_RE = re.compile(r"^[A-Za-z]:\\?")
_POSIX_ROOT_RE = re.compile(r"^/")

_ROOT_PATTERNS = (
    _VOLUME_ROOT_RE,
    _PREFIXED_DRIVE_ROOT_RE,
    _UNC_ROOT_RE,
    _DRIVE_ROOT_RE,
    _POSIX_ROOT_RE,
)

_DRIVE_REFERENCE_RE = re.compile(r"^[A-Za-z]:")


def to_internal_form(path: str) -> str:
    """
    Return path with the "\\\\.\\" prefix.

    Path can be given with "\\\\?\\", with "\\\\.\\" or without any prefix.

    Args:
        path: Absolute path or volume address

    Returns:
        Path in internal addressing form
    """
    if _POSIX_ROOT_RE.match(path):
        return path
    if not path.startswith(UNC_PREFIX):
        path = INTERNAL_PREFIX + path
    if path.startswith(EXTENDED_PREFIX):
        return INTERNAL_PREFIX + path[len(EXTENDED_PREFIX):]
    return path


def to_external_form(path: str) -> str:
    """Return the form accepted by OS calls ("\\\\.\\" becomes "\\\\?\\")."""
    if path.startswith(INTERNAL_PREFIX):
        return EXTENDED_PREFIX + path[len(INTERNAL_PREFIX):]
    return path


def extract_root(path: str) -> str:
    """
    Return the root part of path (volume, drive, UNC share or "/").

    An empty string is returned when path has no recognizable root.
    """
    for pattern in _ROOT_PATTERNS:
        match = pattern.match(path)
        if match:
            return match.group(0)
    return ""


def strip_root(path: str) -> str:
    """Return path without its root; a bare volume root yields ""."""
    return path[len(extract_root(path)):]


def is_volume_reference(reference: str) -> bool:
    """True for drive letters ("D:", "D:\\") and "\\\\" prefixed volume addresses."""
    return bool(_DRIVE_REFERENCE_RE.match(reference)) or reference.startswith(UNC_PREFIX)


def to_relative_path(path: str) -> str:
    """Return path as a "/" separated relative path without empty segments."""
    return "/".join(part for part in re.split(r"[\\/]", path) if part)


def join_relative(root: str, relative_path: str) -> str:
    """Join a root with a "/" separated relative path using host separators."""
    if not relative_path:
        return root
    return os.path.join(root, *relative_path.split("/"))


def ensure_trailing_separator(path: str) -> str:
    if path.endswith(("\\", "/")):
        return path
    return path + ("/" if _POSIX_ROOT_RE.match(path) else "\\")
