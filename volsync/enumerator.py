"""
Directory enumeration that works on volume GUID roots and paths of any length.
"""
import fnmatch
import logging
import os
from enum import Enum
from typing import Iterable, Iterator, List, Tuple

from .config import RESERVED_ROOT_NAMES
from .exceptions import EnumerationError
from .models import Entry
from .paths import join_relative, to_external_form


logger = logging.getLogger(__name__)


class SearchMode(Enum):
    IMMEDIATE_CHILDREN = "immediate"
    ALL_DESCENDANTS = "all"


class EntryEnumerator:
    """
    Lazily yields the entries below a root directory.

    Recursive walks keep an explicit stack of pending subdirectory lists
    instead of recursing, so tree depth is only bounded by memory. A
    directory is listed completely, then each subdirectory found in that
    listing is walked before the parent's remaining siblings.

    An enumerator can be iterated once; create a new one for another pass.
    """

    def __init__(
        self,
        root: str,
        pattern: str = "*",
        mode: SearchMode = SearchMode.IMMEDIATE_CHILDREN,
        relative_base: str = "",
    ):
        """
        Args:
            root: Directory to enumerate, in internal addressing form
            pattern: Glob applied to entry names (subdirectories are walked
                even when their own name does not match)
            mode: Immediate children only or all descendants
            relative_base: Relative path of root itself, prefixed to every
                yielded relative_path
        """
        self.root = root
        self.pattern = pattern
        self.mode = mode
        self.relative_base = relative_base.strip("/")
        self._consumed = False

    def __iter__(self) -> Iterator[Entry]:
        if self._consumed:
            raise RuntimeError("EntryEnumerator can only be iterated once")
        self._consumed = True
        return self._walk()

    def _walk(self) -> Iterator[Entry]:
        recursive = self.mode is SearchMode.ALL_DESCENDANTS
        pending: List[List[Tuple[str, str]]] = [[(self.root, self.relative_base)]]

        while pending:
            siblings = pending[-1]
            if not siblings:
                pending.pop()
                continue

            directory, relative_dir = siblings.pop()
            subdirectories = []
            for entry in self._list_directory(directory, relative_dir):
                if recursive and entry.is_directory:
                    subdirectories.append((entry.full_path, entry.relative_path))
                if self._matches(entry.name):
                    yield entry

            if subdirectories:
                # popped from the end, so reverse to keep listing order
                subdirectories.reverse()
                pending.append(subdirectories)

    def _list_directory(self, directory: str, relative_dir: str) -> Iterator[Entry]:
        try:
            with os.scandir(to_external_form(directory)) as listing:
                for dir_entry in listing:
                    if dir_entry.name in (".", ".."):
                        continue
                    relative_path = f"{relative_dir}/{dir_entry.name}" if relative_dir else dir_entry.name
                    full_path = os.path.join(directory, dir_entry.name)
                    yield Entry.from_dir_entry(dir_entry, full_path, relative_path)
        except OSError as e:
            raise EnumerationError(directory, e.strerror or str(e)) from e

    def _matches(self, name: str) -> bool:
        return self.pattern == "*" or fnmatch.fnmatch(name, self.pattern)


def is_reserved_name(name: str, reserved_names: Iterable[str] = RESERVED_ROOT_NAMES) -> bool:
    lowered = name.lower()
    return any(lowered == reserved.lower() for reserved in reserved_names)


def scan_volume(root: str, reserved_names: Iterable[str] = RESERVED_ROOT_NAMES) -> List[Entry]:
    """
    Take a full snapshot of a volume or directory tree.

    Top-level entries are listed first with the volume's recycle bin and
    system folders skipped, then every remaining top-level directory is
    walked recursively.

    Args:
        root: Root directory in internal addressing form
        reserved_names: Root-level names that are never synchronized

    Returns:
        List of every entry below root

    Raises:
        EnumerationError: Any directory could not be listed
    """
    reserved_names = tuple(reserved_names)
    entries = [
        entry for entry in EntryEnumerator(root)
        if not is_reserved_name(entry.name, reserved_names)
    ]

    top_level_dirs = [entry for entry in entries if entry.is_directory]
    for directory in top_level_dirs:
        entries.extend(
            EntryEnumerator(
                join_relative(root, directory.relative_path),
                mode=SearchMode.ALL_DESCENDANTS,
                relative_base=directory.relative_path,
            )
        )

    logger.debug(f"Scanned {len(entries)} entries below {root}")
    return entries
