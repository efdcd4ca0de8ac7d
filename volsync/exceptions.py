"""
Exceptions for sync operations.
"""


class SyncError(Exception):
    """Base exception for sync operations."""

    pass


class VolumeNotFoundError(SyncError):
    """No live mount matches the requested volume; the run cannot start."""

    def __init__(self, reference: str, message: str = ""):
        self.reference = reference
        super().__init__(message or f"Could not find drive '{reference}'")


class EnumerationError(SyncError):
    """A directory listing failed; the snapshot cannot be trusted."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{message} - {path}")


class FileOperationError(SyncError):
    """Base for per-file errors that are recorded and skipped."""

    def __init__(self, message: str, path: str):
        self.message = message
        self.path = path
        super().__init__(f"{message} - {path}")


class FileProbeError(FileOperationError):
    """Reading a file for comparison failed."""

    pass


class CopyError(FileOperationError):
    """Copying a file to the destination failed."""

    pass


class DeleteError(FileOperationError):
    """Deleting a file or directory on the destination failed."""

    pass
