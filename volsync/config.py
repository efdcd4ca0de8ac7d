"""
Configuration settings for volsync.
"""
import os
from pathlib import Path

# Logging
LOG_DIR = Path(os.environ.get("VOLSYNC_LOG_DIR", Path.home() / ".volsync" / "logs"))
LOG_FILE_TEMPLATE = "volsync_{date}.log"

# Retry settings
MAX_RETRIES = 1
DIR_DELETE_RETRY_DELAY = 0.05  # seconds

# Threading settings
MAX_THREADS = 4  # For parallel checksum operations

# Checksum settings
CHECKSUM_ALGORITHM = "sha256"
SUPPORTED_CHECKSUM_ALGORITHMS = ("md5", "sha1", "sha256")
HASH_BUFFER_SIZE = 204800

# Volume-level folders that are never synchronized
RESERVED_ROOT_NAMES = ("$RECYCLE.BIN", "System Volume Information")

# Suffix of in-flight copies, renamed over the target once complete
PARTIAL_SUFFIX = ".volsync-partial"
