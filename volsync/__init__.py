"""
volsync - one-way mirror synchronization between volumes addressed by identity.
"""
from .models import ComparisonPolicy, Entry, SyncPlan, SyncReport
from .sync import list_volumes, run_sync

__version__ = "0.1.0"

__all__ = [
    "ComparisonPolicy",
    "Entry",
    "SyncPlan",
    "SyncReport",
    "list_volumes",
    "run_sync",
]
