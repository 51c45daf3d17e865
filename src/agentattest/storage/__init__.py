"""
Snapshot persistence for registry state.
"""

from .snapshot import SNAPSHOT_VERSION, load_snapshot, save_snapshot

__all__ = [
    "SNAPSHOT_VERSION",
    "load_snapshot",
    "save_snapshot",
]
