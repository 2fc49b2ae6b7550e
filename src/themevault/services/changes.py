"""
Change classification shared by sync and drift detection.

Both compare the digests of the files on disk with the checksum of each
tracked file's current version; only the sync engine acts on the result.
"""

from dataclasses import dataclass, field
from typing import List, Mapping

from themevault.db.repositories.theme_file import TrackedFile


@dataclass
class ChangeSet:
    """Paths grouped by how they compare with tracked history, each list sorted."""

    new: List[str] = field(default_factory=list)  # Not tracked yet
    changed: List[str] = field(default_factory=list)  # Digest differs from the current version
    unchanged: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)  # Tracked, no longer on disk

    @property
    def has_changes(self) -> bool:
        """True when a sync would write at least one file version."""
        return bool(self.new or self.changed)


def classify_changes(
    disk_digests: Mapping[str, str],
    tracked: Mapping[str, TrackedFile],
) -> ChangeSet:
    """
    Compare on-disk digests against tracked state.

    Args:
        disk_digests: Relative path -> SHA-256 of the file on disk
        tracked: Relative path -> tracked state

    Returns:
        ChangeSet
    """
    changes = ChangeSet()
    for path in sorted(disk_digests):
        state = tracked.get(path)
        if state is None:
            changes.new.append(path)
        elif state.checksum != disk_digests[path]:
            changes.changed.append(path)
        else:
            changes.unchanged.append(path)

    changes.missing = sorted(path for path in tracked if path not in disk_digests)
    return changes
