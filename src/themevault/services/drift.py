"""
Drift detection: would a sync of this theme change anything?

Runs the same comparison as the sync engine without writing. Files are
hashed by streaming them from disk, so large assets are never held in
memory.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from themevault.db.errors import translate_db_error
from themevault.db.repositories import ThemeFileRepository
from themevault.exceptions import ThemeIOError
from themevault.scanner import ThemeDirectoryScanner
from themevault.services.changes import classify_changes
from themevault.utils.hashing import calculate_file_hash

logger = logging.getLogger(__name__)


@dataclass
class DriftReport:
    """Difference between a theme's disk state and its tracked history."""

    theme_name: str
    new_paths: List[str] = field(default_factory=list)
    changed_paths: List[str] = field(default_factory=list)
    missing_paths: List[str] = field(default_factory=list)

    @property
    def has_drifted(self) -> bool:
        """True iff a sync would create at least one file version."""
        return bool(self.new_paths or self.changed_paths)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "theme_name": self.theme_name,
            "has_drifted": self.has_drifted,
            "new_paths": list(self.new_paths),
            "changed_paths": list(self.changed_paths),
            "missing_paths": list(self.missing_paths),
        }


class DriftDetector:
    """Read-only comparison of disk content against tracked checksums."""

    def __init__(self, session: Session, scanner: Optional[ThemeDirectoryScanner] = None):
        self.session = session
        self.scanner = scanner or ThemeDirectoryScanner()
        self.file_repo = ThemeFileRepository(session)

    def detect(self, theme_name: str) -> DriftReport:
        """
        Compare a theme directory with its tracked state.

        Args:
            theme_name: Theme directory name

        Returns:
            DriftReport

        Raises:
            ValidationError: Malformed theme name
            NotFoundError: Theme directory does not exist
            ThemeIOError: A file could not be read
            StorageError: The database failed
        """
        digests: Dict[str, str] = {}
        for relative_path, absolute in self.scanner.iter_paths(theme_name):
            try:
                digests[relative_path] = calculate_file_hash(absolute)
            except (OSError, ValueError) as e:
                raise ThemeIOError(
                    f"Cannot hash {absolute}: {e}",
                    theme_name=theme_name,
                    file_path=relative_path,
                ) from e

        try:
            with self.session.no_autoflush:
                tracked = self.file_repo.tracked_state(theme_name)
        except SQLAlchemyError as e:
            raise translate_db_error(e, theme_name) from e

        changes = classify_changes(digests, tracked)
        report = DriftReport(
            theme_name=theme_name,
            new_paths=changes.new,
            changed_paths=changes.changed,
            missing_paths=changes.missing,
        )
        logger.debug(
            f"Drift check for '{theme_name}': {len(report.new_paths)} new, "
            f"{len(report.changed_paths)} changed, {len(report.missing_paths)} missing"
        )
        return report

    def has_drifted(self, theme_name: str) -> bool:
        """True iff any file on disk is new or differs from its current version."""
        return self.detect(theme_name).has_drifted
