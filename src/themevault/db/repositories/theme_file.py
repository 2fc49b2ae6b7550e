"""
ThemeFile repository.
"""

import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from themevault.db.repositories.base import BaseRepository
from themevault.models.db import ThemeFile, ThemeFileVersion


@dataclass(frozen=True)
class TrackedFile:
    """Tracked state of one path: what a sync pass compares against."""

    theme_file_id: uuid.UUID
    file_path: str
    current_version: int
    checksum: str


class ThemeFileRepository(BaseRepository[ThemeFile]):
    """Repository for ThemeFile model."""

    def __init__(self, session: Session):
        super().__init__(ThemeFile, session)

    def get_by_path(self, theme_name: str, file_path: str) -> Optional[ThemeFile]:
        """
        Get the tracked file for a path within a theme.

        Args:
            theme_name: Theme name
            file_path: Relative file path

        Returns:
            ThemeFile instance or None
        """
        return (
            self.session.query(ThemeFile)
            .filter(ThemeFile.theme_name == theme_name, ThemeFile.file_path == file_path)
            .first()
        )

    def list_for_theme(self, theme_name: str) -> List[ThemeFile]:
        """
        Get all tracked files of a theme ordered by path.

        Args:
            theme_name: Theme name

        Returns:
            List of theme files
        """
        return (
            self.session.query(ThemeFile)
            .filter(ThemeFile.theme_name == theme_name)
            .order_by(ThemeFile.file_path.asc())
            .all()
        )

    def tracked_state(self, theme_name: str) -> Dict[str, TrackedFile]:
        """
        Load path -> (current version number, checksum) for a theme.

        The checksum comes from the ThemeFileVersion that ``current_version``
        points at, in a single join.

        Args:
            theme_name: Theme name

        Returns:
            Mapping of relative path to tracked state
        """
        rows = (
            self.session.query(
                ThemeFile.id,
                ThemeFile.file_path,
                ThemeFile.current_version,
                ThemeFileVersion.file_checksum,
            )
            .join(
                ThemeFileVersion,
                and_(
                    ThemeFileVersion.theme_file_id == ThemeFile.id,
                    ThemeFileVersion.version_number == ThemeFile.current_version,
                ),
            )
            .filter(ThemeFile.theme_name == theme_name)
            .all()
        )
        return {
            row.file_path: TrackedFile(
                theme_file_id=row.id,
                file_path=row.file_path,
                current_version=row.current_version,
                checksum=row.file_checksum,
            )
            for row in rows
        }

    def count_for_theme(self, theme_name: str) -> int:
        """Count tracked files of a theme."""
        return (
            self.session.query(ThemeFile)
            .filter(ThemeFile.theme_name == theme_name)
            .count()
        )
