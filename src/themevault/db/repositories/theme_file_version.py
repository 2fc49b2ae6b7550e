"""
ThemeFileVersion repository.

File versions are append-only: this repository can add and read rows but
exposes nothing that modifies or removes them.
"""

import uuid
from typing import List, Optional, Tuple

from sqlalchemy import and_
from sqlalchemy.orm import Session

from themevault.db.repositories.base import BaseRepository
from themevault.models.db import ThemeFile, ThemeFileVersion


class ThemeFileVersionRepository(BaseRepository[ThemeFileVersion]):
    """Repository for ThemeFileVersion model."""

    def __init__(self, session: Session):
        super().__init__(ThemeFileVersion, session)

    def get_current(self, theme_name: str, file_path: str) -> Optional[ThemeFileVersion]:
        """
        Get the version a file's ``current_version`` pointer resolves to.

        Args:
            theme_name: Theme name
            file_path: Relative file path

        Returns:
            ThemeFileVersion instance or None
        """
        return (
            self.session.query(ThemeFileVersion)
            .join(
                ThemeFile,
                and_(
                    ThemeFileVersion.theme_file_id == ThemeFile.id,
                    ThemeFileVersion.version_number == ThemeFile.current_version,
                ),
            )
            .filter(ThemeFile.theme_name == theme_name, ThemeFile.file_path == file_path)
            .first()
        )

    def get_by_number(
        self, theme_file_id: uuid.UUID, version_number: int
    ) -> Optional[ThemeFileVersion]:
        """
        Get one revision of a file.

        Args:
            theme_file_id: ThemeFile UUID
            version_number: Revision number (1-based)

        Returns:
            ThemeFileVersion instance or None
        """
        return (
            self.session.query(ThemeFileVersion)
            .filter(
                ThemeFileVersion.theme_file_id == theme_file_id,
                ThemeFileVersion.version_number == version_number,
            )
            .first()
        )

    def history(self, theme_file_id: uuid.UUID) -> List[ThemeFileVersion]:
        """Get every revision of a file, newest first."""
        return (
            self.session.query(ThemeFileVersion)
            .filter(ThemeFileVersion.theme_file_id == theme_file_id)
            .order_by(ThemeFileVersion.version_number.desc())
            .all()
        )

    def list_for_batch(self, theme_version_id: uuid.UUID) -> List[ThemeFileVersion]:
        """Get the file revisions created by one sync batch."""
        return (
            self.session.query(ThemeFileVersion)
            .filter(ThemeFileVersion.theme_version_id == theme_version_id)
            .all()
        )

    def current_for_theme(
        self, theme_name: str
    ) -> List[Tuple[ThemeFile, ThemeFileVersion]]:
        """
        Get every tracked file of a theme with its current revision.

        Args:
            theme_name: Theme name

        Returns:
            List of (ThemeFile, ThemeFileVersion) ordered by path
        """
        return (
            self.session.query(ThemeFile, ThemeFileVersion)
            .join(
                ThemeFileVersion,
                and_(
                    ThemeFileVersion.theme_file_id == ThemeFile.id,
                    ThemeFileVersion.version_number == ThemeFile.current_version,
                ),
            )
            .filter(ThemeFile.theme_name == theme_name)
            .order_by(ThemeFile.file_path.asc())
            .all()
        )

    def append(
        self,
        theme_file: ThemeFile,
        theme_version_id: uuid.UUID,
        version_number: int,
        content: bytes,
        checksum: str,
        author: Optional[str] = None,
        change_summary: Optional[str] = None,
    ) -> ThemeFileVersion:
        """
        Append a new revision of a file.

        Args:
            theme_file: Owning tracked file
            theme_version_id: Sync batch the revision belongs to
            version_number: Revision number (previous + 1)
            content: File bytes
            checksum: SHA-256 of content
            author: Actor attributed with the change
            change_summary: Free-text summary

        Returns:
            Created ThemeFileVersion
        """
        return self.create(
            theme_file_id=theme_file.id,
            theme_version_id=theme_version_id,
            version_number=version_number,
            content=content,
            file_size=len(content),
            file_checksum=checksum,
            author=author,
            change_summary=change_summary,
        )
