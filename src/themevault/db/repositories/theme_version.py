"""
ThemeVersion repository.
"""

from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from themevault.db.repositories.base import BaseRepository
from themevault.models.db import ThemeVersion
from themevault.models.manifest import SEMVER_PATTERN, bump_patch


def _label_sort_key(version: ThemeVersion) -> tuple:
    match = SEMVER_PATTERN.match(version.version_label)
    if match:
        return (1, tuple(int(part) for part in match.groups()), version.version_label)
    return (0, (), version.version_label)


class ThemeVersionRepository(BaseRepository[ThemeVersion]):
    """Repository for ThemeVersion model."""

    def __init__(self, session: Session):
        super().__init__(ThemeVersion, session)

    def list_for_theme(self, theme_name: str) -> List[ThemeVersion]:
        """
        Get all versions of a theme, newest label first.

        Args:
            theme_name: Theme name

        Returns:
            List of theme versions
        """
        versions = (
            self.session.query(ThemeVersion)
            .filter(ThemeVersion.theme_name == theme_name)
            .all()
        )
        return sorted(versions, key=_label_sort_key, reverse=True)

    def latest_for_theme(self, theme_name: str) -> Optional[ThemeVersion]:
        """Get the version with the highest label, or None."""
        versions = self.list_for_theme(theme_name)
        return versions[0] if versions else None

    def get_by_label(self, theme_name: str, version_label: str) -> Optional[ThemeVersion]:
        """
        Get a version by its label.

        Args:
            theme_name: Theme name
            version_label: Version label (e.g., '1.0.3')

        Returns:
            ThemeVersion instance or None
        """
        return (
            self.session.query(ThemeVersion)
            .filter(
                ThemeVersion.theme_name == theme_name,
                ThemeVersion.version_label == version_label,
            )
            .first()
        )

    def get_live(self, theme_name: str) -> Optional[ThemeVersion]:
        """Get the live version of a theme, if one was published."""
        return (
            self.session.query(ThemeVersion)
            .filter(
                ThemeVersion.theme_name == theme_name,
                ThemeVersion.is_live == True,  # noqa: E712
            )
            .first()
        )

    def get_preview(self, theme_name: str) -> Optional[ThemeVersion]:
        """Get the preview version of a theme, if one was staged."""
        return (
            self.session.query(ThemeVersion)
            .filter(
                ThemeVersion.theme_name == theme_name,
                ThemeVersion.is_preview == True,  # noqa: E712
            )
            .first()
        )

    def next_label(self, theme_name: str, initial_label: str) -> str:
        """
        Compute the label for the next sync batch of a theme.

        The first batch takes the version declared by the theme; every later
        batch bumps the patch number of the highest existing label.

        Args:
            theme_name: Theme name
            initial_label: Label to use when the theme has no versions yet

        Returns:
            Version label
        """
        latest = self.latest_for_theme(theme_name)
        if latest is None:
            return initial_label
        return bump_patch(latest.version_label)

    def clear_live(self, theme_name: str) -> int:
        """Unset ``is_live`` on every version of a theme."""
        result = self.session.execute(
            update(ThemeVersion)
            .where(
                ThemeVersion.theme_name == theme_name,
                ThemeVersion.is_live == True,  # noqa: E712
            )
            .values(is_live=False)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def clear_preview(self, theme_name: str) -> int:
        """Unset ``is_preview`` on every version of a theme."""
        result = self.session.execute(
            update(ThemeVersion)
            .where(
                ThemeVersion.theme_name == theme_name,
                ThemeVersion.is_preview == True,  # noqa: E712
            )
            .values(is_preview=False)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def count_for_theme(self, theme_name: str) -> int:
        """Count versions of a theme."""
        return (
            self.session.query(ThemeVersion)
            .filter(ThemeVersion.theme_name == theme_name)
            .count()
        )
