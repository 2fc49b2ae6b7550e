"""
Theme repository.
"""

from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from themevault.db.repositories.base import BaseRepository
from themevault.models.db import Theme


class ThemeRepository(BaseRepository[Theme]):
    """Repository for Theme model."""

    def __init__(self, session: Session):
        super().__init__(Theme, session)

    def get_by_name(self, name: str) -> Optional[Theme]:
        """
        Get theme by its directory name.

        Args:
            name: Theme name

        Returns:
            Theme instance or None
        """
        return self.session.query(Theme).filter(Theme.name == name).first()

    def get_by_slug(self, slug: str) -> Optional[Theme]:
        """Get theme by its URL slug."""
        return self.session.query(Theme).filter(Theme.slug == slug).first()

    def get_by_name_for_update(self, name: str) -> Optional[Theme]:
        """
        Get theme by name and hold a row lock until the transaction ends.

        Args:
            name: Theme name

        Returns:
            Theme instance or None
        """
        return (
            self.session.query(Theme)
            .filter(Theme.name == name)
            .with_for_update()
            .first()
        )

    def list_all(self) -> List[Theme]:
        """Get all themes ordered by name."""
        return self.session.query(Theme).order_by(Theme.name.asc()).all()

    def list_active(self) -> List[Theme]:
        """Get every theme flagged active (at most one by the partial unique index)."""
        return (
            self.session.query(Theme)
            .filter(Theme.active == True)  # noqa: E712
            .all()
        )

    def get_active(self) -> Optional[Theme]:
        """Get the active theme, if any."""
        return (
            self.session.query(Theme)
            .filter(Theme.active == True)  # noqa: E712
            .first()
        )

    def lock_all(self) -> List[Theme]:
        """
        Lock every theme row in name order.

        Taking the locks in a fixed order means two concurrent activations
        queue behind each other instead of deadlocking.
        """
        return (
            self.session.query(Theme)
            .order_by(Theme.name.asc())
            .with_for_update()
            .all()
        )

    def deactivate_all(self) -> int:
        """
        Clear the active flag on every theme.

        Returns:
            Number of rows changed
        """
        result = self.session.execute(
            update(Theme)
            .where(Theme.active == True)  # noqa: E712
            .values(active=False)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def mark_active(self, name: str) -> int:
        """
        Set the active flag on one theme.

        Returns:
            Number of rows changed
        """
        result = self.session.execute(
            update(Theme)
            .where(Theme.name == name)
            .values(active=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
