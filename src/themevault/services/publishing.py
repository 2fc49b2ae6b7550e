"""
Version publishing.

Sync only records versions. Making a version live, or staging it as the
preview, is a separate and explicit step.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from themevault.db.errors import translate_db_error
from themevault.db.repositories import ThemeRepository, ThemeVersionRepository
from themevault.exceptions import NotFoundError, ThemeVaultError
from themevault.models.db import ThemeVersion
from themevault.scanner import validate_theme_name

logger = logging.getLogger(__name__)


class VersionPublisher:
    """Promotes theme versions to live or preview."""

    def __init__(self, session: Session):
        self.session = session
        self.theme_repo = ThemeRepository(session)
        self.version_repo = ThemeVersionRepository(session)

    def _resolve(self, theme_name: str, version_label: Optional[str]) -> ThemeVersion:
        validate_theme_name(theme_name)
        if self.theme_repo.get_by_name_for_update(theme_name) is None:
            raise NotFoundError(f"Theme not found: {theme_name}", theme_name=theme_name)

        if version_label is None:
            version = self.version_repo.latest_for_theme(theme_name)
            if version is None:
                raise NotFoundError(
                    f"Theme '{theme_name}' has no versions", theme_name=theme_name
                )
            return version

        version = self.version_repo.get_by_label(theme_name, version_label)
        if version is None:
            raise NotFoundError(
                f"Theme '{theme_name}' has no version {version_label}",
                theme_name=theme_name,
            )
        return version

    def publish(self, theme_name: str, version_label: Optional[str] = None) -> ThemeVersion:
        """
        Make a version the live version of its theme.

        Args:
            theme_name: Theme name
            version_label: Version to publish (defaults to the newest)

        Returns:
            The published ThemeVersion

        Raises:
            NotFoundError: Unknown theme or version
        """
        try:
            with self.session.begin_nested():
                version = self._resolve(theme_name, version_label)
                self.version_repo.clear_live(theme_name)
                version.is_live = True
                version.is_preview = False
                version.published_at = datetime.now(timezone.utc)
                self.session.flush()
        except ThemeVaultError:
            raise
        except SQLAlchemyError as e:
            raise translate_db_error(e, theme_name) from e

        logger.info(f"Published theme '{theme_name}' version {version.version_label}")
        return version

    def stage_preview(
        self, theme_name: str, version_label: Optional[str] = None
    ) -> ThemeVersion:
        """
        Mark a version as the preview of its theme.

        Raises:
            NotFoundError: Unknown theme or version
        """
        try:
            with self.session.begin_nested():
                version = self._resolve(theme_name, version_label)
                self.version_repo.clear_preview(theme_name)
                version.is_preview = True
                self.session.flush()
        except ThemeVaultError:
            raise
        except SQLAlchemyError as e:
            raise translate_db_error(e, theme_name) from e

        logger.info(f"Staged theme '{theme_name}' version {version.version_label} as preview")
        return version

    def live_version(self, theme_name: str) -> Optional[ThemeVersion]:
        """Get the live version of a theme, or None if nothing was published."""
        validate_theme_name(theme_name)
        return self.version_repo.get_live(theme_name)
