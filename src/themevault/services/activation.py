"""
Activation: the only code path that writes ``Theme.active``.

Every theme row is locked in name order before the flags change, so two
concurrent activations serialize instead of interleaving. The deactivate
and activate statements run inside one savepoint; readers see either the
old active theme or the new one.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from themevault.config import settings
from themevault.db.errors import translate_db_error
from themevault.db.repositories import ThemeRepository
from themevault.exceptions import NotFoundError, ThemeVaultError
from themevault.models.db import Theme
from themevault.scanner import validate_theme_name

logger = logging.getLogger(__name__)


@dataclass
class ActivationOutcome:
    """Result of an activation request."""

    status: str  # activated, already_active, not_found, conflict, error
    theme_name: str
    previous_theme: Optional[str] = None
    attempts: int = 1
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status in ("activated", "already_active")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "theme_name": self.theme_name,
            "previous_theme": self.previous_theme,
            "attempts": self.attempts,
            "error_message": self.error_message,
        }


class ActivationManager:
    """Switches the single active theme."""

    def __init__(self, session: Session, actor: Optional[str] = None):
        self.session = session
        self.actor = actor or settings.default_actor
        self.theme_repo = ThemeRepository(session)

    def activate(self, theme_name: str) -> ActivationOutcome:
        """
        Make a theme the active one.

        Args:
            theme_name: Theme to activate

        Returns:
            ActivationOutcome with status ``activated`` or ``already_active``

        Raises:
            ValidationError: Malformed theme name
            NotFoundError: No such theme
            ConflictError: Lost a lock race; safe to retry
            StorageError: The database failed
        """
        validate_theme_name(theme_name)

        try:
            with self.session.begin_nested():
                themes = self.theme_repo.lock_all()
                target = next((t for t in themes if t.name == theme_name), None)
                if target is None:
                    raise NotFoundError(
                        f"Theme not found: {theme_name}", theme_name=theme_name
                    )

                active = [t.name for t in themes if t.active]
                if active == [theme_name]:
                    logger.debug(f"Theme '{theme_name}' is already active")
                    return ActivationOutcome(status="already_active", theme_name=theme_name)

                previous = next((name for name in active if name != theme_name), None)
                self.theme_repo.deactivate_all()
                self.theme_repo.mark_active(theme_name)
        except ThemeVaultError:
            raise
        except SQLAlchemyError as e:
            raise translate_db_error(e, theme_name, integrity_is_conflict=True) from e

        logger.info(
            f"Activated theme '{theme_name}' (previous: {previous or 'none'}, "
            f"actor: {self.actor})"
        )
        return ActivationOutcome(
            status="activated", theme_name=theme_name, previous_theme=previous
        )

    def active_theme(self) -> Optional[Theme]:
        """Get the active theme, or None when no theme was activated yet."""
        return self.theme_repo.get_active()
