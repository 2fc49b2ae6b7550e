"""
Theme service: the trigger and read interface of themevault.

Every call opens its own session and transaction. Sync passes run one
theme per transaction, so a failure in one theme never rolls back or
blocks another. Failures are returned in the SyncReport/ActivationOutcome
and logged; they are not raised from ``sync_all``/``sync``/``activate``.
"""

import logging
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from themevault.config import settings
from themevault.db.connection import get_session_factory, session_scope
from themevault.db.errors import translate_db_error
from themevault.db.repositories import ThemeRepository, ThemeVersionRepository
from themevault.exceptions import (
    ConflictError,
    NotFoundError,
    StorageError,
    ThemeVaultError,
)
from themevault.models.manifest import ThemeManifest
from themevault.models.schemas import (
    FileRevisionResponse,
    ThemeResponse,
    ThemeVersionResponse,
)
from themevault.scanner import ThemeDirectoryScanner, validate_theme_name
from themevault.services.activation import ActivationManager, ActivationOutcome
from themevault.services.content import ContentReader, SearchHit
from themevault.services.drift import DriftDetector, DriftReport
from themevault.services.file_tree import FileTreeBuilder
from themevault.services.publishing import VersionPublisher
from themevault.services.sync import SyncEngine, SyncReport

logger = logging.getLogger(__name__)


class ThemeService:
    """
    Facade over the sync, activation and read components.

    Args:
        session_factory: Callable returning a new Session (defaults to the
            process-wide factory)
        themes_path: Root directory holding the themes (defaults to settings)
        actor: Identity attributed on versions and activations
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        themes_path: Optional[Path | str] = None,
        actor: Optional[str] = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.scanner = ThemeDirectoryScanner(themes_path)
        self.actor = actor or settings.default_actor

    @contextmanager
    def _read_session(self) -> Generator[Session, None, None]:
        """Session for read-only calls: always rolled back."""
        session = self.session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
        finally:
            session.rollback()
            session.close()

    @contextmanager
    def _write_session(self, theme_name: Optional[str] = None) -> Generator[Session, None, None]:
        """Session for writes: committed on success; commit errors are translated."""
        try:
            with session_scope(self.session_factory) as session:
                yield session
        except SQLAlchemyError as e:
            raise translate_db_error(e, theme_name) from e

    # ===== Trigger interface =====

    def discover(self) -> List[str]:
        """List theme directory names under the themes root."""
        return self.scanner.discover_themes()

    def sync_all(
        self,
        actor: Optional[str] = None,
        change_summary: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[SyncReport]:
        """
        Sync every theme found on disk.

        Each theme gets its own transaction and its own report; a failing
        theme does not stop the others.

        Returns:
            One SyncReport per discovered theme, in name order
        """
        theme_names = self.discover()
        logger.info(f"Syncing {len(theme_names)} themes from {self.scanner.themes_root}")

        reports = [
            self.sync(
                name,
                actor=actor,
                change_summary=change_summary,
                cancel_event=cancel_event,
            )
            for name in theme_names
        ]

        failed = [r.theme_name for r in reports if not r.success]
        if failed:
            logger.warning(f"Sync finished with {len(failed)} failed themes: {', '.join(failed)}")
        else:
            logger.info(f"Sync finished: {len(reports)} themes")
        return reports

    def sync(
        self,
        theme_name: str,
        actor: Optional[str] = None,
        change_summary: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncReport:
        """
        Sync one theme in its own transaction.

        Returns:
            SyncReport; on failure ``status == "error"`` and ``error_kind``
            holds the error code (``not_found``, ``io_error``, ...)
        """
        start_time = time.time()
        try:
            with self._write_session(theme_name) as session:
                engine = SyncEngine(
                    session,
                    scanner=self.scanner,
                    actor=actor or self.actor,
                    change_summary=change_summary,
                )
                return engine.sync_theme(theme_name, cancel_event=cancel_event)
        except ThemeVaultError as e:
            processing_time_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Sync of theme '{theme_name}' failed [{e.code}]: {e.message}")
            return SyncReport.from_error(theme_name, e, processing_time_ms)
        except Exception as e:
            processing_time_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Sync of theme '{theme_name}' failed: {e}", exc_info=True)
            return SyncReport.from_error(
                theme_name,
                ThemeVaultError(f"{e.__class__.__name__}: {e}", theme_name=theme_name),
                processing_time_ms,
            )

    def drift(self, theme_name: str) -> DriftReport:
        """Compare a theme on disk with its tracked state, without writing."""
        with self._read_session() as session:
            return DriftDetector(session, scanner=self.scanner).detect(theme_name)

    def check_for_updates(self, theme_name: str) -> bool:
        """True iff a sync of the theme would record at least one change."""
        return self.drift(theme_name).has_drifted

    def activate(self, theme_name: str, actor: Optional[str] = None) -> ActivationOutcome:
        """
        Make a theme the active one, retrying on lock contention.

        Returns:
            ActivationOutcome with status ``activated``, ``already_active``,
            ``not_found``, ``conflict`` or ``error``
        """
        max_attempts = max(1, settings.activation_max_retries + 1)
        for attempt in range(max_attempts):
            try:
                with self._write_session(theme_name) as session:
                    outcome = ActivationManager(session, actor=actor or self.actor).activate(
                        theme_name
                    )
                outcome.attempts = attempt + 1
                return outcome
            except ConflictError as e:
                if attempt < max_attempts - 1:
                    backoff = settings.activation_retry_backoff * (2**attempt)
                    logger.warning(
                        "Activation conflict for theme %s (attempt %s/%s), retrying in %.2fs",
                        theme_name,
                        attempt + 1,
                        max_attempts,
                        backoff,
                    )
                    time.sleep(backoff)
                    continue
                logger.error(f"Activation of theme '{theme_name}' failed: {e.message}")
                return ActivationOutcome(
                    status="conflict",
                    theme_name=theme_name,
                    attempts=attempt + 1,
                    error_message=e.message,
                )
            except NotFoundError as e:
                logger.warning(f"Activation of unknown theme '{theme_name}'")
                return ActivationOutcome(
                    status="not_found",
                    theme_name=theme_name,
                    attempts=attempt + 1,
                    error_message=e.message,
                )
            except ThemeVaultError as e:
                logger.error(f"Activation of theme '{theme_name}' failed [{e.code}]: {e.message}")
                return ActivationOutcome(
                    status="error",
                    theme_name=theme_name,
                    attempts=attempt + 1,
                    error_message=e.message,
                )

        # Unreachable: the loop always returns
        raise StorageError(f"Activation of theme '{theme_name}' did not complete")

    def active_theme_name(self) -> Optional[str]:
        """Name of the active theme, or None."""
        with self._read_session() as session:
            theme = ActivationManager(session).active_theme()
            return theme.name if theme else None

    def publish(self, theme_name: str, version_label: Optional[str] = None) -> ThemeVersionResponse:
        """Make a version (default: newest) the live version of its theme."""
        with self._write_session(theme_name) as session:
            version = VersionPublisher(session).publish(theme_name, version_label)
            return ThemeVersionResponse.model_validate(version)

    def stage_preview(
        self, theme_name: str, version_label: Optional[str] = None
    ) -> ThemeVersionResponse:
        """Mark a version (default: newest) as the preview of its theme."""
        with self._write_session(theme_name) as session:
            version = VersionPublisher(session).stage_preview(theme_name, version_label)
            return ThemeVersionResponse.model_validate(version)

    # ===== Read interface =====

    def read(self, theme_name: str, file_path: str) -> bytes:
        """Current tracked content of a file."""
        with self._read_session() as session:
            return ContentReader(session).read(theme_name, file_path)

    def read_text(self, theme_name: str, file_path: str) -> str:
        """Current tracked content of a file as UTF-8 text."""
        with self._read_session() as session:
            return ContentReader(session).read_text(theme_name, file_path)

    def read_json(self, theme_name: str, file_path: str) -> Any:
        """Current tracked content of a JSON file, parsed."""
        with self._read_session() as session:
            return ContentReader(session).read_json(theme_name, file_path)

    def read_active(self, file_path: str) -> bytes:
        """Current tracked content of a file in the active theme."""
        with self._read_session() as session:
            return ContentReader(session).read_active(file_path)

    def read_revision(self, theme_name: str, file_path: str, version_number: int) -> bytes:
        """Content of one historical revision of a file."""
        with self._read_session() as session:
            return ContentReader(session).read_revision(
                theme_name, file_path, version_number
            ).content

    def tree(self, theme_name: str) -> List[Dict[str, Any]]:
        """Nested file tree of a theme."""
        with self._read_session() as session:
            return FileTreeBuilder(session).tree(theme_name)

    def history(self, theme_name: str, file_path: str) -> List[FileRevisionResponse]:
        """Revisions of a file, newest first."""
        with self._read_session() as session:
            return [
                FileRevisionResponse.model_validate(version)
                for version in ContentReader(session).history(theme_name, file_path)
            ]

    def search(
        self, theme_name: str, query: str, case_sensitive: bool = True
    ) -> List[SearchHit]:
        """Search the current content of a theme's editable files."""
        with self._read_session() as session:
            return ContentReader(session).search(
                theme_name, query, case_sensitive=case_sensitive
            )

    def list_versions(self, theme_name: str) -> List[ThemeVersionResponse]:
        """Versions of a theme, newest label first."""
        validate_theme_name(theme_name)
        with self._read_session() as session:
            if ThemeRepository(session).get_by_name(theme_name) is None:
                raise NotFoundError(f"Theme not found: {theme_name}", theme_name=theme_name)
            return [
                ThemeVersionResponse.model_validate(version)
                for version in ThemeVersionRepository(session).list_for_theme(theme_name)
            ]

    def get_theme(self, theme_name: str) -> ThemeResponse:
        """Tracked metadata of a theme."""
        validate_theme_name(theme_name)
        with self._read_session() as session:
            theme = ThemeRepository(session).get_by_name(theme_name)
            if theme is None:
                raise NotFoundError(f"Theme not found: {theme_name}", theme_name=theme_name)
            return ThemeResponse.model_validate(theme)

    def list_themes(self) -> List[ThemeResponse]:
        """All tracked themes, by name."""
        with self._read_session() as session:
            return [
                ThemeResponse.model_validate(theme)
                for theme in ThemeRepository(session).list_all()
            ]

    def get_manifest(self, theme_name: str) -> ThemeManifest:
        """The manifest recorded by the last sync, as a typed object."""
        validate_theme_name(theme_name)
        with self._read_session() as session:
            theme = ThemeRepository(session).get_by_name(theme_name)
            if theme is None:
                raise NotFoundError(f"Theme not found: {theme_name}", theme_name=theme_name)
            return ThemeManifest.from_dict(theme.config or {}, theme_name)
