"""
Sync engine: reconciles a theme directory into the version store.

One pass per theme. The directory is read completely before anything is
written, then every write of the pass happens inside one savepoint:

* paths that are not tracked yet get a ThemeFile and version 1;
* paths whose digest differs from the current version get version N+1;
* unchanged paths are not written at all;
* tracked paths that disappeared from disk are reported, never modified.

A pass that finds at least one new or changed file creates exactly one
ThemeVersion and attaches every file version it wrote to it. A pass that
finds nothing creates nothing.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from themevault.config import settings
from themevault.db.errors import translate_db_error
from themevault.db.repositories import (
    TrackedFile,
    ThemeFileRepository,
    ThemeFileVersionRepository,
    ThemeRepository,
    ThemeVersionRepository,
)
from themevault.exceptions import SyncCancelledError, ThemeVaultError
from themevault.models.db import Theme, ThemeVersion
from themevault.models.manifest import slugify
from themevault.scanner import ScannedFile, ThemeDirectoryScanner, ThemeSource
from themevault.services.changes import ChangeSet, classify_changes
from themevault.utils.hashing import calculate_content_hash

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


@dataclass
class SyncReport:
    """Result of one theme's sync pass."""

    theme_name: str
    status: str  # synced, unchanged, error
    files_scanned: int = 0
    files_created: int = 0
    files_changed: int = 0
    files_unchanged: int = 0
    files_missing: List[str] = field(default_factory=list)
    version_created: bool = False
    version_label: Optional[str] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    processing_time_ms: int = 0

    @property
    def success(self) -> bool:
        return self.status in ("synced", "unchanged")

    @classmethod
    def from_error(
        cls, theme_name: str, error: ThemeVaultError, processing_time_ms: int = 0
    ) -> "SyncReport":
        """Build the report for a pass that failed."""
        return cls(
            theme_name=theme_name,
            status="error",
            error_kind=error.code,
            error_message=error.message,
            processing_time_ms=processing_time_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for serialization."""
        return {
            "theme_name": self.theme_name,
            "status": self.status,
            "files_scanned": self.files_scanned,
            "files_created": self.files_created,
            "files_changed": self.files_changed,
            "files_unchanged": self.files_unchanged,
            "files_missing": list(self.files_missing),
            "version_created": self.version_created,
            "version_label": self.version_label,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
            "processing_time_ms": self.processing_time_ms,
        }


class SyncEngine:
    """
    Reconciles one theme at a time into the version store.

    The engine works inside the caller's session and never commits; the
    caller owns the outer transaction (see ``ThemeService``).
    """

    def __init__(
        self,
        session: Session,
        scanner: Optional[ThemeDirectoryScanner] = None,
        actor: Optional[str] = None,
        change_summary: Optional[str] = None,
    ):
        self.session = session
        self.scanner = scanner or ThemeDirectoryScanner()
        self.actor = actor or settings.default_actor
        self.change_summary = change_summary
        self.theme_repo = ThemeRepository(session)
        self.version_repo = ThemeVersionRepository(session)
        self.file_repo = ThemeFileRepository(session)
        self.file_version_repo = ThemeFileVersionRepository(session)

    def sync_theme(
        self,
        theme_name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncReport:
        """
        Run one sync pass for a theme.

        Args:
            theme_name: Theme directory name
            cancel_event: Optional event; when set before the writes start the
                pass aborts and the database is left as it was

        Returns:
            SyncReport with status ``synced`` or ``unchanged``

        Raises:
            ValidationError: Malformed theme name or manifest
            NotFoundError: Theme directory does not exist
            ThemeIOError: A file could not be read
            SyncCancelledError: ``cancel_event`` was set
            StorageError: The database failed
            ConflictError: The pass lost a lock race
        """
        start_time = time.time()

        source = self.scanner.scan(theme_name, cancel_event=cancel_event)
        digests = {f.relative_path: calculate_content_hash(f.content) for f in source.files}

        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelledError(
                f"Sync of theme '{theme_name}' cancelled", theme_name=theme_name
            )

        try:
            with self.session.begin_nested():
                theme = self._lock_theme(source)
                tracked = self.file_repo.tracked_state(theme_name)
                changes = classify_changes(digests, tracked)

                batch = None
                if changes.has_changes:
                    batch = self._write_batch(source, digests, tracked, changes)

                # An unchanged pass leaves the theme row as it was
                if batch is not None or theme.last_synced_at is None:
                    theme.last_synced_at = _utc_now()
                self.session.flush()
        except ThemeVaultError:
            raise
        except SQLAlchemyError as e:
            raise translate_db_error(e, theme_name) from e

        report = SyncReport(
            theme_name=theme_name,
            status="synced" if batch is not None else "unchanged",
            files_scanned=len(source.files),
            files_created=len(changes.new),
            files_changed=len(changes.changed),
            files_unchanged=len(changes.unchanged),
            files_missing=changes.missing,
            version_created=batch is not None,
            version_label=batch.version_label if batch is not None else None,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )

        if changes.missing:
            logger.warning(
                f"Theme '{theme_name}': {len(changes.missing)} tracked files "
                f"missing on disk (kept): {', '.join(changes.missing[:5])}"
            )
        logger.info(
            f"Synced theme '{theme_name}': {report.files_scanned} scanned, "
            f"{report.files_created} new, {report.files_changed} changed, "
            f"{report.files_unchanged} unchanged"
            + (f", version {report.version_label}" if batch is not None else "")
        )
        return report

    def _lock_theme(self, source: ThemeSource) -> Theme:
        """Get or create the theme row, lock it and refresh its metadata."""
        manifest = source.manifest
        theme = self.theme_repo.get_by_name(source.name)
        if theme is None:
            theme = self.theme_repo.create(
                name=source.name,
                slug=self._unique_slug(source.name),
                display_name=manifest.name or source.name,
                author=manifest.author,
                description=manifest.description,
                version=manifest.version,
                config=manifest.to_config(),
                active=False,
                source_path=str(source.path),
            )
            logger.info(f"Registered new theme '{source.name}'")

        theme = self.theme_repo.get_by_name_for_update(source.name)

        updates = {
            "display_name": manifest.name or source.name,
            "author": manifest.author,
            "description": manifest.description,
            "version": manifest.version,
            "config": manifest.to_config(),
            "source_path": str(source.path),
        }
        for key, value in updates.items():
            if getattr(theme, key) != value:
                setattr(theme, key, value)
        return theme

    def _unique_slug(self, theme_name: str) -> str:
        base = slugify(theme_name)
        slug = base
        suffix = 2
        while self.theme_repo.get_by_slug(slug) is not None:
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    def _write_batch(
        self,
        source: ThemeSource,
        digests: Dict[str, str],
        tracked: Dict[str, TrackedFile],
        changes: ChangeSet,
    ) -> ThemeVersion:
        """Create the batch's ThemeVersion and one file version per change."""
        theme_name = source.name
        scanned: Dict[str, ScannedFile] = {f.relative_path: f for f in source.files}
        total = len(changes.new) + len(changes.changed)

        batch = self.version_repo.create(
            theme_name=theme_name,
            version_label=self.version_repo.next_label(theme_name, source.manifest.version),
            is_live=False,
            is_preview=False,
            author=self.actor,
            change_summary=self.change_summary
            or f"Synced {total} file{'s' if total != 1 else ''} from disk",
        )

        for path in changes.new:
            scanned_file = scanned[path]
            theme_file = self.file_repo.create(
                theme_name=theme_name,
                file_path=path,
                file_type=scanned_file.file_type,
                extension=scanned_file.extension,
                current_version=1,
                last_theme_version_id=batch.id,
            )
            self.file_version_repo.append(
                theme_file,
                theme_version_id=batch.id,
                version_number=1,
                content=scanned_file.content,
                checksum=digests[path],
                author=self.actor,
                change_summary=self.change_summary or f"Created {path}",
            )

        for path in changes.changed:
            scanned_file = scanned[path]
            state = tracked[path]
            theme_file = self.file_repo.get(state.theme_file_id)
            version_number = state.current_version + 1
            self.file_version_repo.append(
                theme_file,
                theme_version_id=batch.id,
                version_number=version_number,
                content=scanned_file.content,
                checksum=digests[path],
                author=self.actor,
                change_summary=self.change_summary or f"Updated {path}",
            )
            theme_file.current_version = version_number
            theme_file.last_theme_version_id = batch.id
            theme_file.file_type = scanned_file.file_type
            theme_file.extension = scanned_file.extension

        self.session.flush()
        logger.debug(
            f"Theme '{theme_name}' batch {batch.version_label}: "
            f"{len(changes.new)} new, {len(changes.changed)} changed"
        )
        return batch
