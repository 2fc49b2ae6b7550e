"""Tests for the sync engine."""

import os
import sys
import threading
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

from themevault.db.repositories import (
    ThemeFileRepository,
    ThemeFileVersionRepository,
    ThemeRepository,
    ThemeVersionRepository,
)
from themevault.exceptions import NotFoundError, SyncCancelledError, ValidationError
from themevault.models.db import Theme, ThemeFile, ThemeFileVersion, ThemeVersion
from themevault.scanner import ThemeDirectoryScanner
from themevault.services.drift import DriftDetector
from themevault.services.sync import SyncEngine, SyncReport
from themevault.utils.hashing import calculate_content_hash

NORDIC_FILE_COUNT = 8  # seven theme files plus config/theme.json


class TripAfter(threading.Event):
    """Event that reports itself set after ``calls`` checks."""

    def __init__(self, calls: int):
        super().__init__()
        self.remaining = calls

    def is_set(self) -> bool:
        self.remaining -= 1
        return self.remaining < 0


@pytest.fixture
def engine(db_session: Session, scanner: ThemeDirectoryScanner) -> SyncEngine:
    return SyncEngine(db_session, scanner=scanner, actor="alice")


class TestFirstSync:
    """A theme seen for the first time."""

    def test_creates_theme_and_one_version(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        report = engine.sync_theme("nordic")

        assert report.status == "synced"
        assert report.success
        assert report.version_created
        assert report.version_label == "1.0.0"
        assert report.files_scanned == NORDIC_FILE_COUNT
        assert report.files_created == NORDIC_FILE_COUNT
        assert report.files_changed == 0

        theme = ThemeRepository(db_session).get_by_name("nordic")
        assert theme.display_name == "Nordic"
        assert theme.author == "Aurora Studio"
        assert theme.slug == "nordic"
        assert theme.active is False
        assert theme.last_synced_at is not None
        assert theme.config["supports"] == ["sections", "dark_mode"]
        assert ThemeVersionRepository(db_session).count_for_theme("nordic") == 1

    def test_batch_links_every_file_version(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        engine.sync_theme("nordic")

        batch = ThemeVersionRepository(db_session).get_by_label("nordic", "1.0.0")
        file_versions = ThemeFileVersionRepository(db_session).list_for_batch(batch.id)

        assert len(file_versions) == NORDIC_FILE_COUNT
        assert {v.version_number for v in file_versions} == {1}
        assert batch.is_live is False
        assert batch.is_preview is False
        assert batch.author == "alice"
        assert batch.change_summary == f"Synced {NORDIC_FILE_COUNT} files from disk"

    def test_stores_exact_bytes_and_checksums(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        engine.sync_theme("nordic")

        repo = ThemeFileVersionRepository(db_session)
        logo = repo.get_current("nordic", "assets/logo.png")
        on_disk = (nordic / "assets" / "logo.png").read_bytes()

        assert logo.content == on_disk
        assert logo.file_checksum == calculate_content_hash(on_disk)
        assert logo.file_size == len(on_disk)

    def test_classifies_file_types(self, db_session: Session, engine: SyncEngine, nordic: Path):
        engine.sync_theme("nordic")

        repo = ThemeFileRepository(db_session)
        assert repo.get_by_path("nordic", "sections/hero.liquid").file_type == "section"
        assert repo.get_by_path("nordic", "assets/theme.css").extension == ".css"
        assert repo.get_by_path("nordic", "config/theme.json").file_type == "config"

    def test_theme_without_manifest_gets_defaults(
        self, db_session: Session, engine: SyncEngine, write_theme
    ):
        write_theme("dark_nordic", {"layout/theme.liquid": "<html></html>"})

        report = engine.sync_theme("dark_nordic")

        theme = ThemeRepository(db_session).get_by_name("dark_nordic")
        assert report.version_label == "1.0.0"
        assert theme.display_name == "Dark Nordic"
        assert theme.slug == "dark-nordic"

    def test_empty_theme_creates_no_version(
        self, db_session: Session, engine: SyncEngine, themes_root: Path
    ):
        (themes_root / "empty").mkdir()

        report = engine.sync_theme("empty")

        assert report.status == "unchanged"
        assert report.version_created is False
        assert ThemeRepository(db_session).get_by_name("empty") is not None
        assert ThemeVersionRepository(db_session).count_for_theme("empty") == 0


class TestResync:
    """Passes over a theme that is already tracked."""

    def test_second_pass_is_a_no_op(self, db_session: Session, engine: SyncEngine, nordic: Path):
        engine.sync_theme("nordic")
        file_version_count = db_session.query(ThemeFileVersion).count()

        report = engine.sync_theme("nordic")

        assert report.status == "unchanged"
        assert report.version_created is False
        assert report.version_label is None
        assert report.files_unchanged == NORDIC_FILE_COUNT
        assert db_session.query(ThemeFileVersion).count() == file_version_count
        assert ThemeVersionRepository(db_session).count_for_theme("nordic") == 1

    def test_second_pass_leaves_theme_row_untouched(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        engine.sync_theme("nordic")
        theme = ThemeRepository(db_session).get_by_name("nordic")
        db_session.refresh(theme)
        last_synced_at, updated_at = theme.last_synced_at, theme.updated_at

        engine.sync_theme("nordic")
        db_session.refresh(theme)

        assert theme.last_synced_at == last_synced_at
        assert theme.updated_at == updated_at

    def test_edit_creates_next_revision(
        self, db_session: Session, engine: SyncEngine, scanner: ThemeDirectoryScanner, nordic: Path
    ):
        engine.sync_theme("nordic")
        original = (nordic / "templates" / "index.json").read_bytes()
        edited = b'{"sections": {"hero": {"type": "hero"}, "footer": {"type": "footer"}}}\n'
        (nordic / "templates" / "index.json").write_bytes(edited)

        assert DriftDetector(db_session, scanner=scanner).has_drifted("nordic") is True

        report = engine.sync_theme("nordic")

        assert report.status == "synced"
        assert report.files_changed == 1
        assert report.files_created == 0
        assert report.files_unchanged == NORDIC_FILE_COUNT - 1
        assert report.version_label == "1.0.1"

        theme_file = ThemeFileRepository(db_session).get_by_path("nordic", "templates/index.json")
        assert theme_file.current_version == 2

        file_versions = ThemeFileVersionRepository(db_session)
        first = file_versions.get_by_number(theme_file.id, 1)
        second = file_versions.get_by_number(theme_file.id, 2)
        assert first.content == original
        assert second.content == edited
        assert second.file_checksum == calculate_content_hash(edited)
        assert second.change_summary == "Updated templates/index.json"

        batch = ThemeVersionRepository(db_session).get_by_label("nordic", "1.0.1")
        assert theme_file.last_theme_version_id == batch.id
        assert [v.theme_file_id for v in file_versions.list_for_batch(batch.id)] == [theme_file.id]

        assert engine.sync_theme("nordic").files_changed == 0
        assert DriftDetector(db_session, scanner=scanner).has_drifted("nordic") is False

    def test_unchanged_files_keep_their_revision(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        engine.sync_theme("nordic")
        (nordic / "assets" / "theme.css").write_text("body { color: #88c0d0; }\n")

        engine.sync_theme("nordic")

        repo = ThemeFileRepository(db_session)
        assert repo.get_by_path("nordic", "assets/theme.css").current_version == 2
        assert repo.get_by_path("nordic", "layout/theme.liquid").current_version == 1

    def test_new_file_joins_existing_theme(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        engine.sync_theme("nordic")
        (nordic / "snippets" / "badge.liquid").write_text("<span>{{ badge }}</span>\n")

        report = engine.sync_theme("nordic")

        assert report.files_created == 1
        assert report.version_label == "1.0.1"
        badge = ThemeFileRepository(db_session).get_by_path("nordic", "snippets/badge.liquid")
        assert badge.current_version == 1

    def test_version_numbers_are_contiguous(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        path = nordic / "sections" / "hero.liquid"
        engine.sync_theme("nordic")
        for title in ("one", "two", "three"):
            path.write_text(f"<section>{title}</section>\n")
            engine.sync_theme("nordic")

        theme_file = ThemeFileRepository(db_session).get_by_path("nordic", "sections/hero.liquid")
        history = ThemeFileVersionRepository(db_session).history(theme_file.id)

        assert [v.version_number for v in history] == [4, 3, 2, 1]
        assert theme_file.current_version == 4
        labels = [v.version_label for v in ThemeVersionRepository(db_session).list_for_theme("nordic")]
        assert labels == ["1.0.3", "1.0.2", "1.0.1", "1.0.0"]

    def test_deleted_file_is_reported_and_kept(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        engine.sync_theme("nordic")
        (nordic / "snippets" / "price.liquid").unlink()

        report = engine.sync_theme("nordic")

        assert report.status == "unchanged"
        assert report.files_missing == ["snippets/price.liquid"]
        theme_file = ThemeFileRepository(db_session).get_by_path("nordic", "snippets/price.liquid")
        assert theme_file is not None
        assert theme_file.current_version == 1

    def test_manifest_changes_refresh_theme_metadata(
        self, db_session: Session, engine: SyncEngine, write_theme, nordic: Path
    ):
        engine.sync_theme("nordic")
        write_theme(
            "nordic",
            {},
            manifest={"name": "Nordic Night", "version": "2.0.0", "author": "Aurora Studio"},
        )

        report = engine.sync_theme("nordic")

        theme = ThemeRepository(db_session).get_by_name("nordic")
        assert theme.display_name == "Nordic Night"
        assert theme.version == "2.0.0"
        # config/theme.json changed, so a batch was recorded; labels keep counting
        assert report.files_changed == 1
        assert report.version_label == "1.0.1"


class TestAttribution:
    def test_actor_and_summary_are_recorded(
        self, db_session: Session, scanner: ThemeDirectoryScanner, nordic: Path
    ):
        engine = SyncEngine(
            db_session, scanner=scanner, actor="bob", change_summary="Initial import"
        )

        engine.sync_theme("nordic")

        batch = ThemeVersionRepository(db_session).get_by_label("nordic", "1.0.0")
        assert batch.author == "bob"
        assert batch.change_summary == "Initial import"
        for file_version in ThemeFileVersionRepository(db_session).list_for_batch(batch.id):
            assert file_version.author == "bob"
            assert file_version.change_summary == "Initial import"

    def test_default_per_file_summary(self, db_session: Session, engine: SyncEngine, nordic: Path):
        engine.sync_theme("nordic")

        version = ThemeFileVersionRepository(db_session).get_current("nordic", "locales/en.json")
        assert version.change_summary == "Created locales/en.json"


class TestFailures:
    def test_cancelled_before_start_writes_nothing(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(SyncCancelledError):
            engine.sync_theme("nordic", cancel_event=cancel)

        assert db_session.query(Theme).count() == 0
        assert db_session.query(ThemeFile).count() == 0

    def test_cancelled_mid_scan_writes_nothing(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        with pytest.raises(SyncCancelledError) as exc_info:
            engine.sync_theme("nordic", cancel_event=TripAfter(3))

        assert exc_info.value.code == "cancelled"
        assert db_session.query(ThemeVersion).count() == 0
        assert db_session.query(ThemeFileVersion).count() == 0

    def test_cancel_after_first_sync_keeps_history(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        engine.sync_theme("nordic")
        (nordic / "assets" / "theme.css").write_text("body {}\n")
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(SyncCancelledError):
            engine.sync_theme("nordic", cancel_event=cancel)

        theme_file = ThemeFileRepository(db_session).get_by_path("nordic", "assets/theme.css")
        assert theme_file.current_version == 1
        assert ThemeVersionRepository(db_session).count_for_theme("nordic") == 1

    def test_unknown_theme(self, engine: SyncEngine, themes_root: Path):
        with pytest.raises(NotFoundError):
            engine.sync_theme("missing")

    def test_invalid_theme_name(self, engine: SyncEngine):
        with pytest.raises(ValidationError):
            engine.sync_theme("../etc")

    def test_invalid_manifest_writes_nothing(
        self, db_session: Session, engine: SyncEngine, write_theme
    ):
        write_theme("broken", {"layout/theme.liquid": "x"}, manifest={"version": "one"})

        with pytest.raises(ValidationError):
            engine.sync_theme("broken")

        assert db_session.query(Theme).count() == 0

    @pytest.mark.skipif(sys.platform != "linux", reason="needs arbitrary byte file names")
    def test_non_utf8_file_name_is_a_validation_error(
        self, db_session: Session, engine: SyncEngine, nordic: Path
    ):
        (nordic / "assets" / os.fsdecode(b"caf\xe9.css")).write_text("body {}\n")

        with pytest.raises(ValidationError, match="not valid UTF-8"):
            engine.sync_theme("nordic")

        assert db_session.query(Theme).count() == 0

    @pytest.mark.skipif(sys.platform == "win32", reason="needs symlinks")
    def test_symlink_to_outside_file_is_not_recorded(
        self, db_session: Session, engine: SyncEngine, tmp_path: Path, nordic: Path
    ):
        secret = tmp_path / "secret.txt"
        secret.write_text("TOP SECRET")
        (nordic / "assets.txt").symlink_to(secret)

        report = engine.sync_theme("nordic")

        assert report.files_scanned == NORDIC_FILE_COUNT
        assert ThemeFileRepository(db_session).get_by_path("nordic", "assets.txt") is None


class TestSyncReport:
    def test_to_dict(self):
        report = SyncReport(theme_name="nordic", status="unchanged", files_scanned=3)

        data = report.to_dict()

        assert data["theme_name"] == "nordic"
        assert data["status"] == "unchanged"
        assert data["files_missing"] == []
        assert report.success

    def test_from_error(self):
        report = SyncReport.from_error("nordic", NotFoundError("gone"), 12)

        assert report.status == "error"
        assert report.error_kind == "not_found"
        assert report.error_message == "gone"
        assert report.processing_time_ms == 12
        assert not report.success
