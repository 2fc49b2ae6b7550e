"""Tests for ThemeRepository."""

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from themevault.db.repositories import ThemeRepository
from themevault.models.db import Theme


def _create(repo: ThemeRepository, name: str, **kwargs) -> Theme:
    return repo.create(name=name, slug=name, display_name=name.title(), **kwargs)


class TestThemeRepository:
    """Test ThemeRepository operations."""

    def test_create_defaults_inactive(self, db_session: Session):
        theme = _create(ThemeRepository(db_session), "nordic", config={})

        assert theme.id is not None
        assert theme.active is False

    def test_get_by_name(self, db_session: Session, sample_theme: Theme):
        repo = ThemeRepository(db_session)

        assert repo.get_by_name("nordic").id == sample_theme.id
        assert repo.get_by_name("missing") is None

    def test_get_by_slug(self, db_session: Session, sample_theme: Theme):
        assert ThemeRepository(db_session).get_by_slug("nordic").id == sample_theme.id

    def test_list_all_ordered_by_name(self, db_session: Session):
        repo = ThemeRepository(db_session)
        for name in ("zen", "aurora", "nordic"):
            _create(repo, name, config={})

        assert [t.name for t in repo.list_all()] == ["aurora", "nordic", "zen"]

    def test_lock_all_returns_every_theme_in_name_order(self, db_session: Session):
        repo = ThemeRepository(db_session)
        for name in ("zen", "aurora"):
            _create(repo, name, config={})

        assert [t.name for t in repo.lock_all()] == ["aurora", "zen"]

    def test_mark_active_and_deactivate_all(self, db_session: Session):
        repo = ThemeRepository(db_session)
        _create(repo, "aurora", config={})
        _create(repo, "zen", config={})

        assert repo.mark_active("aurora") == 1
        assert repo.get_active().name == "aurora"

        assert repo.deactivate_all() == 1
        assert repo.mark_active("zen") == 1
        assert [t.name for t in repo.list_active()] == ["zen"]

    def test_second_active_row_is_rejected(self, db_session: Session):
        """The partial unique index allows at most one active theme."""
        repo = ThemeRepository(db_session)
        _create(repo, "aurora", config={}, active=True)

        with pytest.raises(IntegrityError):
            with db_session.begin_nested():
                _create(repo, "zen", config={}, active=True)

        assert [t.name for t in repo.list_active()] == ["aurora"]
