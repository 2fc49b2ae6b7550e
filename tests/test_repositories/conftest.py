"""Fixtures for repository tests."""

import pytest
from sqlalchemy.orm import Session

from themevault.db.repositories import (
    ThemeFileRepository,
    ThemeFileVersionRepository,
    ThemeRepository,
    ThemeVersionRepository,
)
from themevault.models.db import Theme, ThemeFile, ThemeVersion
from themevault.utils.hashing import calculate_content_hash


@pytest.fixture
def sample_theme(db_session: Session) -> Theme:
    """Create a sample theme."""
    return ThemeRepository(db_session).create(
        name="nordic",
        slug="nordic",
        display_name="Nordic",
        version="1.0.0",
        config={"name": "Nordic"},
    )


@pytest.fixture
def sample_version(db_session: Session, sample_theme: Theme) -> ThemeVersion:
    """Create the first sync batch of the sample theme."""
    return ThemeVersionRepository(db_session).create(
        theme_name=sample_theme.name,
        version_label="1.0.0",
        author="alice",
    )


@pytest.fixture
def sample_file(
    db_session: Session, sample_theme: Theme, sample_version: ThemeVersion
) -> ThemeFile:
    """Create a tracked file with one revision."""
    theme_file = ThemeFileRepository(db_session).create(
        theme_name=sample_theme.name,
        file_path="templates/index.json",
        file_type="template",
        extension=".json",
        current_version=1,
        last_theme_version_id=sample_version.id,
    )
    content = b'{"sections": {}}'
    ThemeFileVersionRepository(db_session).append(
        theme_file,
        theme_version_id=sample_version.id,
        version_number=1,
        content=content,
        checksum=calculate_content_hash(content),
        author="alice",
    )
    return theme_file
