"""
Pytest configuration and fixtures for themevault tests.

This module provides shared fixtures for the version store, theme
directories on disk and the service facade.
"""

import json
from pathlib import Path
from typing import Callable, Dict, Generator, Optional

import pytest
from sqlalchemy.orm import Session, sessionmaker

from themevault.db.connection import create_db_engine
from themevault.models.db import Base
from themevault.scanner import ThemeDirectoryScanner

ThemeWriter = Callable[..., Path]


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database engine using SQLite in-memory."""
    engine = create_db_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """
    Create a new database session for a test.

    Each test gets a fresh session with a transaction that is rolled back
    after the test completes, ensuring test isolation.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection)()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def session_factory(tmp_path: Path) -> Generator[sessionmaker, None, None]:
    """
    Session factory bound to a file-backed SQLite database.

    Used where the code under test commits (the service facade) or where
    several threads need to share one database.
    """
    engine = create_db_engine(f"sqlite:///{tmp_path / 'themevault.db'}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def themes_root(tmp_path: Path) -> Path:
    """Empty directory holding test themes."""
    root = tmp_path / "themes"
    root.mkdir()
    return root


@pytest.fixture
def write_theme(themes_root: Path) -> ThemeWriter:
    """
    Write a theme tree below ``themes_root``.

    Usage:
        write_theme("nordic", {"templates/index.json": "{}"}, manifest={...})

    Files given as ``str`` are written as UTF-8, ``bytes`` as-is. Passing
    ``manifest=None`` writes no theme.json.
    """

    def _write(
        name: str,
        files: Dict[str, str | bytes],
        manifest: Optional[dict] = None,
    ) -> Path:
        theme_dir = themes_root / name
        theme_dir.mkdir(parents=True, exist_ok=True)
        if manifest is not None:
            manifest_path = theme_dir / "config" / "theme.json"
            manifest_path.parent.mkdir(parents=True, exist_ok=True)
            manifest_path.write_text(json.dumps(manifest))
        for relative_path, content in files.items():
            path = theme_dir / relative_path
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return theme_dir

    return _write


@pytest.fixture
def scanner(themes_root: Path) -> ThemeDirectoryScanner:
    """Scanner reading from ``themes_root``."""
    return ThemeDirectoryScanner(themes_root)


@pytest.fixture
def nordic(write_theme: ThemeWriter) -> Path:
    """The 'nordic' theme: a small but complete theme tree."""
    return write_theme(
        "nordic",
        {
            "layout/theme.liquid": "<html>{{ content_for_layout }}</html>\n",
            "templates/index.json": '{"sections": {"hero": {"type": "hero"}}}\n',
            "sections/hero.liquid": "<section class=\"hero\">{{ section.settings.title }}</section>\n",
            "snippets/price.liquid": "{{ product.price | money }}\n",
            "assets/theme.css": "body { color: #2e3440; }\n",
            "assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR",
            "locales/en.json": '{"general": {"search": "Search"}}\n',
        },
        manifest={
            "name": "Nordic",
            "version": "1.0.0",
            "author": "Aurora Studio",
            "description": "Cold colors, warm typography",
            "supports": ["sections", "dark_mode"],
        },
    )
