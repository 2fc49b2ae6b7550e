"""
Repository layer for database operations.

Provides a clean API for the version store: themes, sync batches, tracked
files and their append-only history.
"""

from themevault.db.repositories.base import BaseRepository
from themevault.db.repositories.theme import ThemeRepository
from themevault.db.repositories.theme_file import ThemeFileRepository, TrackedFile
from themevault.db.repositories.theme_file_version import ThemeFileVersionRepository
from themevault.db.repositories.theme_version import ThemeVersionRepository

__all__ = [
    "BaseRepository",
    "ThemeFileRepository",
    "ThemeFileVersionRepository",
    "ThemeRepository",
    "ThemeVersionRepository",
    "TrackedFile",
]
