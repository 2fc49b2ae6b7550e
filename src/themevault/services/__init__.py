"""
Sync, drift detection, activation and read services.

``ThemeService`` is the entry point for callers; the other classes work
inside a session the caller provides.
"""

from themevault.services.activation import ActivationManager, ActivationOutcome
from themevault.services.content import ContentReader, SearchHit
from themevault.services.drift import DriftDetector, DriftReport
from themevault.services.file_tree import FileTreeBuilder, build_tree
from themevault.services.publishing import VersionPublisher
from themevault.services.sync import SyncEngine, SyncReport
from themevault.services.theme_service import ThemeService

__all__ = [
    "ActivationManager",
    "ActivationOutcome",
    "ContentReader",
    "DriftDetector",
    "DriftReport",
    "FileTreeBuilder",
    "SearchHit",
    "SyncEngine",
    "SyncReport",
    "ThemeService",
    "VersionPublisher",
    "build_tree",
]
