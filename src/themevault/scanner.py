"""
Theme directory scanner.

Walks the theme root on disk and yields the files of each theme. The scanner
is read-only and never touches the database; the sync engine is the only
component that turns what it returns into tracked history.
"""

import logging
import os
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional, Tuple

from themevault.config import settings
from themevault.exceptions import (
    NotFoundError,
    SyncCancelledError,
    ThemeIOError,
    ValidationError,
)
from themevault.models.manifest import ThemeManifest

logger = logging.getLogger(__name__)

THEME_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

# Category of a file, keyed by its top-level directory
FILE_TYPE_BY_DIRECTORY: Dict[str, str] = {
    "templates": "template",
    "sections": "section",
    "snippets": "snippet",
    "layout": "layout",
    "assets": "asset",
    "config": "config",
    "locales": "locale",
}
DEFAULT_FILE_TYPE = "other"

# Text formats the admin editor can open
EDITABLE_EXTENSIONS = (".liquid", ".json", ".css", ".js", ".scss", ".html", ".erb")


def validate_theme_name(theme_name: str) -> str:
    """
    Check that a theme name is a plain directory name.

    Raises:
        ValidationError: If the name is empty, hidden or contains separators
    """
    if not isinstance(theme_name, str) or not THEME_NAME_PATTERN.match(theme_name):
        raise ValidationError(f"Invalid theme name: {theme_name!r}")
    if theme_name in (".", ".."):
        raise ValidationError(f"Invalid theme name: {theme_name!r}")
    return theme_name


def normalize_relative_path(file_path: str, theme_name: Optional[str] = None) -> str:
    """
    Normalize a theme-relative file path to POSIX form.

    Backslashes are treated as separators and redundant ``./`` segments are
    dropped. Absolute paths and ``..`` segments are rejected.

    Raises:
        ValidationError: If the path is empty, absolute or escapes the theme
    """
    if not isinstance(file_path, str) or not file_path.strip():
        raise ValidationError("File path must not be empty", theme_name=theme_name)

    raw = file_path.replace("\\", "/")
    if raw.startswith("/") or re.match(r"^[A-Za-z]:", raw):
        raise ValidationError(
            f"File path must be relative: {file_path!r}", theme_name=theme_name
        )

    parts = [part for part in PurePosixPath(raw).parts if part not in ("", ".")]
    if not parts or ".." in parts:
        raise ValidationError(f"Invalid file path: {file_path!r}", theme_name=theme_name)
    return "/".join(parts)


def classify_file_type(relative_path: str) -> str:
    """Map a relative path to its category by top-level directory."""
    top = relative_path.split("/", 1)[0] if "/" in relative_path else ""
    return FILE_TYPE_BY_DIRECTORY.get(top, DEFAULT_FILE_TYPE)


def file_extension(relative_path: str) -> str:
    """Lower-cased suffix including the dot (``'.liquid'``), or ``''``."""
    return PurePosixPath(relative_path).suffix.lower()


def is_editable(relative_path: str) -> bool:
    """Whether a file is a text format the admin editor can open."""
    return file_extension(relative_path) in EDITABLE_EXTENSIONS


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


@dataclass(frozen=True)
class ScannedFile:
    """One file read from a theme directory."""

    theme_name: str
    relative_path: str
    file_type: str
    content: bytes

    @property
    def extension(self) -> str:
        return file_extension(self.relative_path)

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class ThemeSource:
    """Snapshot of one theme on disk: its manifest and every file's bytes."""

    name: str
    path: Path
    manifest: ThemeManifest
    files: List[ScannedFile] = field(default_factory=list)

    def contents(self) -> Dict[str, bytes]:
        """Relative path -> bytes."""
        return {f.relative_path: f.content for f in self.files}


class ThemeDirectoryScanner:
    """
    Reads theme directories below a root folder.

    Each immediate, non-hidden sub-directory of the root is a theme; the
    directory name is the theme's identity.
    """

    def __init__(
        self,
        themes_root: Optional[Path | str] = None,
        manifest_relative_path: Optional[str] = None,
    ):
        self.themes_root = (
            Path(themes_root).expanduser() if themes_root else settings.themes_directory
        )
        self.manifest_relative_path = normalize_relative_path(
            manifest_relative_path or settings.manifest_relative_path
        )

    def discover_themes(self) -> List[str]:
        """
        List theme names found under the root, sorted.

        Returns:
            Theme directory names (empty when the root does not exist)

        Raises:
            ThemeIOError: If the root exists but cannot be listed
        """
        if not self.themes_root.exists():
            logger.warning(f"Themes directory does not exist: {self.themes_root}")
            return []

        try:
            entries = sorted(self.themes_root.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise ThemeIOError(
                f"Cannot list themes directory {self.themes_root}: {e}"
            ) from e

        names = []
        for entry in entries:
            if _is_hidden(entry.name) or not entry.is_dir():
                continue
            if not THEME_NAME_PATTERN.match(entry.name):
                logger.warning(f"Skipping directory with invalid theme name: {entry.name}")
                continue
            names.append(entry.name)

        logger.debug(f"Discovered {len(names)} themes in {self.themes_root}")
        return names

    def theme_path(self, theme_name: str) -> Path:
        """
        Resolve the directory of a theme.

        Raises:
            ValidationError: If the name is malformed
            NotFoundError: If no such directory exists
        """
        validate_theme_name(theme_name)
        path = self.themes_root / theme_name
        if not path.is_dir():
            raise NotFoundError(
                f"Theme directory not found: {path}", theme_name=theme_name
            )
        return path

    def iter_paths(self, theme_name: str) -> Iterator[Tuple[str, Path]]:
        """
        Yield ``(relative_path, absolute_path)`` for every file of a theme.

        Hidden entries and symlinks are skipped, so only files that live
        inside the theme directory are read. Paths are yielded in sorted order.

        Raises:
            ValidationError: If a file name is not valid UTF-8
        """
        root = self.theme_path(theme_name)

        def _on_error(error: OSError) -> None:
            raise ThemeIOError(
                f"Cannot read theme directory {error.filename}: {error}",
                theme_name=theme_name,
                file_path=error.filename,
            ) from error

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            dirnames[:] = sorted(d for d in dirnames if not _is_hidden(d))
            for filename in sorted(filenames):
                if _is_hidden(filename):
                    continue
                absolute = Path(dirpath) / filename
                if absolute.is_symlink():
                    logger.warning(f"Skipping symlink in theme '{theme_name}': {absolute}")
                    continue
                if not absolute.is_file():
                    continue
                relative_path = absolute.relative_to(root).as_posix()
                try:
                    relative_path.encode("utf-8")
                except UnicodeEncodeError as e:
                    raise ValidationError(
                        f"File name is not valid UTF-8: {os.fsencode(relative_path)!r}",
                        theme_name=theme_name,
                    ) from e
                yield relative_path, absolute

    def iter_files(
        self,
        theme_name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[ScannedFile]:
        """
        Yield every file of a theme with its content.

        Args:
            theme_name: Theme directory name
            cancel_event: Checked before each file; when set the scan stops

        Raises:
            SyncCancelledError: If ``cancel_event`` is set
            ThemeIOError: If a file cannot be read
        """
        for relative_path, absolute in self.iter_paths(theme_name):
            if cancel_event is not None and cancel_event.is_set():
                raise SyncCancelledError(
                    f"Scan of theme '{theme_name}' cancelled", theme_name=theme_name
                )
            try:
                content = absolute.read_bytes()
            except OSError as e:
                raise ThemeIOError(
                    f"Cannot read {absolute}: {e}",
                    theme_name=theme_name,
                    file_path=relative_path,
                ) from e
            yield ScannedFile(
                theme_name=theme_name,
                relative_path=relative_path,
                file_type=classify_file_type(relative_path),
                content=content,
            )

    def load_manifest(self, theme_name: str) -> ThemeManifest:
        """
        Load and validate a theme's manifest.

        A theme without a manifest gets defaults derived from its name.

        Raises:
            ValidationError: If the manifest is malformed
            ThemeIOError: If the manifest exists but cannot be read
        """
        manifest_path = self.theme_path(theme_name) / self.manifest_relative_path
        if manifest_path.is_symlink():
            logger.warning(f"Ignoring symlinked manifest for theme '{theme_name}'")
            return ThemeManifest.default_for(theme_name)
        if not manifest_path.is_file():
            logger.debug(f"No manifest for theme '{theme_name}', using defaults")
            return ThemeManifest.default_for(theme_name)

        try:
            return ThemeManifest.from_file(manifest_path, theme_name)
        except OSError as e:
            raise ThemeIOError(
                f"Cannot read manifest {manifest_path}: {e}",
                theme_name=theme_name,
                file_path=self.manifest_relative_path,
            ) from e

    def scan(
        self,
        theme_name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> ThemeSource:
        """
        Read a whole theme into memory.

        Args:
            theme_name: Theme directory name
            cancel_event: Optional event that aborts the scan when set

        Returns:
            ThemeSource with manifest and files
        """
        path = self.theme_path(theme_name)
        manifest = self.load_manifest(theme_name)
        files = list(self.iter_files(theme_name, cancel_event=cancel_event))
        logger.debug(f"Scanned {len(files)} files for theme '{theme_name}'")
        return ThemeSource(name=theme_name, path=path, manifest=manifest, files=files)
