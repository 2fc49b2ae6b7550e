"""
Content reader: serves tracked theme content from the version store.

Nothing here reads the filesystem. A file edited on disk stays invisible
until a sync commits it, so what renders is always what was checksummed
and recorded.
"""

import json
import re
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from themevault.db.repositories import (
    ThemeFileRepository,
    ThemeFileVersionRepository,
    ThemeRepository,
)
from themevault.exceptions import NotFoundError, ValidationError
from themevault.models.db import Theme, ThemeFile, ThemeFileVersion
from themevault.scanner import is_editable, normalize_relative_path, validate_theme_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchHit:
    """One matching line in a tracked file."""

    file_path: str
    line_number: int  # 1-based
    column: int  # 0-based offset of the match
    line: str  # Stripped line content


class ContentReader:
    """Read access to the current and historical content of theme files."""

    def __init__(self, session: Session):
        self.session = session
        self.theme_repo = ThemeRepository(session)
        self.file_repo = ThemeFileRepository(session)
        self.file_version_repo = ThemeFileVersionRepository(session)

    def _get_theme(self, theme_name: str) -> Theme:
        validate_theme_name(theme_name)
        theme = self.theme_repo.get_by_name(theme_name)
        if theme is None:
            raise NotFoundError(f"Theme not found: {theme_name}", theme_name=theme_name)
        return theme

    def _get_file(self, theme_name: str, file_path: str) -> ThemeFile:
        self._get_theme(theme_name)
        path = normalize_relative_path(file_path, theme_name=theme_name)
        theme_file = self.file_repo.get_by_path(theme_name, path)
        if theme_file is None:
            raise NotFoundError(
                f"File not tracked in theme '{theme_name}': {path}",
                theme_name=theme_name,
            )
        return theme_file

    def current_version(self, theme_name: str, file_path: str) -> ThemeFileVersion:
        """
        Resolve a path to the version its current pointer names.

        Raises:
            ValidationError: Malformed theme name or path
            NotFoundError: Unknown theme or untracked path
        """
        theme_file = self._get_file(theme_name, file_path)
        version = self.file_version_repo.get_by_number(
            theme_file.id, theme_file.current_version
        )
        if version is None:
            raise NotFoundError(
                f"No version {theme_file.current_version} for {theme_file.file_path}",
                theme_name=theme_name,
            )
        return version

    def read(self, theme_name: str, file_path: str) -> bytes:
        """
        Get the current tracked content of a file.

        Args:
            theme_name: Theme name
            file_path: Relative file path

        Returns:
            File bytes exactly as recorded by the last sync that changed them
        """
        return self.current_version(theme_name, file_path).content

    def read_text(self, theme_name: str, file_path: str, encoding: str = "utf-8") -> str:
        """Get the current tracked content of a file decoded as text."""
        content = self.read(theme_name, file_path)
        try:
            return content.decode(encoding)
        except UnicodeDecodeError as e:
            raise ValidationError(
                f"{file_path} is not valid {encoding} text: {e}", theme_name=theme_name
            ) from e

    def read_json(self, theme_name: str, file_path: str) -> Any:
        """
        Get the current tracked content of a JSON file, parsed.

        Raises:
            ValidationError: If the tracked content is not valid JSON
        """
        text = self.read_text(theme_name, file_path)
        try:
            return json.loads(text)
        except ValueError as e:
            raise ValidationError(
                f"{file_path} does not contain valid JSON: {e}", theme_name=theme_name
            ) from e

    def read_active(self, file_path: str) -> bytes:
        """
        Read a file from the active theme.

        Raises:
            NotFoundError: If no theme is active or the path is not tracked
        """
        theme = self.theme_repo.get_active()
        if theme is None:
            raise NotFoundError("No active theme")
        return self.read(theme.name, file_path)

    def read_revision(
        self, theme_name: str, file_path: str, version_number: int
    ) -> ThemeFileVersion:
        """
        Get one historical revision of a file.

        Raises:
            NotFoundError: If the file or revision does not exist
        """
        theme_file = self._get_file(theme_name, file_path)
        version = self.file_version_repo.get_by_number(theme_file.id, version_number)
        if version is None:
            raise NotFoundError(
                f"{theme_file.file_path} has no version {version_number}",
                theme_name=theme_name,
            )
        return version

    def history(self, theme_name: str, file_path: str) -> List[ThemeFileVersion]:
        """Get every revision of a file, newest first."""
        theme_file = self._get_file(theme_name, file_path)
        return self.file_version_repo.history(theme_file.id)

    def search(
        self,
        theme_name: str,
        query: str,
        case_sensitive: bool = True,
        limit: Optional[int] = None,
    ) -> List[SearchHit]:
        """
        Search the current content of a theme's editable text files.

        Args:
            theme_name: Theme name
            query: Substring to look for
            case_sensitive: Match case exactly (default)
            limit: Maximum number of hits

        Returns:
            Hits ordered by path, then line number
        """
        self._get_theme(theme_name)
        if not query:
            return []

        pattern = re.compile(re.escape(query), 0 if case_sensitive else re.IGNORECASE)
        hits: List[SearchHit] = []
        for theme_file, version in self.file_version_repo.current_for_theme(theme_name):
            if not is_editable(theme_file.file_path):
                continue
            try:
                text = version.content.decode("utf-8")
            except UnicodeDecodeError:
                logger.debug(f"Skipping non-UTF-8 file in search: {theme_file.file_path}")
                continue

            for index, line in enumerate(text.splitlines(), start=1):
                match = pattern.search(line)
                if match is None:
                    continue
                hits.append(
                    SearchHit(
                        file_path=theme_file.file_path,
                        line_number=index,
                        column=match.start(),
                        line=line.strip(),
                    )
                )
                if limit is not None and len(hits) >= limit:
                    return hits
        return hits
