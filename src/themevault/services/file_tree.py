"""
File tree projection for the admin UI.

Groups the flat list of tracked paths of a theme into nested directory
nodes. Directories sort before files, siblings sort by name.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from themevault.db.repositories import ThemeFileVersionRepository, ThemeRepository
from themevault.exceptions import NotFoundError, ValidationError
from themevault.scanner import file_extension, is_editable, validate_theme_name


@dataclass(frozen=True)
class TreeEntry:
    """Flat input row of the projection."""

    file_path: str
    file_type: str
    current_version: int
    size: Optional[int] = None


def _sort_nodes(nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    nodes.sort(key=lambda node: (node["type"] != "directory", node["name"]))
    for node in nodes:
        if node["type"] == "directory":
            _sort_nodes(node["children"])
    return nodes


def build_tree(entries: Iterable[TreeEntry]) -> List[Dict[str, Any]]:
    """
    Build the nested tree from flat file rows.

    Args:
        entries: Tracked files of one theme

    Returns:
        Top-level nodes. Directory nodes are
        ``{name, path, type: "directory", children}``; file nodes are
        ``{name, path, type: "file", file_type, extension, editable,
        current_version, size}``.

    Raises:
        ValidationError: If a path is empty or is both a file and a directory
    """
    root: List[Dict[str, Any]] = []
    directories: Dict[str, Dict[str, Any]] = {}
    files = set()

    for entry in entries:
        parts = [part for part in entry.file_path.split("/") if part]
        if not parts:
            raise ValidationError(f"Invalid file path in tree: {entry.file_path!r}")

        siblings = root
        for depth, part in enumerate(parts[:-1], start=1):
            dir_path = "/".join(parts[:depth])
            node = directories.get(dir_path)
            if node is None:
                if dir_path in files:
                    raise ValidationError(f"Path is both a file and a directory: {dir_path}")
                node = {"name": part, "path": dir_path, "type": "directory", "children": []}
                directories[dir_path] = node
                siblings.append(node)
            siblings = node["children"]

        file_path = "/".join(parts)
        if file_path in directories:
            raise ValidationError(f"Path is both a file and a directory: {file_path}")
        files.add(file_path)
        siblings.append(
            {
                "name": parts[-1],
                "path": file_path,
                "type": "file",
                "file_type": entry.file_type,
                "extension": file_extension(file_path),
                "editable": is_editable(file_path),
                "current_version": entry.current_version,
                "size": entry.size,
            }
        )

    return _sort_nodes(root)


class FileTreeBuilder:
    """Builds the file tree of a theme from its tracked files."""

    def __init__(self, session: Session):
        self.session = session
        self.theme_repo = ThemeRepository(session)
        self.file_version_repo = ThemeFileVersionRepository(session)

    def tree(self, theme_name: str) -> List[Dict[str, Any]]:
        """
        Get the nested file tree of a theme.

        Raises:
            ValidationError: Malformed theme name
            NotFoundError: Unknown theme
        """
        validate_theme_name(theme_name)
        if self.theme_repo.get_by_name(theme_name) is None:
            raise NotFoundError(f"Theme not found: {theme_name}", theme_name=theme_name)

        rows = self.file_version_repo.current_for_theme(theme_name)
        return build_tree(
            TreeEntry(
                file_path=theme_file.file_path,
                file_type=theme_file.file_type,
                current_version=theme_file.current_version,
                size=version.file_size,
            )
            for theme_file, version in rows
        )
