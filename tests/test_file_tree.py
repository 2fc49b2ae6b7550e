"""Tests for the file tree projection."""

from pathlib import Path

import pytest
from sqlalchemy.orm import Session

from themevault.exceptions import NotFoundError, ValidationError
from themevault.scanner import ThemeDirectoryScanner
from themevault.services.file_tree import FileTreeBuilder, TreeEntry, build_tree
from themevault.services.sync import SyncEngine


def _names(nodes):
    return [node["name"] for node in nodes]


class TestBuildTree:
    def test_nests_directories(self):
        nodes = build_tree(
            [
                TreeEntry("sections/header.liquid", "section", 1),
                TreeEntry("sections/blocks/card.liquid", "section", 2),
                TreeEntry("README.md", "other", 1),
            ]
        )

        assert _names(nodes) == ["sections", "README.md"]
        sections = nodes[0]
        assert sections["type"] == "directory"
        assert sections["path"] == "sections"
        assert _names(sections["children"]) == ["blocks", "header.liquid"]
        card = sections["children"][0]["children"][0]
        assert card == {
            "name": "card.liquid",
            "path": "sections/blocks/card.liquid",
            "type": "file",
            "file_type": "section",
            "extension": ".liquid",
            "editable": True,
            "current_version": 2,
            "size": None,
        }

    def test_directories_sort_before_files(self):
        nodes = build_tree(
            [
                TreeEntry("b.liquid", "other", 1),
                TreeEntry("a.liquid", "other", 1),
                TreeEntry("z/x.liquid", "other", 1),
            ]
        )

        assert _names(nodes) == ["z", "a.liquid", "b.liquid"]

    def test_empty(self):
        assert build_tree([]) == []

    def test_binary_files_are_not_editable(self):
        node = build_tree([TreeEntry("assets/logo.png", "asset", 1, size=10)])[0]["children"][0]

        assert node["editable"] is False
        assert node["size"] == 10

    @pytest.mark.parametrize(
        "paths",
        [
            ["assets/icons/a.svg", "assets/icons"],
            ["assets/icons", "assets/icons/a.svg"],
        ],
    )
    def test_rejects_file_directory_collision(self, paths):
        with pytest.raises(ValidationError):
            build_tree([TreeEntry(path, "asset", 1) for path in paths])

    def test_rejects_empty_path(self):
        with pytest.raises(ValidationError):
            build_tree([TreeEntry("/", "other", 1)])


class TestFileTreeBuilder:
    def test_tree_of_synced_theme(
        self, db_session: Session, scanner: ThemeDirectoryScanner, nordic: Path
    ):
        SyncEngine(db_session, scanner=scanner).sync_theme("nordic")

        nodes = FileTreeBuilder(db_session).tree("nordic")

        assert _names(nodes) == [
            "assets",
            "config",
            "layout",
            "locales",
            "sections",
            "snippets",
            "templates",
        ]
        assets = nodes[0]["children"]
        assert _names(assets) == ["logo.png", "theme.css"]
        assert assets[1]["size"] == len("body { color: #2e3440; }\n")

    def test_unknown_theme(self, db_session: Session):
        with pytest.raises(NotFoundError):
            FileTreeBuilder(db_session).tree("missing")
