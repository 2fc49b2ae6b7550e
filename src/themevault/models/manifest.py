"""
Theme manifest schema and validation.

Defines the structure of ``config/theme.json`` files that describe a theme.
The manifest is validated with Pydantic when a theme is synced and stored as
JSON on the ``themes`` row; it is only turned back into a typed object at the
API edge.
"""

import enum
import json
import logging
import re
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from themevault.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_THEME_VERSION = "1.0.0"
SEMVER_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


class ColorScheme(str, enum.Enum):
    """Color schemes a theme can declare."""

    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class ThemeFeature(str, enum.Enum):
    """Optional capabilities a theme can advertise to the renderer."""

    SECTIONS = "sections"
    BLOCKS = "blocks"
    SNIPPETS = "snippets"
    CUSTOM_CSS = "custom_css"
    DARK_MODE = "dark_mode"
    RTL = "rtl"
    LOCALES = "locales"


class ThemeManifest(BaseModel):
    """
    Metadata about a theme, read from its ``config/theme.json``.

    Unknown keys are ignored; the recognized option set is what the rest of
    the platform may rely on.
    """

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    name: Optional[str] = Field(
        None,
        description="Human-readable theme name (defaults to the titleized directory name)",
        max_length=255,
    )

    version: str = Field(
        DEFAULT_THEME_VERSION,
        description="Semantic version declared by the theme author (e.g., '1.0.0')",
        pattern=r"^\d+\.\d+\.\d+$",
    )

    description: Optional[str] = Field(
        None,
        description="Human-readable description of the theme",
        max_length=2000,
    )

    author: Optional[str] = Field(
        None,
        description="Theme author name or organization",
        max_length=255,
    )

    homepage: Optional[str] = Field(
        None,
        description="URL to theme documentation",
    )

    color_scheme: ColorScheme = Field(
        ColorScheme.AUTO,
        description="Color scheme the theme renders in",
    )

    supports: List[ThemeFeature] = Field(
        default_factory=list,
        description="Optional renderer features used by the theme",
    )

    @field_validator("supports")
    @classmethod
    def dedupe_supports(cls, features: List[Any]) -> List[Any]:
        """Keep the declared order but drop repeated features."""
        seen: list = []
        for feature in features:
            if feature not in seen:
                seen.append(feature)
        return seen

    @classmethod
    def default_for(cls, theme_name: str) -> "ThemeManifest":
        """Manifest used when a theme ships no theme.json."""
        return cls(
            name=titleize(theme_name),
            description=f"Theme: {titleize(theme_name)}",
        )

    @classmethod
    def from_file(cls, manifest_path: Path, theme_name: str) -> "ThemeManifest":
        """
        Load a manifest from a theme.json file.

        Both a JSON object and a single-element array holding an object are
        accepted.

        Args:
            manifest_path: Path to the theme.json file
            theme_name: Directory name of the theme (used for defaults)

        Returns:
            ThemeManifest instance

        Raises:
            ValidationError: If the file is not valid JSON or fails validation
        """
        try:
            raw = json.loads(manifest_path.read_text(encoding="utf-8"))
        except ValueError as e:  # JSONDecodeError, UnicodeDecodeError
            raise ValidationError(
                f"Invalid JSON in {manifest_path}: {e}", theme_name=theme_name
            ) from e

        if isinstance(raw, list):
            raw = raw[0] if raw else {}
        if not isinstance(raw, dict):
            raise ValidationError(
                f"Manifest {manifest_path} must contain a JSON object",
                theme_name=theme_name,
            )

        return cls.from_dict(raw, theme_name)

    @classmethod
    def from_dict(cls, data: dict, theme_name: str) -> "ThemeManifest":
        """Validate a manifest dictionary, filling in name/description defaults."""
        try:
            manifest = cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid manifest for theme '{theme_name}': {e}",
                theme_name=theme_name,
            ) from e

        if not manifest.name:
            manifest.name = titleize(theme_name)
        if not manifest.description:
            manifest.description = f"Theme: {manifest.name}"
        return manifest

    def to_config(self) -> dict:
        """Serialize for storage in ``Theme.config``."""
        return self.model_dump(mode="json")


def titleize(name: str) -> str:
    """Turn a directory name like 'dark_nordic-pro' into 'Dark Nordic Pro'."""
    words = re.split(r"[\s_\-]+", name.strip())
    return " ".join(word.capitalize() for word in words if word) or name


def slugify(name: str) -> str:
    """Convert a theme name to a URL-friendly slug."""
    slug = re.sub(r"[\s_.]+", "-", name.lower())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug.strip("-"))
    return slug or "theme"


def bump_patch(label: str) -> str:
    """
    Increment the patch component of a semantic version label.

    Labels that are not plain ``MAJOR.MINOR.PATCH`` get a ``.1`` suffix so the
    result still differs from the input.
    """
    match = SEMVER_PATTERN.match(label)
    if not match:
        return f"{label}.1"
    major, minor, patch = (int(part) for part in match.groups())
    return f"{major}.{minor}.{patch + 1}"
