"""
SQLAlchemy database models for themevault.

These models are the version store: themes, their sync batches, the current
pointer for every tracked file and the append-only file history.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
    event,
    false,
    inspect,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from themevault.exceptions import StorageError


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Theme(Base):
    """A discoverable theme, identified by its directory name."""

    __tablename__ = "themes"
    __table_args__ = (
        # At most one row may carry active = true
        Index(
            "uq_themes_single_active",
            "active",
            unique=True,
            postgresql_where=text("active = true"),
            sqlite_where=text("active = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )  # Directory name
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    author: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[str] = mapped_column(
        String(50), nullable=False, server_default="1.0.0"
    )  # Declared in theme.json

    # Validated manifest (see themevault.models.manifest)
    config: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default="{}")

    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=false(), default=False
    )
    source_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    versions: Mapped[list["ThemeVersion"]] = relationship(
        back_populates="theme", order_by="ThemeVersion.created_at"
    )
    files: Mapped[list["ThemeFile"]] = relationship(back_populates="theme")

    def __repr__(self) -> str:
        return f"<Theme(id={self.id}, name={self.name!r}, active={self.active})>"


class ThemeVersion(Base):
    """One sync batch that changed at least one file of a theme."""

    __tablename__ = "theme_versions"
    __table_args__ = (
        UniqueConstraint("theme_name", "version_label", name="uq_theme_version_label"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    theme_name: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("themes.name", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_label: Mapped[str] = mapped_column(String(50), nullable=False)

    is_live: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=false(), default=False, index=True
    )
    is_preview: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=false(), default=False
    )
    author: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    change_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    theme: Mapped["Theme"] = relationship(back_populates="versions")
    file_versions: Mapped[list["ThemeFileVersion"]] = relationship(
        back_populates="theme_version"
    )

    def __repr__(self) -> str:
        return (
            f"<ThemeVersion(id={self.id}, "
            f"theme_name={self.theme_name!r}, "
            f"version_label={self.version_label!r}, "
            f"is_live={self.is_live})>"
        )


class ThemeFile(Base):
    """Current pointer for one tracked path within a theme."""

    __tablename__ = "theme_files"
    __table_args__ = (
        UniqueConstraint("theme_name", "file_path", name="uq_theme_file_path"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    theme_name: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("themes.name", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_path: Mapped[str] = mapped_column(Text, nullable=False)  # Relative, POSIX
    file_type: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # 'template', 'section', 'asset', ...
    extension: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    current_version: Mapped[int] = mapped_column(Integer, nullable=False)
    last_theme_version_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("theme_versions.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    theme: Mapped["Theme"] = relationship(back_populates="files")
    last_theme_version: Mapped[Optional["ThemeVersion"]] = relationship()
    versions: Mapped[list["ThemeFileVersion"]] = relationship(
        back_populates="theme_file", order_by="ThemeFileVersion.version_number"
    )

    def __repr__(self) -> str:
        return (
            f"<ThemeFile(id={self.id}, "
            f"theme_name={self.theme_name!r}, "
            f"file_path={self.file_path!r}, "
            f"current_version={self.current_version})>"
        )


class ThemeFileVersion(Base):
    """Immutable revision of one file. The only place file content lives."""

    __tablename__ = "theme_file_versions"
    __table_args__ = (
        UniqueConstraint(
            "theme_file_id", "version_number", name="uq_theme_file_version_number"
        ),
        Index("idx_theme_file_versions_checksum", "file_checksum"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    theme_file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("theme_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    theme_version_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("theme_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)

    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    file_checksum: Mapped[str] = mapped_column(
        String(64), nullable=False
    )  # SHA-256 of content

    author: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    change_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    theme_file: Mapped["ThemeFile"] = relationship(back_populates="versions")
    theme_version: Mapped["ThemeVersion"] = relationship(
        back_populates="file_versions"
    )

    def __repr__(self) -> str:
        return (
            f"<ThemeFileVersion(id={self.id}, "
            f"theme_file_id={self.theme_file_id}, "
            f"version_number={self.version_number}, "
            f"file_checksum={self.file_checksum[:12]!r})>"
        )


@event.listens_for(ThemeFileVersion, "before_update")
def _reject_file_version_update(mapper, connection, target) -> None:
    state = inspect(target)
    changed = [
        attr.key
        for attr in mapper.column_attrs
        if state.attrs[attr.key].history.has_changes()
    ]
    if not changed:
        return
    raise StorageError(
        f"ThemeFileVersion {target.id} is immutable and cannot be updated"
    )
