"""Initial schema: themes, theme versions, tracked files and file history

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

Creates the four version-store tables. The partial unique index on
themes.active allows at most one active theme.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _json_type():
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        return postgresql.JSONB
    return sa.JSON


def upgrade() -> None:
    op.create_table(
        "themes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("author", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("version", sa.String(50), nullable=False, server_default="1.0.0"),
        sa.Column("config", _json_type(), nullable=False, server_default="{}"),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("source_path", sa.Text, nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("ix_themes_name", "themes", ["name"], unique=True)
    op.create_index(
        "uq_themes_single_active",
        "themes",
        ["active"],
        unique=True,
        postgresql_where=sa.text("active = true"),
        sqlite_where=sa.text("active = 1"),
    )

    op.create_table(
        "theme_versions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "theme_name",
            sa.String(255),
            sa.ForeignKey("themes.name", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("version_label", sa.String(50), nullable=False),
        sa.Column("is_live", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_preview", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("author", sa.String(255), nullable=True),
        sa.Column("change_summary", sa.Text, nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "theme_name", "version_label", name="uq_theme_version_label"
        ),
    )
    op.create_index(
        "ix_theme_versions_theme_name", "theme_versions", ["theme_name"]
    )
    op.create_index("ix_theme_versions_is_live", "theme_versions", ["is_live"])

    op.create_table(
        "theme_files",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "theme_name",
            sa.String(255),
            sa.ForeignKey("themes.name", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("file_path", sa.Text, nullable=False),
        sa.Column("file_type", sa.String(50), nullable=False),
        sa.Column("extension", sa.String(50), nullable=False),
        sa.Column("current_version", sa.Integer, nullable=False),
        sa.Column(
            "last_theme_version_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("theme_versions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("theme_name", "file_path", name="uq_theme_file_path"),
    )
    op.create_index("ix_theme_files_theme_name", "theme_files", ["theme_name"])

    op.create_table(
        "theme_file_versions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "theme_file_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("theme_files.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "theme_version_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("theme_versions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("version_number", sa.Integer, nullable=False),
        sa.Column("content", sa.LargeBinary, nullable=False),
        sa.Column("file_size", sa.Integer, nullable=False),
        sa.Column("file_checksum", sa.String(64), nullable=False),
        sa.Column("author", sa.String(255), nullable=True),
        sa.Column("change_summary", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "theme_file_id", "version_number", name="uq_theme_file_version_number"
        ),
    )
    op.create_index(
        "ix_theme_file_versions_theme_file_id",
        "theme_file_versions",
        ["theme_file_id"],
    )
    op.create_index(
        "ix_theme_file_versions_theme_version_id",
        "theme_file_versions",
        ["theme_version_id"],
    )
    op.create_index(
        "idx_theme_file_versions_checksum", "theme_file_versions", ["file_checksum"]
    )


def downgrade() -> None:
    op.drop_table("theme_file_versions")
    op.drop_table("theme_files")
    op.drop_table("theme_versions")
    op.drop_index("uq_themes_single_active", table_name="themes")
    op.drop_index("ix_themes_name", table_name="themes")
    op.drop_table("themes")
