"""
Response schemas for themevault.

Pydantic models returned by ``ThemeService``. Sessions are closed when a
service call returns, so callers get these snapshots instead of ORM rows.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class ThemeResponse(BaseModel):
    """Response schema for Theme."""

    id: UUID
    name: str
    slug: str
    display_name: str
    author: Optional[str] = None
    description: Optional[str] = None
    version: str
    active: bool
    source_path: Optional[str] = None
    last_synced_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ThemeVersionResponse(BaseModel):
    """Response schema for ThemeVersion (one sync batch)."""

    id: UUID
    theme_name: str
    version_label: str
    is_live: bool
    is_preview: bool
    author: Optional[str] = None
    change_summary: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class FileRevisionResponse(BaseModel):
    """Metadata of one ThemeFileVersion (content excluded)."""

    id: UUID
    theme_version_id: UUID
    version_number: int
    file_size: int
    file_checksum: str
    author: Optional[str] = None
    change_summary: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
