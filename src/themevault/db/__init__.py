"""Database layer: connection management, repositories and migrations."""
