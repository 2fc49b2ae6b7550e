"""Database models, the theme manifest schema and response schemas."""
