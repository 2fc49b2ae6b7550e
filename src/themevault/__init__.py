"""themevault - theme synchronization and versioning for a CMS."""

__version__ = "0.1.0"
