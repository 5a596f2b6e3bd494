"""Local/remote synchronization and conflict-resolution engine."""

__version__ = "0.1.0"
