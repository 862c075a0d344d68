"""Folder management API reconciling a media catalog with remote folders."""

__version__ = "1.0.0"
