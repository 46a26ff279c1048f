"""Conversion runner and CLI entry point."""

from .app import SplatTransformApp, is_environment_table, read_file, write_file


__all__ = [
    "SplatTransformApp",
    "is_environment_table",
    "read_file",
    "write_file",
]
