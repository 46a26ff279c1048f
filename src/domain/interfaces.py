"""Domain interfaces (protocols) for dependency inversion.

This module defines the seams between the pipeline and its outputs:
- ExporterInterface: writes a final splat table in one file format
- OutputChannel: receives data output such as summary reports
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable


if TYPE_CHECKING:
    from src.domain.table import DataTable


OutputChannel = Callable[[str], None]
"""Sink for user-facing data output (reports), separate from logging."""


@runtime_checkable
class ExporterInterface(Protocol):
    """Standard interface for splat table exporters.

    Enables modular export to different file formats (PLY, compressed PLY,
    CSV, ...) without modifying the pipeline runner.
    """

    def get_file_extension(self) -> str:
        """File extension written by this exporter (e.g. ``.ply``)."""
        ...

    def export(
        self,
        table: DataTable,
        output_path: Path,
        env_table: DataTable | None = None,
        **options: Any,
    ) -> None:
        """Export a table to file.

        Parameters
        ----------
        table : DataTable
            Final splat table
        output_path : Path
            Output file path
        env_table : DataTable | None
            Environment splats (``lod == -1``), for formats that store them
        **options : Any
            Format-specific export options
        """
        ...
