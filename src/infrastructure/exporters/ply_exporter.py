"""
Standard PLY exporter.

Writes every column of the table as a scalar property of a single ``vertex``
element, in column order, as binary little-endian PLY.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from src.domain.table import DataTable
from src.infrastructure.processing.ply.writer import table_to_container, write_ply


logger = logging.getLogger(__name__)


class PlyExporter:
    """
    Export splat tables to standard PLY.

    Example
    -------
    >>> PlyExporter().export(table, Path("/path/to/output.ply"))
    """

    def __init__(self, **config: Any):
        self.config = config

    def get_file_extension(self) -> str:
        """Get file extension for PLY format."""
        return ".ply"

    def export(
        self,
        table: DataTable,
        output_path: str | Path,
        env_table: DataTable | None = None,
        **options: Any,
    ) -> None:
        """
        Export a table to a PLY file.

        Parameters
        ----------
        table : DataTable
            Table to write; any column set is accepted
        output_path : str | Path
            Output PLY file path
        env_table : DataTable | None
            Not stored by this format
        **options : Any
            Export options (currently unused)
        """
        if env_table is not None:
            logger.info(f"PLY output does not store environment splats, dropping {env_table.num_rows} rows")

        write_ply(output_path, table_to_container(table, comments=["Generated by splat-transform"]))
        logger.debug(f"Exported PLY: {output_path} ({table.num_rows} rows, {table.num_columns} columns)")
