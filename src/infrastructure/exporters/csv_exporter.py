"""
CSV exporter.

One header line of column names, then one line per row. Values are written
in storage space (raw log scales, logit opacities).
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any

import numpy as np

from src.domain.table import DataTable
from src.infrastructure.processing.ply.writer import write_bytes_atomic


logger = logging.getLogger(__name__)


class CsvExporter:
    """Export splat tables to comma-separated text."""

    def __init__(self, delimiter: str = ",", **config: Any):
        self.delimiter = delimiter
        self.config = config

    def get_file_extension(self) -> str:
        return ".csv"

    def export(
        self,
        table: DataTable,
        output_path: str | Path,
        env_table: DataTable | None = None,
        **options: Any,
    ) -> None:
        if env_table is not None:
            logger.info(f"CSV output does not store environment splats, dropping {env_table.num_rows} rows")

        columns = table.columns
        formats = [
            "%d" if np.issubdtype(column.data.dtype, np.integer) else "%.9g" for column in columns
        ]
        records = np.empty(table.num_rows, dtype=[(c.name, c.data.dtype) for c in columns])
        for column in columns:
            records[column.name] = column.data

        buffer = io.StringIO()
        np.savetxt(
            buffer,
            records,
            fmt=formats,
            delimiter=self.delimiter,
            header=self.delimiter.join(table.column_names),
            comments="",
        )
        write_bytes_atomic(output_path, buffer.getvalue().encode("utf-8"))
        logger.debug(f"Exported CSV: {output_path} ({table.num_rows} rows)")


class NullExporter:
    """Discards the table; used to run a pipeline for its side effects (e.g. summary)."""

    def __init__(self, **config: Any):
        self.config = config

    def get_file_extension(self) -> str:
        return ""

    def export(
        self,
        table: DataTable,
        output_path: str | Path | None = None,
        env_table: DataTable | None = None,
        **options: Any,
    ) -> None:
        logger.debug(f"Null output: discarded {table.num_rows} rows")
