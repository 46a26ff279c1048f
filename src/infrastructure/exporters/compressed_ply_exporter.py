"""
Compressed PLY exporter.

Exports splat tables to the packed-chunk layout: 256-splat chunks with
float32 bounds and four quantized uint32 words per splat (16 bytes/splat
before SH), plus an optional ``sh`` element of uint8 coefficients.

Storage Format:
- Scales: LOG space, clamped to [-20, 20]
- Opacities: LOGIT space, stored as linear alpha
- Positions: Chunk-relative quantized positions
- Rotations: Smallest-three quaternion encoding
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from src.domain.table import DataTable
from src.infrastructure.processing.ply.compressed import compress_ply
from src.infrastructure.processing.ply.writer import write_ply


logger = logging.getLogger(__name__)


class CompressedPlyExporter:
    """
    Export splat tables to compressed PLY.

    Parameters
    ----------
    chunk_color_bounds : bool
        Store per-chunk colour bounds (tighter colour quantization)
    morton_order : bool
        Sort splats along a Morton curve before chunking
    """

    def __init__(self, chunk_color_bounds: bool = True, morton_order: bool = True, **config: Any):
        self.chunk_color_bounds = chunk_color_bounds
        self.morton_order = morton_order
        self.config = config

    def get_file_extension(self) -> str:
        """Get file extension for compressed PLY format."""
        return ".compressed.ply"

    def export(
        self,
        table: DataTable,
        output_path: str | Path,
        env_table: DataTable | None = None,
        **options: Any,
    ) -> None:
        """
        Export a table to a compressed PLY file.

        Parameters
        ----------
        table : DataTable
            Table with every splat column
        output_path : str | Path
            Output file path
        env_table : DataTable | None
            Not stored by this format
        **options : Any
            Export options (currently unused)

        Raises
        ------
        DataFormatError
            If the table lacks splat columns
        """
        if env_table is not None:
            logger.info(
                f"Compressed PLY output does not store environment splats, dropping {env_table.num_rows} rows"
            )

        container = compress_ply(
            table,
            chunk_color_bounds=self.chunk_color_bounds,
            morton_order=self.morton_order,
        )
        write_ply(output_path, container)

        logger.debug(f"Exported compressed PLY: {output_path} ({table.num_rows} splats)")
