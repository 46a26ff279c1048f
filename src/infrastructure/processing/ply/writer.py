"""
PLY writer built on plyfile.

Serialises a PlyContainer as ``binary_little_endian`` PLY. Files are written
to a temporary sibling first and renamed into place, so a failed write never
leaves a partial output file behind.
"""

import io
import logging
import os
import tempfile
from pathlib import Path

import numpy as np
from plyfile import PlyData, PlyElement

from src.domain.data import PlyContainer, PlySection
from src.domain.table import DataTable

logger = logging.getLogger(__name__)


def _section_to_element(section: PlySection) -> PlyElement:
    columns = section.table.columns
    dtype = [(column.name, column.data.dtype.str) for column in columns]
    records = np.empty(section.num_rows, dtype=dtype)
    for column in columns:
        records[column.name] = column.data
    return PlyElement.describe(records, section.name)


def write_ply_bytes(container: PlyContainer) -> bytes:
    """Serialise a PlyContainer to bytes.

    Args:
        container: Sections to write, in order

    Returns:
        Binary little-endian PLY file contents
    """
    ply = PlyData(
        [_section_to_element(section) for section in container.sections],
        text=False,
        byte_order="<",
        comments=list(container.comments),
    )
    buffer = io.BytesIO()
    ply.write(buffer)
    return buffer.getvalue()


def write_bytes_atomic(file_path: str | Path, payload: bytes) -> None:
    """Write ``payload`` to ``file_path`` via a temporary file and rename."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp", delete=False
    ) as tmp:
        tmp_path = tmp.name
        tmp.write(payload)
    try:
        os.replace(tmp_path, file_path)
    except OSError:
        os.unlink(tmp_path)
        raise


def write_ply(file_path: str | Path, container: PlyContainer) -> None:
    """Write a PlyContainer to disk.

    Args:
        file_path: Output path
        container: Sections to write
    """
    file_path = Path(file_path)
    payload = write_ply_bytes(container)
    write_bytes_atomic(file_path, payload)
    logger.debug(f"[PLY Writer] Wrote {len(payload)} bytes to {file_path.name}")


def table_to_container(table: DataTable, comments: list[str] | None = None) -> PlyContainer:
    """Wrap a splat table as a single-``vertex`` PlyContainer."""
    return PlyContainer(
        sections=[PlySection("vertex", table)],
        comments=list(comments or []),
    )
