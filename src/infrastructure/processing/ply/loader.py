"""
PLY loader built on plyfile.

Reads any binary or ASCII PLY file into a PlyContainer: one section per
element, one typed column per scalar property. Interpretation of the sections
(standard splat vertices vs. the packed-chunk layout) happens in
:func:`load_splat_table`.
"""

import io
import logging
from pathlib import Path

from plyfile import PlyData, PlyListProperty, PlyParseError

from src.domain.data import PlyContainer, PlySection
from src.domain.table import Column, DataTable
from src.infrastructure.processing.ply.compressed import decompress_ply, is_compressed_ply
from src.shared.exceptions import DataFormatError, MalformedInputError

logger = logging.getLogger(__name__)


def _to_container(ply: PlyData, source: str | None) -> PlyContainer:
    sections = []
    for element in ply.elements:
        columns = []
        for prop in element.properties:
            if isinstance(prop, PlyListProperty):
                raise MalformedInputError(
                    f"List property '{prop.name}' in element '{element.name}' is not supported",
                    path=source,
                )
            try:
                columns.append(Column(prop.name, element.data[prop.name]))
            except DataFormatError as e:
                raise MalformedInputError(str(e), path=source) from e
        sections.append(PlySection(element.name, DataTable(columns)))

    return PlyContainer(sections=sections, comments=list(ply.comments), source_path=source)


def read_ply(file_path: str | Path) -> PlyContainer:
    """Read a PLY file into its sections.

    Args:
        file_path: Path to the PLY file

    Returns:
        PlyContainer with one section per PLY element

    Raises:
        FileNotFoundError: If file doesn't exist
        MalformedInputError: If the file is not a readable PLY file
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"PLY file not found: {file_path}")

    logger.debug(f"[PLY Loader] Reading {file_path.name}")

    try:
        ply = PlyData.read(str(file_path))
    except (PlyParseError, ValueError) as e:
        raise MalformedInputError(f"Failed to parse PLY: {e}", path=str(file_path)) from e

    container = _to_container(ply, str(file_path))
    logger.debug(
        f"[PLY Loader] {file_path.name}: "
        + ", ".join(f"{s.name}[{s.num_rows}]" for s in container.sections)
    )
    return container


def read_ply_bytes(data: bytes, source: str | None = None) -> PlyContainer:
    """Read an in-memory PLY file into its sections."""
    try:
        ply = PlyData.read(io.BytesIO(data))
    except (PlyParseError, ValueError) as e:
        raise MalformedInputError(f"Failed to parse PLY: {e}", path=source) from e
    return _to_container(ply, source)


def container_to_table(container: PlyContainer) -> DataTable:
    """Interpret a PlyContainer as splat data.

    Packed-chunk files are decoded; anything else must provide a ``vertex``
    section, which is returned as-is.

    Raises:
        MalformedInputError: If there is no vertex section
    """
    if is_compressed_ply(container):
        logger.debug("[PLY Loader] Detected packed-chunk layout")
        return decompress_ply(container)

    vertex = container.get_section("vertex")
    if vertex is None:
        raise MalformedInputError(
            "PLY file has no vertex element",
            path=container.source_path,
            expected="vertex",
            actual=", ".join(container.section_names()) or "no elements",
        )
    return vertex.table


def load_splat_table(file_path: str | Path) -> DataTable:
    """Load a standard or packed-chunk PLY file as a single splat DataTable."""
    table = container_to_table(read_ply(file_path))
    logger.debug(f"[PLY Loader] Loaded {table.num_rows} splats from {Path(file_path).name}")
    return table
