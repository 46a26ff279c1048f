"""
Centralized constants for Gaussian Splatting operations.

This module provides a single source of truth for all magic numbers and constants
used throughout the splat-transform codebase, grouped by their usage context.
Data model constants (column names, SH layout, ordering) are defined in
:mod:`src.domain.constants` and re-exported here.
"""

from dataclasses import dataclass

from src.domain.constants import (
    COLOR_COLUMNS,
    ENVIRONMENT_LOD,
    GAUSSIAN_COLUMNS,
    LOD_COLUMN,
    OPACITY_COLUMN,
    ORDERING,
    POSITION_COLUMNS,
    ROTATION_COLUMNS,
    SCALE_COLUMNS,
    SH,
    SH_REST_COLUMNS,
    Ordering,
    SphericalHarmonics,
)


@dataclass(frozen=True)
class Compression:
    """Layout constants of the packed-chunk ("compressed PLY") format."""

    CHUNK_SIZE: int = 256
    """Number of splats sharing one set of quantization bounds"""

    POSITION_BITS: tuple[int, int, int] = (11, 10, 11)
    """Bit widths of the x, y, z fields in packed_position / packed_scale"""

    ROTATION_BITS: int = 10
    """Bit width of each stored smallest-three quaternion component"""

    COLOR_BITS: int = 8
    """Bit width of each r, g, b, a field in packed_color"""

    SH_RANGE: float = 8.0
    """SH coefficients are stored as bytes over [-SH_RANGE/2, SH_RANGE/2]"""


@dataclass(frozen=True)
class LogSpace:
    """Constants for log-space clamping before storage."""

    MIN_LOG_SCALE: float = -20.0
    """Minimum log scale value for stable storage"""

    MAX_LOG_SCALE: float = 20.0
    """Maximum log scale value for stable storage"""


class GaussianConstants:
    """
    Central registry of all Gaussian Splatting constants.

    Usage:
        from src.infrastructure.processing.gaussian_constants import GaussianConstants as GC

        # Use SH constant
        rgb = f_dc * GC.SH.C0 + 0.5

        # Chunk layout
        num_chunks = -(-num_splats // GC.Compression.CHUNK_SIZE)
    """

    SH = SH
    Compression = Compression()
    LogSpace = LogSpace()
    Ordering = ORDERING

    # Aliases
    SH_C0 = SH.C0
    CHUNK_SIZE = Compression.CHUNK_SIZE


# Export all submodules for convenience
__all__ = [
    "COLOR_COLUMNS",
    "Compression",
    "ENVIRONMENT_LOD",
    "GAUSSIAN_COLUMNS",
    "GaussianConstants",
    "LOD_COLUMN",
    "LogSpace",
    "OPACITY_COLUMN",
    "Ordering",
    "POSITION_COLUMNS",
    "ROTATION_COLUMNS",
    "SCALE_COLUMNS",
    "SH_REST_COLUMNS",
    "SphericalHarmonics",
]
