"""
Splat data model constants: column names, SH layout and ordering parameters.

Storage-format constants (chunk layout, bit widths) live in
:mod:`src.infrastructure.processing.gaussian_constants`, which re-exports
everything defined here.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SphericalHarmonics:
    """Constants related to Spherical Harmonics color representation."""

    C0: float = 0.28209479177387814
    """SH normalization constant: sqrt(1/(4*pi))"""

    BAND_COEFFS: tuple[int, int, int, int] = (0, 3, 8, 15)
    """Coefficients per colour channel for 0, 1, 2 and 3 bands"""

    MAX_REST_COEFFS: int = 45
    """Number of f_rest columns for a full band-3 splat (3 channels x 15)"""


@dataclass(frozen=True)
class Ordering:
    """Constants for spatial reordering."""

    MORTON_BITS: int = 10
    """Grid resolution per axis used for Morton codes (1024 cells)"""

    MORTON_BUCKET_SIZE: int = 256
    """Runs of equal Morton codes longer than this are re-sorted recursively"""


SH = SphericalHarmonics()
ORDERING = Ordering()


# Row-level column names shared by every component
POSITION_COLUMNS = ("x", "y", "z")
ROTATION_COLUMNS = ("rot_0", "rot_1", "rot_2", "rot_3")
SCALE_COLUMNS = ("scale_0", "scale_1", "scale_2")
COLOR_COLUMNS = ("f_dc_0", "f_dc_1", "f_dc_2")
OPACITY_COLUMN = "opacity"
LOD_COLUMN = "lod"
SH_REST_COLUMNS = tuple(f"f_rest_{i}" for i in range(SH.MAX_REST_COEFFS))

GAUSSIAN_COLUMNS = (
    POSITION_COLUMNS + ROTATION_COLUMNS + SCALE_COLUMNS + COLOR_COLUMNS + (OPACITY_COLUMN,)
)

ENVIRONMENT_LOD = -1
"""Reserved lod value marking environment/background splats"""
