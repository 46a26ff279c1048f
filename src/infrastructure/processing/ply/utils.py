"""
Colour conversion helpers for PLY splat data.

``f_dc_*`` columns hold band-0 spherical harmonics; these helpers convert
them to and from linear 0..1 colour.
"""

import numpy as np

from src.infrastructure.processing.gaussian_constants import GaussianConstants as GC


SH_C0 = GC.SH_C0  # sqrt(1/(4*pi))


def sh2rgb(sh: np.ndarray | float) -> np.ndarray | float:
    """Convert Spherical Harmonics DC coefficient to RGB.

    Args:
        sh: DC coefficients (any shape)

    Returns:
        Colour in [0, 1] range (not clamped)
    """
    return sh * SH_C0 + 0.5


def rgb2sh(rgb: np.ndarray | float) -> np.ndarray | float:
    """Convert RGB to Spherical Harmonics DC coefficient.

    Args:
        rgb: Colour in [0, 1] range

    Returns:
        DC coefficients
    """
    return (rgb - 0.5) / SH_C0
