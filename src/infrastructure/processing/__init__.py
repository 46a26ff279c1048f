"""Processing helpers and constants for Gaussian data."""

from .gaussian_constants import GaussianConstants

__all__ = [
    "GaussianConstants",
]

