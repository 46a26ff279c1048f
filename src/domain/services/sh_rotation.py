"""
Rotation of spherical-harmonic coefficients, bands 1 to 3.

The per-band rotation matrices are derived once from a 3x3 rotation matrix
(after Andrew Willmott's sh-lib) and can then be applied to any number of
coefficient vectors. Band 0 is rotation invariant and is never touched.

Coefficient vectors are laid out per colour channel: indices 0-2 hold band 1,
3-7 band 2 and 8-14 band 3.
"""

from __future__ import annotations

import logging
import math

import numpy as np


logger = logging.getLogger(__name__)

_K03_02 = math.sqrt(3 / 2)
_K01_03 = math.sqrt(1 / 3)
_K02_03 = math.sqrt(2 / 3)
_K04_03 = math.sqrt(4 / 3)
_K01_04 = math.sqrt(1 / 4)
_K03_04 = math.sqrt(3 / 4)
_K01_05 = math.sqrt(1 / 5)
_K03_05 = math.sqrt(3 / 5)
_K06_05 = math.sqrt(6 / 5)
_K08_05 = math.sqrt(8 / 5)
_K09_05 = math.sqrt(9 / 5)
_K01_06 = math.sqrt(1 / 6)
_K05_06 = math.sqrt(5 / 6)
_K03_08 = math.sqrt(3 / 8)
_K05_08 = math.sqrt(5 / 8)
_K09_08 = math.sqrt(9 / 8)
_K05_09 = math.sqrt(5 / 9)
_K08_09 = math.sqrt(8 / 9)
_K01_10 = math.sqrt(1 / 10)
_K03_10 = math.sqrt(3 / 10)
_K01_12 = math.sqrt(1 / 12)
_K04_15 = math.sqrt(4 / 15)
_K01_16 = math.sqrt(1 / 16)
_K15_16 = math.sqrt(15 / 16)
_K01_18 = math.sqrt(1 / 18)
_K01_60 = math.sqrt(1 / 60)

_BAND_SLICES = ((0, 3), (3, 8), (8, 15))


def _band1(rot: np.ndarray) -> np.ndarray:
    """Band-1 matrix for a row-major rotation matrix."""
    return np.array([
        [rot[1, 1], -rot[1, 2], rot[1, 0]],
        [-rot[2, 1], rot[2, 2], -rot[2, 0]],
        [rot[0, 1], -rot[0, 2], rot[0, 0]],
    ])


def _band2(a: np.ndarray) -> np.ndarray:
    """Band-2 matrix from the band-1 matrix ``a``."""
    return np.array([
        [
            _K01_04 * ((a[2, 2] * a[0, 0] + a[2, 0] * a[0, 2]) + (a[0, 2] * a[2, 0] + a[0, 0] * a[2, 2])),
            (a[2, 1] * a[0, 0] + a[0, 1] * a[2, 0]),
            _K03_04 * (a[2, 1] * a[0, 1] + a[0, 1] * a[2, 1]),
            (a[2, 1] * a[0, 2] + a[0, 1] * a[2, 2]),
            _K01_04 * ((a[2, 2] * a[0, 2] - a[2, 0] * a[0, 0]) + (a[0, 2] * a[2, 2] - a[0, 0] * a[2, 0])),
        ],
        [
            _K01_04 * ((a[1, 2] * a[0, 0] + a[1, 0] * a[0, 2]) + (a[0, 2] * a[1, 0] + a[0, 0] * a[1, 2])),
            a[1, 1] * a[0, 0] + a[0, 1] * a[1, 0],
            _K03_04 * (a[1, 1] * a[0, 1] + a[0, 1] * a[1, 1]),
            a[1, 1] * a[0, 2] + a[0, 1] * a[1, 2],
            _K01_04 * ((a[1, 2] * a[0, 2] - a[1, 0] * a[0, 0]) + (a[0, 2] * a[1, 2] - a[0, 0] * a[1, 0])),
        ],
        [
            _K01_03 * (a[1, 2] * a[1, 0] + a[1, 0] * a[1, 2]) - _K01_12 * ((a[2, 2] * a[2, 0] + a[2, 0] * a[2, 2]) + (a[0, 2] * a[0, 0] + a[0, 0] * a[0, 2])),
            _K04_03 * a[1, 1] * a[1, 0] - _K01_03 * (a[2, 1] * a[2, 0] + a[0, 1] * a[0, 0]),
            a[1, 1] * a[1, 1] - _K01_04 * (a[2, 1] * a[2, 1] + a[0, 1] * a[0, 1]),
            _K04_03 * a[1, 1] * a[1, 2] - _K01_03 * (a[2, 1] * a[2, 2] + a[0, 1] * a[0, 2]),
            _K01_03 * (a[1, 2] * a[1, 2] - a[1, 0] * a[1, 0]) - _K01_12 * ((a[2, 2] * a[2, 2] - a[2, 0] * a[2, 0]) + (a[0, 2] * a[0, 2] - a[0, 0] * a[0, 0])),
        ],
        [
            _K01_04 * ((a[1, 2] * a[2, 0] + a[1, 0] * a[2, 2]) + (a[2, 2] * a[1, 0] + a[2, 0] * a[1, 2])),
            a[1, 1] * a[2, 0] + a[2, 1] * a[1, 0],
            _K03_04 * (a[1, 1] * a[2, 1] + a[2, 1] * a[1, 1]),
            a[1, 1] * a[2, 2] + a[2, 1] * a[1, 2],
            _K01_04 * ((a[1, 2] * a[2, 2] - a[1, 0] * a[2, 0]) + (a[2, 2] * a[1, 2] - a[2, 0] * a[1, 0])),
        ],
        [
            _K01_04 * ((a[2, 2] * a[2, 0] + a[2, 0] * a[2, 2]) - (a[0, 2] * a[0, 0] + a[0, 0] * a[0, 2])),
            (a[2, 1] * a[2, 0] - a[0, 1] * a[0, 0]),
            _K03_04 * (a[2, 1] * a[2, 1] - a[0, 1] * a[0, 1]),
            (a[2, 1] * a[2, 2] - a[0, 1] * a[0, 2]),
            _K01_04 * ((a[2, 2] * a[2, 2] - a[2, 0] * a[2, 0]) - (a[0, 2] * a[0, 2] - a[0, 0] * a[0, 0])),
        ],
    ])


def _band3(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Band-3 matrix from the band-1 matrix ``a`` and band-2 matrix ``b``."""
    return np.array([
        [
            _K01_04 * ((a[2, 2] * b[0, 0] + a[2, 0] * b[0, 4]) + (a[0, 2] * b[4, 0] + a[0, 0] * b[4, 4])),
            _K03_02 * (a[2, 1] * b[0, 0] + a[0, 1] * b[4, 0]),
            _K15_16 * (a[2, 1] * b[0, 1] + a[0, 1] * b[4, 1]),
            _K05_06 * (a[2, 1] * b[0, 2] + a[0, 1] * b[4, 2]),
            _K15_16 * (a[2, 1] * b[0, 3] + a[0, 1] * b[4, 3]),
            _K03_02 * (a[2, 1] * b[0, 4] + a[0, 1] * b[4, 4]),
            _K01_04 * ((a[2, 2] * b[0, 4] - a[2, 0] * b[0, 0]) + (a[0, 2] * b[4, 4] - a[0, 0] * b[4, 0])),
        ],
        [
            _K01_06 * (a[1, 2] * b[0, 0] + a[1, 0] * b[0, 4]) + _K01_06 * ((a[2, 2] * b[1, 0] + a[2, 0] * b[1, 4]) + (a[0, 2] * b[3, 0] + a[0, 0] * b[3, 4])),
            a[1, 1] * b[0, 0] + (a[2, 1] * b[1, 0] + a[0, 1] * b[3, 0]),
            _K05_08 * a[1, 1] * b[0, 1] + _K05_08 * (a[2, 1] * b[1, 1] + a[0, 1] * b[3, 1]),
            _K05_09 * a[1, 1] * b[0, 2] + _K05_09 * (a[2, 1] * b[1, 2] + a[0, 1] * b[3, 2]),
            _K05_08 * a[1, 1] * b[0, 3] + _K05_08 * (a[2, 1] * b[1, 3] + a[0, 1] * b[3, 3]),
            a[1, 1] * b[0, 4] + (a[2, 1] * b[1, 4] + a[0, 1] * b[3, 4]),
            _K01_06 * (a[1, 2] * b[0, 4] - a[1, 0] * b[0, 0]) + _K01_06 * ((a[2, 2] * b[1, 4] - a[2, 0] * b[1, 0]) + (a[0, 2] * b[3, 4] - a[0, 0] * b[3, 0])),
        ],
        [
            _K04_15 * (a[1, 2] * b[1, 0] + a[1, 0] * b[1, 4]) + _K01_05 * (a[0, 2] * b[2, 0] + a[0, 0] * b[2, 4]) - _K01_60 * ((a[2, 2] * b[0, 0] + a[2, 0] * b[0, 4]) - (a[0, 2] * b[4, 0] + a[0, 0] * b[4, 4])),
            _K08_05 * a[1, 1] * b[1, 0] + _K06_05 * a[0, 1] * b[2, 0] - _K01_10 * (a[2, 1] * b[0, 0] - a[0, 1] * b[4, 0]),
            a[1, 1] * b[1, 1] + _K03_04 * a[0, 1] * b[2, 1] - _K01_16 * (a[2, 1] * b[0, 1] - a[0, 1] * b[4, 1]),
            _K08_09 * a[1, 1] * b[1, 2] + _K02_03 * a[0, 1] * b[2, 2] - _K01_18 * (a[2, 1] * b[0, 2] - a[0, 1] * b[4, 2]),
            a[1, 1] * b[1, 3] + _K03_04 * a[0, 1] * b[2, 3] - _K01_16 * (a[2, 1] * b[0, 3] - a[0, 1] * b[4, 3]),
            _K08_05 * a[1, 1] * b[1, 4] + _K06_05 * a[0, 1] * b[2, 4] - _K01_10 * (a[2, 1] * b[0, 4] - a[0, 1] * b[4, 4]),
            _K04_15 * (a[1, 2] * b[1, 4] - a[1, 0] * b[1, 0]) + _K01_05 * (a[0, 2] * b[2, 4] - a[0, 0] * b[2, 0]) - _K01_60 * ((a[2, 2] * b[0, 4] - a[2, 0] * b[0, 0]) - (a[0, 2] * b[4, 4] - a[0, 0] * b[4, 0])),
        ],
        [
            _K03_10 * (a[1, 2] * b[2, 0] + a[1, 0] * b[2, 4]) - _K01_10 * ((a[2, 2] * b[3, 0] + a[2, 0] * b[3, 4]) + (a[0, 2] * b[1, 0] + a[0, 0] * b[1, 4])),
            _K09_05 * a[1, 1] * b[2, 0] - _K03_05 * (a[2, 1] * b[3, 0] + a[0, 1] * b[1, 0]),
            _K09_08 * a[1, 1] * b[2, 1] - _K03_08 * (a[2, 1] * b[3, 1] + a[0, 1] * b[1, 1]),
            a[1, 1] * b[2, 2] - _K01_03 * (a[2, 1] * b[3, 2] + a[0, 1] * b[1, 2]),
            _K09_08 * a[1, 1] * b[2, 3] - _K03_08 * (a[2, 1] * b[3, 3] + a[0, 1] * b[1, 3]),
            _K09_05 * a[1, 1] * b[2, 4] - _K03_05 * (a[2, 1] * b[3, 4] + a[0, 1] * b[1, 4]),
            _K03_10 * (a[1, 2] * b[2, 4] - a[1, 0] * b[2, 0]) - _K01_10 * ((a[2, 2] * b[3, 4] - a[2, 0] * b[3, 0]) + (a[0, 2] * b[1, 4] - a[0, 0] * b[1, 0])),
        ],
        [
            _K04_15 * (a[1, 2] * b[3, 0] + a[1, 0] * b[3, 4]) + _K01_05 * (a[2, 2] * b[2, 0] + a[2, 0] * b[2, 4]) - _K01_60 * ((a[2, 2] * b[4, 0] + a[2, 0] * b[4, 4]) + (a[0, 2] * b[0, 0] + a[0, 0] * b[0, 4])),
            _K08_05 * a[1, 1] * b[3, 0] + _K06_05 * a[2, 1] * b[2, 0] - _K01_10 * (a[2, 1] * b[4, 0] + a[0, 1] * b[0, 0]),
            a[1, 1] * b[3, 1] + _K03_04 * a[2, 1] * b[2, 1] - _K01_16 * (a[2, 1] * b[4, 1] + a[0, 1] * b[0, 1]),
            _K08_09 * a[1, 1] * b[3, 2] + _K02_03 * a[2, 1] * b[2, 2] - _K01_18 * (a[2, 1] * b[4, 2] + a[0, 1] * b[0, 2]),
            a[1, 1] * b[3, 3] + _K03_04 * a[2, 1] * b[2, 3] - _K01_16 * (a[2, 1] * b[4, 3] + a[0, 1] * b[0, 3]),
            _K08_05 * a[1, 1] * b[3, 4] + _K06_05 * a[2, 1] * b[2, 4] - _K01_10 * (a[2, 1] * b[4, 4] + a[0, 1] * b[0, 4]),
            _K04_15 * (a[1, 2] * b[3, 4] - a[1, 0] * b[3, 0]) + _K01_05 * (a[2, 2] * b[2, 4] - a[2, 0] * b[2, 0]) - _K01_60 * ((a[2, 2] * b[4, 4] - a[2, 0] * b[4, 0]) + (a[0, 2] * b[0, 4] - a[0, 0] * b[0, 0])),
        ],
        [
            _K01_06 * (a[1, 2] * b[4, 0] + a[1, 0] * b[4, 4]) + _K01_06 * ((a[2, 2] * b[3, 0] + a[2, 0] * b[3, 4]) - (a[0, 2] * b[1, 0] + a[0, 0] * b[1, 4])),
            a[1, 1] * b[4, 0] + (a[2, 1] * b[3, 0] - a[0, 1] * b[1, 0]),
            _K05_08 * a[1, 1] * b[4, 1] + _K05_08 * (a[2, 1] * b[3, 1] - a[0, 1] * b[1, 1]),
            _K05_09 * a[1, 1] * b[4, 2] + _K05_09 * (a[2, 1] * b[3, 2] - a[0, 1] * b[1, 2]),
            _K05_08 * a[1, 1] * b[4, 3] + _K05_08 * (a[2, 1] * b[3, 3] - a[0, 1] * b[1, 3]),
            a[1, 1] * b[4, 4] + (a[2, 1] * b[3, 4] - a[0, 1] * b[1, 4]),
            _K01_06 * (a[1, 2] * b[4, 4] - a[1, 0] * b[4, 0]) + _K01_06 * ((a[2, 2] * b[3, 4] - a[2, 0] * b[3, 0]) - (a[0, 2] * b[1, 4] - a[0, 0] * b[1, 0])),
        ],
        [
            _K01_04 * ((a[2, 2] * b[4, 0] + a[2, 0] * b[4, 4]) - (a[0, 2] * b[0, 0] + a[0, 0] * b[0, 4])),
            _K03_02 * (a[2, 1] * b[4, 0] - a[0, 1] * b[0, 0]),
            _K15_16 * (a[2, 1] * b[4, 1] - a[0, 1] * b[0, 1]),
            _K05_06 * (a[2, 1] * b[4, 2] - a[0, 1] * b[0, 2]),
            _K15_16 * (a[2, 1] * b[4, 3] - a[0, 1] * b[0, 3]),
            _K03_02 * (a[2, 1] * b[4, 4] - a[0, 1] * b[0, 4]),
            _K01_04 * ((a[2, 2] * b[4, 4] - a[2, 0] * b[4, 0]) - (a[0, 2] * b[0, 4] - a[0, 0] * b[0, 0])),
        ],
    ])


class RotateSH:
    """
    Rotates SH coefficient vectors by a fixed rotation.

    Parameters
    ----------
    matrix : array-like
        3x3 row-major rotation matrix (the one applied to positions)

    Attributes
    ----------
    sh1, sh2, sh3 : np.ndarray
        3x3, 5x5 and 7x7 rotation matrices for bands 1, 2 and 3
    """

    def __init__(self, matrix: np.ndarray):
        rot = np.asarray(matrix, dtype=np.float64)
        if rot.shape != (3, 3):
            raise ValueError(f"Rotation matrix must be 3x3, got shape {rot.shape}")

        self.sh1 = _band1(rot)
        self.sh2 = _band2(self.sh1)
        self.sh3 = _band3(self.sh1, self.sh2)

    @property
    def bands(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self.sh1, self.sh2, self.sh3

    def apply(self, result: np.ndarray, src: np.ndarray | None = None) -> None:
        """
        Rotate one channel's coefficients.

        Writes into ``result``. When ``src`` is omitted (or is ``result``)
        the rotation happens in place. Only the bands that fit in
        ``len(result)`` are rotated: fewer than 3 entries is a no-op, 3 to 7
        rotates band 1, 8 to 14 bands 1-2, and 15 or more bands 1-3.
        """
        if src is None or src is result or np.shares_memory(src, result):
            src = np.array(result, dtype=np.float64)
        else:
            src = np.asarray(src, dtype=np.float64)

        for matrix, (start, end) in zip(self.bands, _BAND_SLICES):
            if len(result) < end:
                return
            result[start:end] = matrix @ src[start:end]

    def apply_batch(self, coeffs: np.ndarray) -> np.ndarray:
        """
        Rotate many coefficient vectors at once.

        Parameters
        ----------
        coeffs : np.ndarray
            ``(N, K)`` array, one row per splat and channel

        Returns
        -------
        np.ndarray
            New ``(N, K)`` array; band truncation follows :meth:`apply`
        """
        src = np.asarray(coeffs, dtype=np.float64)
        out = src.copy()
        for matrix, (start, end) in zip(self.bands, _BAND_SLICES):
            if src.shape[1] < end:
                break
            out[:, start:end] = src[:, start:end] @ matrix.T
        return out
