"""Mathematical utilities shared by the transform and codec layers.

All quaternions use wxyz format (w, x, y, z), matching the ``rot_0..rot_3``
column order of Gaussian splat PLY files.
"""

from __future__ import annotations

import numpy as np


def sigmoid(x: np.ndarray | float) -> np.ndarray | float:
    """Logistic function, safe for +/-inf inputs."""
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


def logit(p: np.ndarray | float) -> np.ndarray | float:
    """Inverse of :func:`sigmoid`; 0 and 1 map to -inf and +inf."""
    with np.errstate(divide="ignore"):
        return np.log(p) - np.log1p(-p)


def quat_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """
    Multiply quaternions (Hamilton product).

    Both operands may be a single quaternion ``(4,)`` or a batch ``(N, 4)``;
    numpy broadcasting applies.

    Parameters
    ----------
    q1 : np.ndarray
        First quaternion(s) (wxyz format)
    q2 : np.ndarray
        Second quaternion(s) (wxyz format)

    Returns
    -------
    np.ndarray
        Product quaternion(s) q1 * q2 (wxyz format)
    """
    q1 = np.asarray(q1, dtype=np.float64)
    q2 = np.asarray(q2, dtype=np.float64)
    w1, x1, y1, z1 = np.moveaxis(q1, -1, 0)
    w2, x2, y2, z2 = np.moveaxis(q2, -1, 0)

    return np.stack(
        [
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        ],
        axis=-1,
    )


def quat_normalize(q: np.ndarray) -> np.ndarray:
    """
    Normalize quaternion to unit length.

    Parameters
    ----------
    q : np.ndarray
        Quaternion (wxyz format)

    Returns
    -------
    np.ndarray
        Normalized quaternion (wxyz format); identity for near-zero input
    """
    q = np.asarray(q, dtype=np.float64)
    norm = np.linalg.norm(q)
    if norm < 1e-6:
        return np.array([1.0, 0.0, 0.0, 0.0])
    return q / norm


def quat_is_identity(q: np.ndarray, atol: float = 1e-12) -> bool:
    """True when ``q`` represents no rotation (either sign of w)."""
    q = quat_normalize(q)
    return bool(abs(abs(q[0]) - 1.0) <= atol)


def quat_to_rotation_matrix(q: np.ndarray) -> np.ndarray:
    """
    Convert quaternion to 3x3 rotation matrix.

    Parameters
    ----------
    q : np.ndarray
        Quaternion (wxyz format)

    Returns
    -------
    np.ndarray
        3x3 row-major rotation matrix
    """
    q = quat_normalize(q)
    w, x, y, z = q

    # Precompute products
    xx = x * x
    yy = y * y
    zz = z * z
    xy = x * y
    xz = x * z
    yz = y * z
    wx = w * x
    wy = w * y
    wz = w * z

    return np.array(
        [
            [1.0 - 2.0 * (yy + zz), 2.0 * (xy - wz), 2.0 * (xz + wy)],
            [2.0 * (xy + wz), 1.0 - 2.0 * (xx + zz), 2.0 * (yz - wx)],
            [2.0 * (xz - wy), 2.0 * (yz + wx), 1.0 - 2.0 * (xx + yy)],
        ]
    )


def quat_from_euler_deg(ex: float, ey: float, ez: float) -> np.ndarray:
    """
    Create quaternion from Euler angles in degrees.

    Rotation order: X first, then Y, then Z (extrinsic), i.e. ``R = Rz @ Ry @ Rx``.

    Parameters
    ----------
    ex, ey, ez : float
        Rotation about the X, Y and Z axes in degrees

    Returns
    -------
    np.ndarray
        Quaternion (wxyz format)
    """
    hx, hy, hz = np.radians([ex, ey, ez]) * 0.5

    sx, cx = np.sin(hx), np.cos(hx)
    sy, cy = np.sin(hy), np.cos(hy)
    sz, cz = np.sin(hz), np.cos(hz)

    return np.array(
        [
            cx * cy * cz + sx * sy * sz,
            sx * cy * cz - cx * sy * sz,
            cx * sy * cz + sx * cy * sz,
            cx * cy * sz - sx * sy * cz,
        ]
    )
