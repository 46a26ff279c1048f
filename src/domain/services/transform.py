"""
Rigid transforms of splat tables.

Positions, orientations, log-scales and SH coefficients are updated together
so the splats keep their appearance under the transform. All updates happen
in place on the table's column buffers.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from src.domain.constants import (
    POSITION_COLUMNS,
    ROTATION_COLUMNS,
    SCALE_COLUMNS,
    SH,
    SH_REST_COLUMNS,
)
from src.domain.services.sh_rotation import RotateSH
from src.domain.table import DataTable
from src.shared.math import quat_is_identity, quat_multiply, quat_normalize, quat_to_rotation_matrix

logger = logging.getLogger(__name__)

IDENTITY_QUAT = np.array([1.0, 0.0, 0.0, 0.0])


def _columns(table: DataTable, names: Sequence[str]) -> list[np.ndarray] | None:
    """Return the named buffers, or None when any of them is missing."""
    if not all(table.has_column(name) for name in names):
        return None
    return [table.get_column(name).data for name in names]


def sh_coeffs_per_channel(table: DataTable) -> int:
    """Number of SH coefficients per colour channel (0, 3, 8 or 15)."""
    count = 0
    for name in SH_REST_COLUMNS:
        if not table.has_column(name):
            break
        count += 1
    per_channel = count // 3
    return per_channel if per_channel in SH.BAND_COEFFS else 0


class TransformService:
    """
    Applies ``p' = R * p * s + t`` to every splat in a table.

    Rotation is a wxyz quaternion. Orientations are pre-multiplied by it, log
    scales are shifted by ``ln(s)`` and SH coefficients are re-projected
    with :class:`RotateSH` when the rotation is not the identity.
    """

    @staticmethod
    def transform(
        table: DataTable,
        translation: Sequence[float] = (0.0, 0.0, 0.0),
        rotation: Sequence[float] = IDENTITY_QUAT,
        scale: float = 1.0,
    ) -> None:
        """
        Transform ``table`` in place.

        Columns absent from the table are skipped, so partial tables (e.g.
        positions only) can be transformed too.

        :param table: Table to modify
        :param translation: Offset added after rotation and scaling
        :param rotation: Unit quaternion (w, x, y, z)
        :param scale: Uniform scale factor (> 0)
        """
        t = np.asarray(translation, dtype=np.float64)
        q = quat_normalize(np.asarray(rotation, dtype=np.float64))
        rotate = not quat_is_identity(q)
        matrix = quat_to_rotation_matrix(q)

        positions = _columns(table, POSITION_COLUMNS)
        if positions is not None:
            p = np.stack([c.astype(np.float64) for c in positions], axis=1)
            if rotate:
                p = p @ matrix.T
            p = p * scale + t
            for axis, column in enumerate(positions):
                column[:] = p[:, axis]

        rotations = _columns(table, ROTATION_COLUMNS)
        if rotations is not None and rotate:
            quats = np.stack([c.astype(np.float64) for c in rotations], axis=1)
            quats = quat_multiply(q, quats)
            for k, column in enumerate(rotations):
                column[:] = quats[:, k]

        scales = _columns(table, SCALE_COLUMNS)
        if scales is not None and scale != 1.0:
            offset = math.log(scale)
            for column in scales:
                column += offset

        per_channel = sh_coeffs_per_channel(table)
        if rotate and per_channel > 0:
            TransformService.rotate_sh(table, RotateSH(matrix), per_channel)

        logger.debug(
            f"Transformed {table.num_rows} rows "
            f"(t={t.tolist()}, q={np.round(q, 6).tolist()}, s={scale})"
        )

    @staticmethod
    def rotate_sh(table: DataTable, rotator: RotateSH, per_channel: int) -> None:
        """Rotate the ``f_rest_*`` coefficients of each colour channel in place."""
        for channel in range(3):
            names = SH_REST_COLUMNS[channel * per_channel:(channel + 1) * per_channel]
            buffers = [table.get_column(name).data for name in names]
            coeffs = np.stack([b.astype(np.float64) for b in buffers], axis=1)
            rotated = rotator.apply_batch(coeffs)
            for k, buffer in enumerate(buffers):
                buffer[:] = rotated[:, k]


transform = TransformService.transform
