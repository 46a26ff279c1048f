"""
Row orderings over splat tables.

Both orderings return index arrays to be fed to
:meth:`DataTable.permute_rows` / :meth:`DataTable.permute_rows_in_place`:

- Morton (Z-order) ordering, which keeps spatially close splats close in
  storage so packed chunks get tight bounds
- visibility ranking, which puts the most visible splats first
"""

from __future__ import annotations

import logging
import math

import numpy as np

from src.domain.constants import OPACITY_COLUMN, ORDERING, POSITION_COLUMNS, SCALE_COLUMNS
from src.domain.table import DataTable
from src.shared.math import sigmoid


logger = logging.getLogger(__name__)

_ELLIPSOID_VOLUME = 4.0 * math.pi / 3.0


def _spread_bits(v: np.ndarray) -> np.ndarray:
    """Spread the low 10 bits of ``v`` so two zero bits follow each one."""
    v = v.astype(np.uint32) & np.uint32(0x3FF)
    v = (v | (v << np.uint32(16))) & np.uint32(0x030000FF)
    v = (v | (v << np.uint32(8))) & np.uint32(0x0300F00F)
    v = (v | (v << np.uint32(4))) & np.uint32(0x030C30C3)
    v = (v | (v << np.uint32(2))) & np.uint32(0x09249249)
    return v


def encode_morton3(x: np.ndarray | int, y: np.ndarray | int, z: np.ndarray | int) -> np.ndarray:
    """
    Interleave three 10-bit grid coordinates into 30-bit Morton codes.

    Bit ``3*i`` of the code is bit ``i`` of x, bit ``3*i+1`` is bit ``i`` of y
    and bit ``3*i+2`` is bit ``i`` of z.
    """
    x, y, z = (np.asarray(v) for v in (x, y, z))
    return _spread_bits(x) | (_spread_bits(y) << np.uint32(1)) | (_spread_bits(z) << np.uint32(2))


def _morton_sort(x: np.ndarray, y: np.ndarray, z: np.ndarray, indices: np.ndarray) -> np.ndarray:
    px, py, pz = x[indices], y[indices], z[indices]
    lo = np.array([px.min(), py.min(), pz.min()])
    extent = np.array([px.max(), py.max(), pz.max()]) - lo
    if not np.any(extent > 0):
        return indices

    cells = 1 << ORDERING.MORTON_BITS
    grid = []
    for values, origin, length in zip((px, py, pz), lo, extent):
        if length > 0:
            grid.append(np.minimum(cells - 1, np.floor(cells * (values - origin) / length)))
        else:
            grid.append(np.zeros_like(values))
    codes = encode_morton3(*(g.astype(np.uint32) for g in grid))

    order = np.argsort(codes, kind="stable")
    indices = indices[order]
    codes = codes[order]

    # Split runs of identical codes that are too long to share a chunk well
    boundaries = np.flatnonzero(np.diff(codes)) + 1
    starts = np.concatenate(([0], boundaries))
    ends = np.concatenate((boundaries, [codes.shape[0]]))
    for start, end in zip(starts, ends):
        if end - start > ORDERING.MORTON_BUCKET_SIZE:
            indices[start:end] = _morton_sort(x, y, z, indices[start:end])

    return indices


def sort_morton_order(table: DataTable, indices: np.ndarray | None = None) -> np.ndarray:
    """
    Order rows along a Morton curve over the positions' bounding box.

    Parameters
    ----------
    table : DataTable
        Table with ``x``, ``y`` and ``z`` columns
    indices : np.ndarray | None
        Subset of rows to order (default: every row)

    Returns
    -------
    np.ndarray
        ``indices`` reordered by ascending Morton code; ties keep their order.
        A caller-supplied index array is also rewritten in place.
    """
    target = indices
    if indices is None:
        indices = np.arange(table.num_rows)
    indices = np.asarray(indices, dtype=np.intp).copy()
    if indices.shape[0] == 0:
        return indices

    x, y, z = (
        np.nan_to_num(data.astype(np.float64), nan=0.0, posinf=0.0, neginf=0.0)
        for data in table.row_view(POSITION_COLUMNS)
    )
    result = _morton_sort(x, y, z, indices)
    if isinstance(target, np.ndarray):
        target[:] = result
    logger.debug(f"Morton-ordered {result.shape[0]} rows")
    return result


def compute_visibility(table: DataTable) -> np.ndarray:
    """
    Per-row visibility score: ``sigmoid(opacity) * ellipsoid volume``.

    The volume is ``4/3 * pi * exp(scale_0) * exp(scale_1) * exp(scale_2)``.
    """
    opacity, s0, s1, s2 = (
        data.astype(np.float64) for data in table.row_view((OPACITY_COLUMN,) + SCALE_COLUMNS)
    )
    with np.errstate(over="ignore"):
        volume = np.exp(s0 + s1 + s2) * _ELLIPSOID_VOLUME
    return sigmoid(opacity) * volume


def sort_by_visibility(table: DataTable, indices: np.ndarray | None = None) -> np.ndarray:
    """
    Order rows by descending visibility score.

    Equal scores keep their original relative order; NaN scores sort last.
    """
    if indices is None:
        indices = np.arange(table.num_rows)
    indices = np.asarray(indices, dtype=np.intp)
    scores = compute_visibility(table)[indices]
    scores = np.where(np.isnan(scores), -np.inf, scores)
    return indices[np.argsort(-scores, kind="stable")]
