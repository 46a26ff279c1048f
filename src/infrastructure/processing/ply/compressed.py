"""
Packed-chunk ("compressed PLY") codec.

Splats are grouped into chunks of 256. Every chunk stores float32 min/max
bounds for position, log-scale and (optionally) colour; every splat stores
four uint32 words quantized against its chunk's bounds:

- ``packed_position`` / ``packed_scale``: 11/10/11 bits (x in bits 31-21,
  y in bits 20-11, z in bits 10-0)
- ``packed_rotation``: smallest-three quaternion, 2-bit selector of the
  dropped component in bits 31-30 then three 10-bit components
- ``packed_color``: 8 bits each of r, g, b, a (r in the top byte)

Higher-order SH coefficients, when present, live in a third ``sh`` element as
one uint8 per coefficient.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from src.domain.data import PlyContainer, PlySection
from src.domain.services.ordering import sort_morton_order
from src.domain.table import Column, DataTable
from src.infrastructure.processing.gaussian_constants import (
    COLOR_COLUMNS,
    OPACITY_COLUMN,
    POSITION_COLUMNS,
    ROTATION_COLUMNS,
    SCALE_COLUMNS,
    SH_REST_COLUMNS,
    GaussianConstants as GC,
)
from src.infrastructure.processing.ply.utils import rgb2sh, sh2rgb
from src.shared.exceptions import DataFormatError
from src.shared.math import sigmoid


logger = logging.getLogger(__name__)

CHUNK_BOUND_COLUMNS = (
    "min_x", "min_y", "min_z",
    "max_x", "max_y", "max_z",
    "min_scale_x", "min_scale_y", "min_scale_z",
    "max_scale_x", "max_scale_y", "max_scale_z",
)
CHUNK_COLOR_COLUMNS = ("min_r", "min_g", "min_b", "max_r", "max_g", "max_b")
PACKED_COLUMNS = ("packed_position", "packed_rotation", "packed_scale", "packed_color")
SH_BYTE_COUNTS = (9, 24, 45)

_ROTATION_NORM = math.sqrt(2) * 0.5


# ----------------------------------------------------------------------
# Detection
# ----------------------------------------------------------------------


def _has_shape(table: DataTable, names: tuple[str, ...], dtype: np.dtype) -> bool:
    for name in names:
        column = table.get_column(name)
        if column is None or column.data.dtype != dtype:
            return False
    return True


def is_compressed_ply(container: PlyContainer) -> bool:
    """
    Check whether a PLY container uses the packed-chunk layout.

    A mismatch is not an error: callers fall back to reading the container as
    a plain ``vertex`` table.
    """
    if container.num_sections not in (2, 3):
        return False

    chunk = container.get_section("chunk")
    if chunk is None or not _has_shape(chunk.table, CHUNK_BOUND_COLUMNS, np.dtype(np.float32)):
        return False

    num_chunk_columns = chunk.table.num_columns
    if num_chunk_columns == len(CHUNK_BOUND_COLUMNS) + len(CHUNK_COLOR_COLUMNS):
        if not _has_shape(chunk.table, CHUNK_COLOR_COLUMNS, np.dtype(np.float32)):
            return False
    elif num_chunk_columns != len(CHUNK_BOUND_COLUMNS):
        return False

    vertex = container.get_section("vertex")
    if (
        vertex is None
        or vertex.table.num_columns != len(PACKED_COLUMNS)
        or not _has_shape(vertex.table, PACKED_COLUMNS, np.dtype(np.uint32))
    ):
        return False

    if -(-vertex.num_rows // GC.CHUNK_SIZE) != chunk.num_rows:
        return False

    if container.num_sections == 3:
        sh = container.get_section("sh")
        if sh is None:
            return False
        count = sh.table.num_columns
        if count not in SH_BYTE_COUNTS:
            return False
        if not _has_shape(sh.table, SH_REST_COLUMNS[:count], np.dtype(np.uint8)):
            return False
        if sh.num_rows != vertex.num_rows:
            return False

    return True


# ----------------------------------------------------------------------
# Bit helpers
# ----------------------------------------------------------------------


def _unpack_unorm(words: np.ndarray, shift: int, bits: int) -> np.ndarray:
    mask = (1 << bits) - 1
    return ((words >> np.uint32(shift)) & np.uint32(mask)).astype(np.float64) / mask


def _pack_unorm(values: np.ndarray, bits: int) -> np.ndarray:
    limit = (1 << bits) - 1
    t = np.nan_to_num(np.clip(values, 0.0, 1.0), nan=0.0)
    return np.floor(t * limit + 0.5).astype(np.uint32)


def _unpack_111011(words: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    bx, by, bz = GC.Compression.POSITION_BITS
    return (
        _unpack_unorm(words, by + bz, bx),
        _unpack_unorm(words, bz, by),
        _unpack_unorm(words, 0, bz),
    )


def _pack_111011(x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
    bx, by, bz = GC.Compression.POSITION_BITS
    return (
        (_pack_unorm(x, bx) << np.uint32(by + bz))
        | (_pack_unorm(y, by) << np.uint32(bz))
        | _pack_unorm(z, bz)
    )


def _unpack_8888(words: np.ndarray) -> tuple[np.ndarray, ...]:
    bits = GC.Compression.COLOR_BITS
    return tuple(_unpack_unorm(words, shift, bits) for shift in (24, 16, 8, 0))


def _pack_8888(r: np.ndarray, g: np.ndarray, b: np.ndarray, a: np.ndarray) -> np.ndarray:
    bits = GC.Compression.COLOR_BITS
    return (
        (_pack_unorm(r, bits) << np.uint32(24))
        | (_pack_unorm(g, bits) << np.uint32(16))
        | (_pack_unorm(b, bits) << np.uint32(8))
        | _pack_unorm(a, bits)
    )


def _unpack_rotation(words: np.ndarray) -> np.ndarray:
    """Decode smallest-three words to an (N, 4) quaternion array."""
    bits = GC.Compression.ROTATION_BITS
    norm = 1.0 / _ROTATION_NORM
    a = (_unpack_unorm(words, 2 * bits, bits) - 0.5) * norm
    b = (_unpack_unorm(words, bits, bits) - 0.5) * norm
    c = (_unpack_unorm(words, 0, bits) - 0.5) * norm
    m = np.sqrt(np.maximum(0.0, 1.0 - (a * a + b * b + c * c)))
    which = (words >> np.uint32(3 * bits)).astype(np.intp)

    quats = np.empty((words.shape[0], 4), dtype=np.float64)
    rows = np.arange(words.shape[0])
    stored = np.stack([a, b, c], axis=1)
    for dropped in range(4):
        mask = which == dropped
        if not mask.any():
            continue
        others = [k for k in range(4) if k != dropped]
        quats[rows[mask], dropped] = m[mask]
        quats[np.ix_(rows[mask], others)] = stored[mask]
    return quats


def _pack_rotation(quats: np.ndarray) -> np.ndarray:
    """Encode an (N, 4) quaternion array as smallest-three words."""
    bits = GC.Compression.ROTATION_BITS
    length = np.linalg.norm(quats, axis=1, keepdims=True)
    q = np.divide(quats, length, out=np.zeros_like(quats), where=length > 0)
    degenerate = (length[:, 0] == 0) | ~np.isfinite(length[:, 0])
    q[degenerate] = 0.0
    q[degenerate, 0] = 1.0

    largest = np.argmax(np.abs(q), axis=1)
    rows = np.arange(q.shape[0])
    sign = np.where(q[rows, largest] < 0, -1.0, 1.0)
    q *= sign[:, None]

    words = largest.astype(np.uint32) << np.uint32(3 * bits)
    order = np.array([[k for k in range(4) if k != dropped] for dropped in range(4)])
    stored = q[rows[:, None], order[largest]]
    for slot in range(3):
        shift = (2 - slot) * bits
        words |= _pack_unorm(stored[:, slot] * _ROTATION_NORM + 0.5, bits) << np.uint32(shift)
    return words


def _decode_sh_bytes(data: np.ndarray) -> np.ndarray:
    n = np.where(data == 0, 0.0, np.where(data == 255, 1.0, (data.astype(np.float64) + 0.5) / 256))
    return ((n - 0.5) * GC.Compression.SH_RANGE).astype(np.float32)


def _encode_sh_bytes(values: np.ndarray) -> np.ndarray:
    scaled = np.floor((values.astype(np.float64) / GC.Compression.SH_RANGE + 0.5) * 256)
    return np.clip(np.nan_to_num(scaled, nan=0.0), 0, 255).astype(np.uint8)


def _lerp(lo: np.ndarray, hi: np.ndarray, t: np.ndarray) -> np.ndarray:
    return lo * (1.0 - t) + hi * t


# ----------------------------------------------------------------------
# Decode
# ----------------------------------------------------------------------


def decompress_ply(container: PlyContainer) -> DataTable:
    """
    Decode a packed-chunk container into a row-level splat table.

    Parameters
    ----------
    container : PlyContainer
        Container for which :func:`is_compressed_ply` returned True

    Returns
    -------
    DataTable
        float32 columns ``x,y,z,f_dc_0..2,opacity,rot_0..3,scale_0..2`` plus
        ``f_rest_*`` when an ``sh`` element is present
    """
    chunk_table = container.get_section("chunk").table
    vertex_table = container.get_section("vertex").table

    def chunk(name: str) -> np.ndarray:
        return chunk_table.get_column(name).data.astype(np.float64)

    num_splats = vertex_table.num_rows
    ci = np.arange(num_splats) // GC.CHUNK_SIZE

    position, rotation, scale, color = (
        vertex_table.get_column(name).data for name in PACKED_COLUMNS
    )

    px, py, pz = _unpack_111011(position)
    sx, sy, sz = _unpack_111011(scale)
    cr, cg, cb, ca = _unpack_8888(color)
    quats = _unpack_rotation(rotation)

    if chunk_table.has_column("min_r"):
        cr = _lerp(chunk("min_r")[ci], chunk("max_r")[ci], cr)
        cg = _lerp(chunk("min_g")[ci], chunk("max_g")[ci], cg)
        cb = _lerp(chunk("min_b")[ci], chunk("max_b")[ci], cb)

    with np.errstate(divide="ignore", invalid="ignore"):
        opacity = -np.log(1.0 / ca - 1.0)

    values = {
        "x": _lerp(chunk("min_x")[ci], chunk("max_x")[ci], px),
        "y": _lerp(chunk("min_y")[ci], chunk("max_y")[ci], py),
        "z": _lerp(chunk("min_z")[ci], chunk("max_z")[ci], pz),
        "f_dc_0": rgb2sh(cr),
        "f_dc_1": rgb2sh(cg),
        "f_dc_2": rgb2sh(cb),
        "opacity": opacity,
        "rot_0": quats[:, 0],
        "rot_1": quats[:, 1],
        "rot_2": quats[:, 2],
        "rot_3": quats[:, 3],
        "scale_0": _lerp(chunk("min_scale_x")[ci], chunk("max_scale_x")[ci], sx),
        "scale_1": _lerp(chunk("min_scale_y")[ci], chunk("max_scale_y")[ci], sy),
        "scale_2": _lerp(chunk("min_scale_z")[ci], chunk("max_scale_z")[ci], sz),
    }
    result = DataTable(Column(name, data.astype(np.float32)) for name, data in values.items())

    sh = container.get_section("sh")
    if sh is not None:
        for column in sh.table.columns:
            result.add_column(Column(column.name, _decode_sh_bytes(column.data)))

    logger.debug(
        f"Decoded {num_splats} packed splats in {chunk_table.num_rows} chunks"
        + (f" with {sh.table.num_columns} SH coefficients" if sh is not None else "")
    )
    return result


# ----------------------------------------------------------------------
# Encode
# ----------------------------------------------------------------------


def _chunk_bounds(values: np.ndarray, starts: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    finite = np.where(np.isfinite(values), values, 0.0)
    return np.minimum.reduceat(finite, starts), np.maximum.reduceat(finite, starts)


def _normalize(values: np.ndarray, lo: np.ndarray, hi: np.ndarray, ci: np.ndarray) -> np.ndarray:
    span = (hi - lo)[ci]
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(span > 0, (values - lo[ci]) / span, 0.0)


def compress_ply(
    table: DataTable,
    chunk_color_bounds: bool = True,
    morton_order: bool = True,
) -> PlyContainer:
    """
    Encode a splat table into the packed-chunk layout.

    Parameters
    ----------
    table : DataTable
        Table with every splat column (see ``GAUSSIAN_COLUMNS``)
    chunk_color_bounds : bool
        Store per-chunk colour bounds (18 chunk columns instead of 12)
    morton_order : bool
        Reorder splats along a Morton curve first, so chunks are spatially tight

    Returns
    -------
    PlyContainer
        ``chunk``, ``vertex`` and (when SH coefficients exist) ``sh`` sections

    Raises
    ------
    DataFormatError
        If the table lacks splat columns or has an unsupported SH layout
    """
    missing = [
        name
        for name in POSITION_COLUMNS + ROTATION_COLUMNS + SCALE_COLUMNS + COLOR_COLUMNS + (OPACITY_COLUMN,)
        if not table.has_column(name)
    ]
    if missing:
        raise DataFormatError(f"Cannot compress table, missing columns: {', '.join(missing)}")

    num_splats = table.num_rows
    if num_splats == 0:
        raise DataFormatError("Cannot compress an empty table")

    if morton_order:
        order = sort_morton_order(table)
    else:
        order = np.arange(num_splats)

    def column(name: str) -> np.ndarray:
        return table.get_column(name).data[order].astype(np.float64)

    starts = np.arange(0, num_splats, GC.CHUNK_SIZE)
    ci = np.arange(num_splats) // GC.CHUNK_SIZE

    chunk_columns: dict[str, np.ndarray] = {}

    positions = [column(name) for name in POSITION_COLUMNS]
    position_bounds = [_chunk_bounds(v, starts) for v in positions]
    for axis, (lo, _) in zip("xyz", position_bounds):
        chunk_columns[f"min_{axis}"] = lo
    for axis, (_, hi) in zip("xyz", position_bounds):
        chunk_columns[f"max_{axis}"] = hi

    scales = [
        np.clip(column(name), GC.LogSpace.MIN_LOG_SCALE, GC.LogSpace.MAX_LOG_SCALE)
        for name in SCALE_COLUMNS
    ]
    scale_bounds = [_chunk_bounds(v, starts) for v in scales]
    for axis, (lo, _) in zip("xyz", scale_bounds):
        chunk_columns[f"min_scale_{axis}"] = lo
    for axis, (_, hi) in zip("xyz", scale_bounds):
        chunk_columns[f"max_scale_{axis}"] = hi

    colors = [sh2rgb(column(name)) for name in COLOR_COLUMNS]
    if chunk_color_bounds:
        color_bounds = [_chunk_bounds(v, starts) for v in colors]
        for channel, (lo, _) in zip("rgb", color_bounds):
            chunk_columns[f"min_{channel}"] = lo
        for channel, (_, hi) in zip("rgb", color_bounds):
            chunk_columns[f"max_{channel}"] = hi

    # Quantize against the float32 bounds that will be stored
    stored = {name: data.astype(np.float32).astype(np.float64) for name, data in chunk_columns.items()}

    def norm(values: np.ndarray, lo: str, hi: str) -> np.ndarray:
        return _normalize(values, stored[lo], stored[hi], ci)

    packed_position = _pack_111011(
        *(norm(v, f"min_{a}", f"max_{a}") for v, a in zip(positions, "xyz"))
    )
    packed_scale = _pack_111011(
        *(norm(v, f"min_scale_{a}", f"max_scale_{a}") for v, a in zip(scales, "xyz"))
    )
    if chunk_color_bounds:
        rgb = [norm(v, f"min_{c}", f"max_{c}") for v, c in zip(colors, "rgb")]
    else:
        rgb = colors
    alpha = sigmoid(column(OPACITY_COLUMN))
    packed_color = _pack_8888(*rgb, alpha)
    packed_rotation = _pack_rotation(np.stack([column(name) for name in ROTATION_COLUMNS], axis=1))

    sections = [
        PlySection(
            "chunk",
            DataTable(Column(name, data.astype(np.float32)) for name, data in chunk_columns.items()),
        ),
        PlySection(
            "vertex",
            DataTable([
                Column("packed_position", packed_position),
                Column("packed_rotation", packed_rotation),
                Column("packed_scale", packed_scale),
                Column("packed_color", packed_color),
            ]),
        ),
    ]

    sh_count = sum(1 for name in SH_REST_COLUMNS if table.has_column(name))
    if sh_count:
        if sh_count not in SH_BYTE_COUNTS or not all(
            table.has_column(name) for name in SH_REST_COLUMNS[:sh_count]
        ):
            raise DataFormatError(
                "Unsupported SH layout for packed output",
                expected_format="f_rest_0..N-1 with N in 9, 24, 45",
                actual_format=f"{sh_count} f_rest columns",
            )
        sections.append(
            PlySection(
                "sh",
                DataTable(
                    Column(name, _encode_sh_bytes(table.get_column(name).data[order]))
                    for name in SH_REST_COLUMNS[:sh_count]
                ),
            )
        )

    logger.debug(
        f"Encoded {num_splats} splats into {len(starts)} chunks "
        f"(color bounds: {chunk_color_bounds}, SH coefficients: {sh_count})"
    )
    return PlyContainer(sections=sections, comments=["Generated by splat-transform"])
