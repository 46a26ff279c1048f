"""Tests for the packed-chunk (compressed PLY) codec."""

import math

import numpy as np
import pytest

from src.domain.data import PlyContainer, PlySection
from src.domain.table import Column, DataTable
from src.infrastructure.processing.gaussian_constants import GaussianConstants as GC
from src.infrastructure.processing.ply import (
    compress_ply,
    decompress_ply,
    is_compressed_ply,
    sh2rgb,
)
from src.infrastructure.processing.ply.compressed import (
    CHUNK_BOUND_COLUMNS,
    CHUNK_COLOR_COLUMNS,
    PACKED_COLUMNS,
)
from src.shared.exceptions import DataFormatError
from src.shared.math import sigmoid


def _chunk_table(bounds, color_bounds=True, rows=1):
    columns = [Column(name, np.full(rows, bounds[name], dtype=np.float32)) for name in CHUNK_BOUND_COLUMNS]
    if color_bounds:
        columns += [Column(name, np.full(rows, bounds[name], dtype=np.float32)) for name in CHUNK_COLOR_COLUMNS]
    return DataTable(columns)


def _single_splat_container():
    bounds = {
        "min_x": 0.0, "min_y": 0.0, "min_z": 0.0,
        "max_x": 2.0, "max_y": 4.0, "max_z": 8.0,
        "min_scale_x": -1.0, "min_scale_y": -1.0, "min_scale_z": -1.0,
        "max_scale_x": 1.0, "max_scale_y": 1.0, "max_scale_z": 1.0,
        "min_r": 0.0, "min_g": 0.0, "min_b": 0.0,
        "max_r": 1.0, "max_g": 1.0, "max_b": 1.0,
    }
    words = {
        "packed_position": (2047 << 21) | (0 << 11) | 1023,
        "packed_rotation": (0 << 30) | (511 << 20) | (511 << 10) | 511,
        "packed_scale": (2047 << 21) | (1023 << 11) | 0,
        "packed_color": (255 << 24) | (0 << 16) | (51 << 8) | 128,
    }
    vertex = DataTable(Column(name, np.array([words[name]], dtype=np.uint32)) for name in PACKED_COLUMNS)
    sh_bytes = [0, 255, 128, 64, 1, 254, 100, 200, 127]
    sh = DataTable(Column(f"f_rest_{i}", np.array([b], dtype=np.uint8)) for i, b in enumerate(sh_bytes))
    return PlyContainer(sections=[
        PlySection("chunk", _chunk_table(bounds)),
        PlySection("vertex", vertex),
        PlySection("sh", sh),
    ])


def _packed(container, name):
    return container.get_section("vertex").table.get_column(name).data


class TestDetection:
    """is_compressed_ply."""

    def test_detects_encoder_output(self, splat_table):
        """Encoder output is recognised with and without color bounds."""
        assert is_compressed_ply(compress_ply(splat_table))
        assert is_compressed_ply(compress_ply(splat_table, chunk_color_bounds=False))

    def test_detects_hand_built_container(self):
        assert is_compressed_ply(_single_splat_container())

    def test_plain_vertex_table(self, splat_table):
        """A plain vertex table is not packed data."""
        container = PlyContainer(sections=[PlySection("vertex", splat_table)])
        assert not is_compressed_ply(container)

    def test_extra_vertex_property(self):
        """The vertex section must hold exactly the four packed words."""
        container = _single_splat_container()
        container.get_section("vertex").table.add_column(Column("extra", np.zeros(1, dtype=np.uint32)))
        assert not is_compressed_ply(container)

    def test_wrong_vertex_type(self):
        """Packed words must be uint32."""
        container = _single_splat_container()
        vertex = container.get_section("vertex").table
        vertex.remove_column("packed_color")
        vertex.add_column(Column("packed_color", np.zeros(1, dtype=np.float32)))
        assert not is_compressed_ply(container)

    def test_chunk_count_mismatch(self, splat_table):
        """The chunk count must match the vertex count."""
        container = compress_ply(splat_table)
        chunk = container.get_section("chunk")
        container.sections[0] = PlySection("chunk", chunk.table.permute_rows([0]))
        assert not is_compressed_ply(container)

    def test_bad_sh_count(self):
        """The sh section must hold 9, 24 or 45 bytes per splat."""
        container = _single_splat_container()
        container.get_section("sh").table.remove_column("f_rest_8")
        assert not is_compressed_ply(container)

    def test_unexpected_third_section(self):
        """A third section other than sh is not accepted."""
        container = _single_splat_container()
        container.sections[2] = PlySection("normals", container.sections[2].table)
        assert not is_compressed_ply(container)


class TestDecode:
    """Bit-level decoding constants."""

    def test_positions_and_scales(self):
        """11/10/11 bit fields interpolate between the chunk bounds."""
        table = decompress_ply(_single_splat_container())
        assert table.get_column("x").data[0] == pytest.approx(2.0)
        assert table.get_column("y").data[0] == pytest.approx(0.0)
        assert table.get_column("z").data[0] == pytest.approx(8.0 * 1023 / 2047)
        assert table.get_column("scale_0").data[0] == pytest.approx(1.0)
        assert table.get_column("scale_1").data[0] == pytest.approx(1.0)
        assert table.get_column("scale_2").data[0] == pytest.approx(-1.0)

    def test_color_and_opacity(self):
        """Color bytes map through the chunk color range and opacity through logit."""
        table = decompress_ply(_single_splat_container())
        assert table.get_column("f_dc_0").data[0] == pytest.approx(0.5 / GC.SH_C0, rel=1e-6)
        assert table.get_column("f_dc_1").data[0] == pytest.approx(-0.5 / GC.SH_C0, rel=1e-6)
        assert table.get_column("f_dc_2").data[0] == pytest.approx((0.2 - 0.5) / GC.SH_C0, rel=1e-5)
        alpha = 128 / 255
        assert table.get_column("opacity").data[0] == pytest.approx(-math.log(1 / alpha - 1), rel=1e-5)

    def test_rotation(self):
        """Centred 10 bit components decode to the identity."""
        table = decompress_ply(_single_splat_container())
        quat = np.array([table.get_column(f"rot_{i}").data[0] for i in range(4)])
        np.testing.assert_allclose(quat, [1.0, 0.0, 0.0, 0.0], atol=1e-3)
        assert np.linalg.norm(quat) == pytest.approx(1.0, abs=1e-6)

    def test_sh_bytes(self):
        """SH bytes map to the range -4..4."""
        table = decompress_ply(_single_splat_container())
        values = [table.get_column(f"f_rest_{i}").data[0] for i in range(3)]
        assert values[0] == -4.0
        assert values[1] == 4.0
        assert values[2] == pytest.approx((128.5 / 256 - 0.5) * 8)

    def test_column_layout(self):
        """Decoded columns follow the standard splat layout as float32."""
        table = decompress_ply(_single_splat_container())
        assert table.column_names[:14] == [
            "x", "y", "z", "f_dc_0", "f_dc_1", "f_dc_2", "opacity",
            "rot_0", "rot_1", "rot_2", "rot_3", "scale_0", "scale_1", "scale_2",
        ]
        assert all(column.data.dtype == np.float32 for column in table.columns)

    def test_opacity_extremes(self):
        """Alpha bytes of 0 and 255 decode to the infinities."""
        container = _single_splat_container()
        _packed(container, "packed_color")[0] = 0xFFFFFF00
        table = decompress_ply(container)
        assert table.get_column("opacity").data[0] == -np.inf
        _packed(container, "packed_color")[0] = 0x000000FF
        table = decompress_ply(container)
        assert table.get_column("opacity").data[0] == np.inf


class TestEncode:
    """compress_ply layout and error bounds."""

    def test_layout(self, splat_table_sh3):
        """Encoding yields chunk, vertex and sh sections."""
        container = compress_ply(splat_table_sh3)
        assert container.section_names() == ["chunk", "vertex", "sh"]
        assert container.get_section("chunk").num_rows == 2
        assert container.get_section("chunk").table.column_names == list(CHUNK_BOUND_COLUMNS + CHUNK_COLOR_COLUMNS)
        assert container.get_section("sh").table.num_columns == 45
        assert container.comments == ["Generated by splat-transform"]

    def test_no_color_bounds(self, splat_table):
        """Without color bounds the chunk table has twelve columns."""
        container = compress_ply(splat_table, chunk_color_bounds=False)
        assert container.get_section("chunk").table.num_columns == 12
        assert container.section_names() == ["chunk", "vertex"]

    def test_round_trip_error_bounds(self, splat_table_sh3):
        """Decoded values stay within the quantisation step of the originals."""
        original = splat_table_sh3
        decoded = decompress_ply(compress_ply(original, morton_order=False))

        def col(table, name):
            return table.get_column(name).data.astype(np.float64)

        chunks = np.arange(original.num_rows) // GC.CHUNK_SIZE
        for name, bits in (("x", 11), ("y", 10), ("z", 11), ("scale_0", 11), ("scale_1", 10), ("scale_2", 11)):
            values = col(original, name)
            for c in np.unique(chunks):
                mask = chunks == c
                extent = values[mask].max() - values[mask].min()
                step = extent / ((1 << bits) - 1)
                assert np.all(np.abs(col(decoded, name)[mask] - values[mask]) <= 0.5 * step + 1e-5)

        for name in ("f_dc_0", "f_dc_1", "f_dc_2"):
            assert np.allclose(sh2rgb(col(decoded, name)), sh2rgb(col(original, name)), atol=1 / 255)

        np.testing.assert_allclose(
            sigmoid(col(decoded, "opacity")), sigmoid(col(original, "opacity")), atol=0.5 / 255 + 1e-6
        )

        q_orig = np.stack([col(original, f"rot_{i}") for i in range(4)], axis=1)
        q_dec = np.stack([col(decoded, f"rot_{i}") for i in range(4)], axis=1)
        assert np.all(np.abs(np.sum(q_orig * q_dec, axis=1)) > 0.999)

        for i in range(45):
            np.testing.assert_allclose(
                col(decoded, f"f_rest_{i}"), col(original, f"f_rest_{i}"), atol=8 / 256
            )

    def test_morton_order_keeps_the_splat_set(self, splat_table):
        """Reordering does not lose or duplicate splats."""
        decoded = decompress_ply(compress_ply(splat_table, morton_order=True))
        np.testing.assert_allclose(
            np.sort(decoded.get_column("x").data), np.sort(splat_table.get_column("x").data), atol=0.01
        )

    def test_log_scales_are_clamped(self, splat_table):
        """Very small log scales are clamped before packing."""
        splat_table.get_column("scale_0").data[0] = -50.0
        decoded = decompress_ply(compress_ply(splat_table, morton_order=False))
        assert decoded.get_column("scale_0").data[0] == pytest.approx(GC.LogSpace.MIN_LOG_SCALE)

    def test_degenerate_quaternion(self, splat_table):
        """A zero quaternion is packed as the identity."""
        for i in range(4):
            splat_table.get_column(f"rot_{i}").data[0] = 0.0
        decoded = decompress_ply(compress_ply(splat_table, morton_order=False))
        quat = [decoded.get_column(f"rot_{i}").data[0] for i in range(4)]
        np.testing.assert_allclose(quat, [1.0, 0.0, 0.0, 0.0], atol=2e-3)

    def test_missing_columns(self, splat_table):
        """Tables lacking a splat column cannot be packed."""
        splat_table.remove_column("opacity")
        with pytest.raises(DataFormatError):
            compress_ply(splat_table)

    def test_empty_table(self, splat_table):
        """Empty tables cannot be packed."""
        with pytest.raises(DataFormatError):
            compress_ply(splat_table.permute_rows([]))

    def test_unsupported_sh_layout(self, splat_table):
        """SH coefficient counts other than 9, 24 or 45 are rejected."""
        for i in range(10):
            splat_table.add_column(Column(f"f_rest_{i}", np.zeros(splat_table.num_rows, dtype=np.float32)))
        with pytest.raises(DataFormatError):
            compress_ply(splat_table)


class TestFixedPoint:
    """decode -> encode reproduces the packed words exactly."""

    @pytest.mark.parametrize("chunk_color_bounds", [True, False])
    def test_two_chunk_fixed_point(self, make_table, chunk_color_bounds):
        """Re-encoding decoded data gives identical packed words."""
        source = make_table(300, sh_bands=1, seed=7, dominant_rotations=True)
        first = compress_ply(source, chunk_color_bounds=chunk_color_bounds, morton_order=False)

        decoded = decompress_ply(first)
        second = compress_ply(decoded, chunk_color_bounds=chunk_color_bounds, morton_order=False)

        for name in PACKED_COLUMNS:
            np.testing.assert_array_equal(_packed(second, name), _packed(first, name), err_msg=name)

        for column in first.get_section("sh").table.columns:
            np.testing.assert_array_equal(
                second.get_section("sh").table.get_column(column.name).data, column.data
            )

        for column in first.get_section("chunk").table.columns:
            np.testing.assert_allclose(
                second.get_section("chunk").table.get_column(column.name).data,
                column.data,
                rtol=1e-5,
                atol=1e-6,
            )

        redecoded = decompress_ply(second)
        for column in decoded.columns:
            np.testing.assert_allclose(
                redecoded.get_column(column.name).data, column.data, rtol=1e-5, atol=1e-5
            )
