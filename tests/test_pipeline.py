"""Tests for the action pipeline."""

import math

import numpy as np
import pytest

from src.domain.actions import (
    FilterBands,
    FilterBox,
    FilterByValue,
    FilterNaN,
    FilterSphere,
    FilterVisibility,
    Lod,
    MortonOrder,
    Param,
    Rotate,
    Scale,
    Summary,
    Translate,
)
from src.domain.services.ordering import sort_by_visibility
from src.domain.table import Column, DataTable
from src.shared.exceptions import ConfigError, DataFormatError
from src.shared.math import sigmoid
from src.splat_transform.processing import ProcessingContext, ProgressReporter, process_data_table


def col(table, name):
    return table.get_column(name).data


@pytest.fixture
def context():
    outputs = []
    ctx = ProcessingContext.create(quiet=True, output=outputs.append)
    ctx.outputs = outputs
    return ctx


class TestProcessDataTable:
    """Pipeline driver behaviour."""

    def test_no_actions_returns_same_table(self, splat_table):
        """An empty action list is a no-op."""
        assert process_data_table(splat_table, []) is splat_table

    def test_records_timings(self, splat_table, context):
        """Each action records its stage name and row counts."""
        result = process_data_table(
            splat_table, [Translate((1, 0, 0)), FilterBox((-math.inf,) * 3, (5, math.inf, math.inf))], context
        )
        assert [t.stage for t in context.timings] == ["translate", "filterBox"]
        assert context.timings[1].rows_in == 300
        assert context.timings[1].rows_out == result.num_rows
        assert all(t.duration_ms >= 0 for t in context.timings)

    def test_unknown_action(self, splat_table, context):
        """Objects that are not actions are rejected."""
        with pytest.raises(ConfigError):
            process_data_table(splat_table, ["translate"], context)

    def test_default_context(self, splat_table):
        """A context is created when none is passed."""
        result = process_data_table(splat_table, [FilterNaN()])
        assert result.num_rows == 300

    def test_scale_then_translate(self, splat_table):
        """Actions apply in order to positions and log scales."""
        x0 = col(splat_table, "x").astype(np.float64).copy()
        y0 = col(splat_table, "y").astype(np.float64).copy()
        s0 = col(splat_table, "scale_1").astype(np.float64).copy()
        q0 = col(splat_table, "rot_2").copy()

        result = process_data_table(splat_table, [Scale(0.5), Translate((1, 0, 0))])

        np.testing.assert_allclose(col(result, "x"), x0 * 0.5 + 1.0, rtol=1e-6)
        np.testing.assert_allclose(col(result, "y"), y0 * 0.5, rtol=1e-6)
        np.testing.assert_allclose(col(result, "scale_1"), s0 + math.log(0.5), rtol=1e-6)
        np.testing.assert_array_equal(col(result, "rot_2"), q0)
        assert col(result, "x").min() >= 1.0
        assert col(result, "x").max() <= 6.0


class TestProgressReporter:
    def test_lifecycle(self):
        """The bar is active between begin and end, even when quiet."""
        progress = ProgressReporter(quiet=True)
        assert not progress.active
        progress.step("ignored")

        progress.begin(3, "Processing")
        assert progress.active
        progress.step("scale")
        progress.step()
        progress.end()

        assert not progress.active
        progress.step("late")
        progress.end()


class TestTransformActions:
    def test_rotate_positions(self, small_table):
        """Positions turn about the origin."""
        process_data_table(small_table, [Rotate((0, 0, 90))])
        # (1, 0, 0) -> (0, 1, 0)
        np.testing.assert_allclose(
            [col(small_table, a)[1] for a in "xyz"], [0.0, 1.0, 0.0], atol=1e-6
        )

    def test_rotate_and_back_restores_sh(self, splat_table_sh3):
        """Rotating back restores every non-rotation column."""
        before = {c.name: c.data.copy() for c in splat_table_sh3.columns}
        process_data_table(splat_table_sh3, [Rotate((0, 0, 35)), Rotate((0, 0, -35))])
        for name, data in before.items():
            if name.startswith("rot_"):
                continue
            np.testing.assert_allclose(col(splat_table_sh3, name), data, atol=1e-4, err_msg=name)

    def test_identity_rotation_leaves_sh(self, splat_table_sh3):
        """A zero rotation does not touch SH coefficients."""
        before = col(splat_table_sh3, "f_rest_5").copy()
        process_data_table(splat_table_sh3, [Rotate((0, 0, 0))])
        np.testing.assert_array_equal(col(splat_table_sh3, "f_rest_5"), before)

    def test_rotation_updates_orientations(self, splat_table):
        """Orientations change but keep their norm."""
        quats = np.stack([col(splat_table, f"rot_{i}").astype(np.float64) for i in range(4)], axis=1)
        process_data_table(splat_table, [Rotate((90, 0, 0))])
        rotated = np.stack([col(splat_table, f"rot_{i}") for i in range(4)], axis=1)
        np.testing.assert_allclose(np.linalg.norm(rotated, axis=1), np.linalg.norm(quats, axis=1), rtol=1e-5)
        assert not np.allclose(rotated, quats)


class TestFilterNaN:
    def test_rules(self, splat_table):
        """Non-finite values drop a row, except infinite opacity and -inf scales."""
        col(splat_table, "x")[0] = np.nan
        col(splat_table, "opacity")[1] = np.inf
        col(splat_table, "opacity")[2] = -np.inf
        col(splat_table, "scale_0")[3] = -np.inf
        col(splat_table, "scale_1")[4] = np.inf
        col(splat_table, "f_dc_0")[5] = -np.inf
        col(splat_table, "scale_2")[6] = np.nan

        result = process_data_table(splat_table, [FilterNaN()])
        assert result.num_rows == 300 - 4
        kept_opacity = col(result, "opacity")
        assert np.isposinf(kept_opacity).sum() == 1
        assert np.isneginf(kept_opacity).sum() == 1
        assert np.isneginf(col(result, "scale_0")).sum() == 1

    def test_integer_columns_ignored(self, small_table):
        """Integer columns are never checked."""
        result = process_data_table(small_table, [FilterNaN()])
        assert result.num_rows == 4

    def test_idempotent(self, splat_table):
        """A second pass removes nothing."""
        col(splat_table, "y")[10] = np.nan
        once = process_data_table(splat_table, [FilterNaN()])
        twice = process_data_table(once, [FilterNaN()])
        assert once.num_rows == twice.num_rows == 299


class TestFilterByValue:
    def test_opacity_in_linear_space(self, splat_table):
        """Opacity thresholds are compared after sigmoid."""
        raw = col(splat_table, "opacity").copy()
        result = process_data_table(splat_table, [FilterByValue("opacity", "gt", 0.5)])
        assert result.num_rows == np.count_nonzero(raw > 0)
        assert np.all(sigmoid(col(result, "opacity").astype(np.float64)) > 0.5)

    def test_raw_suffix_compares_stored_values(self, splat_table):
        """The _raw suffix skips the inverse transform."""
        raw = col(splat_table, "opacity").copy()
        result = process_data_table(splat_table, [FilterByValue("opacity_raw", "lte", 1.0)])
        assert result.num_rows == np.count_nonzero(raw <= 1.0)

    def test_opacity_threshold_limits(self, splat_table):
        """Thresholds of 0 and 1 map to the infinities of raw opacity."""
        assert process_data_table(splat_table.clone(), [FilterByValue("opacity", "gt", 1.0)]).num_rows == 0
        assert process_data_table(splat_table.clone(), [FilterByValue("opacity", "gt", 0.0)]).num_rows == 300

    def test_scale_in_linear_space(self, splat_table):
        """Scale thresholds are compared after exp."""
        raw = col(splat_table, "scale_0").astype(np.float64)
        threshold = math.exp(-3.0)
        result = process_data_table(splat_table, [FilterByValue("scale_0", "lt", threshold)])
        assert result.num_rows == np.count_nonzero(raw < -3.0)

    def test_color_in_display_space(self, splat_table):
        """DC colors are compared in display space."""
        raw = col(splat_table, "f_dc_2").astype(np.float64)
        result = process_data_table(splat_table, [FilterByValue("f_dc_2", "gte", 0.5)])
        assert result.num_rows == np.count_nonzero(raw >= 0.0)

    @pytest.mark.parametrize("comparator,expected", [
        ("lt", [10]), ("lte", [10, 11]), ("gt", [12, 13]),
        ("gte", [11, 12, 13]), ("eq", [11]), ("neq", [10, 12, 13]),
    ])
    def test_comparators(self, small_table, comparator, expected):
        """Every comparator keeps the expected rows."""
        result = process_data_table(small_table, [FilterByValue("x", comparator, 1.0)])
        np.testing.assert_array_equal(col(result, "id"), expected)

    def test_monotone_in_threshold(self, splat_table):
        """Raising a gt threshold never keeps more rows."""
        counts = [
            process_data_table(splat_table.clone(), [FilterByValue("opacity", "gt", t)]).num_rows
            for t in (0.1, 0.3, 0.5, 0.7, 0.9)
        ]
        assert counts == sorted(counts, reverse=True)

    def test_missing_column(self, splat_table):
        """Filtering on an absent column fails."""
        with pytest.raises(DataFormatError):
            process_data_table(splat_table, [FilterByValue("nope", "gt", 0.0)])


class TestFilterBands:
    def test_three_to_one(self, splat_table_sh3):
        """Band three to band one keeps the first three coefficients per channel."""
        source = {f"f_rest_{i}": col(splat_table_sh3, f"f_rest_{i}").copy() for i in range(45)}
        result = process_data_table(splat_table_sh3, [FilterBands(1)])
        names = [n for n in result.column_names if n.startswith("f_rest_")]
        assert names == [f"f_rest_{i}" for i in range(9)]
        for j in range(3):
            for i in range(3):
                np.testing.assert_array_equal(col(result, f"f_rest_{i + j * 3}"), source[f"f_rest_{i + j * 15}"])

    def test_three_to_zero(self, splat_table_sh3):
        """Band zero drops every f_rest column."""
        result = process_data_table(splat_table_sh3, [FilterBands(0)])
        assert not any(n.startswith("f_rest_") for n in result.column_names)
        assert result.has_column("opacity")

    def test_two_to_one(self, make_table):
        """Coefficients are reindexed from the source band layout."""
        table = make_table(20, sh_bands=2)
        source = col(table, "f_rest_8").copy()
        result = process_data_table(table, [FilterBands(1)])
        assert sum(n.startswith("f_rest_") for n in result.column_names) == 9
        # channel 1, coefficient 0: 0 + 1*8 -> 0 + 1*3
        np.testing.assert_array_equal(col(result, "f_rest_3"), source)

    def test_no_op_when_not_reducing(self, splat_table):
        """Keeping at least the present bands returns the table as is."""
        assert process_data_table(splat_table, [FilterBands(3)]) is splat_table


class TestSpatialFilters:
    def test_box_is_inclusive(self, small_table):
        """Box bounds are inclusive."""
        result = process_data_table(small_table, [FilterBox((1, 0, 0), (2, 1, 0))])
        np.testing.assert_array_equal(col(result, "id"), [11, 12])

    def test_box_unbounded(self, small_table):
        """Infinite bounds leave an axis unconstrained."""
        box = FilterBox((-math.inf, -math.inf, 1.0), (math.inf, math.inf, math.inf))
        result = process_data_table(small_table, [box])
        np.testing.assert_array_equal(col(result, "id"), [13])

    def test_box_idempotent(self, splat_table):
        """Filtering twice with the same box keeps the same rows."""
        box = FilterBox((2, 2, 2), (7, 7, 7))
        once = process_data_table(splat_table, [box])
        twice = process_data_table(once, [box])
        assert 0 < once.num_rows == twice.num_rows
        np.testing.assert_array_equal(col(once, "x"), col(twice, "x"))

    def test_sphere_is_strict(self, small_table):
        """Points on the sphere surface are dropped."""
        result = process_data_table(small_table, [FilterSphere((0, 0, 0), 1.0)])
        np.testing.assert_array_equal(col(result, "id"), [10])

    def test_sphere_contents(self, splat_table):
        """Kept points lie inside the sphere."""
        result = process_data_table(splat_table, [FilterSphere((5, 5, 5), 3.0)])
        d2 = sum((col(result, a).astype(np.float64) - 5) ** 2 for a in "xyz")
        assert np.all(d2 < 9.0)


class TestMetadataActions:
    def test_param_is_inert(self, splat_table):
        """Parameters do not change the table."""
        assert process_data_table(splat_table, [Param("seed", "4")]) is splat_table

    def test_lod_adds_column(self, splat_table):
        """lod adds a float32 column."""
        result = process_data_table(splat_table, [Lod(2)])
        lod = col(result, "lod")
        assert lod.dtype == np.float32
        assert np.all(lod == 2)

    def test_lod_overwrites_column(self, splat_table):
        """A later lod replaces the earlier value."""
        process_data_table(splat_table, [Lod(2), Lod(-1)])
        assert np.all(col(splat_table, "lod") == -1)

    def test_summary_goes_to_output(self, splat_table, context):
        """The summary is sent to the output channel."""
        result = process_data_table(splat_table, [Summary()], context)
        assert result is splat_table
        assert len(context.outputs) == 1
        assert context.outputs[0].startswith("# Summary")
        assert "**Row Count:** 300" in context.outputs[0]

    def test_morton_order_permutes_in_place(self, splat_table):
        """Morton ordering only reorders rows."""
        before = np.sort(col(splat_table, "x").copy())
        result = process_data_table(splat_table, [MortonOrder()])
        assert result is splat_table
        np.testing.assert_array_equal(np.sort(col(result, "x")), before)


class TestFilterVisibility:
    def test_count(self, splat_table):
        """The most visible splats are kept, most visible first."""
        expected = sort_by_visibility(splat_table)[:10]
        ids = np.arange(300, dtype=np.int32)
        splat_table.add_column(Column("id", ids))
        result = process_data_table(splat_table, [FilterVisibility(count=10)])
        np.testing.assert_array_equal(col(result, "id"), expected)

    def test_count_larger_than_table(self, splat_table):
        """A count beyond the table keeps every row."""
        result = process_data_table(splat_table, [FilterVisibility(count=10_000)])
        assert result.num_rows == 300

    def test_percent_matches_count(self, splat_table):
        """Percent is converted to a row count."""
        by_percent = process_data_table(splat_table.clone(), [FilterVisibility(percent=10.0)])
        by_count = process_data_table(splat_table.clone(), [FilterVisibility(count=30)])
        np.testing.assert_array_equal(col(by_percent, "x"), col(by_count, "x"))

    def test_percent_bounds(self, splat_table):
        """0 and 100 percent keep nothing and everything."""
        assert process_data_table(splat_table.clone(), [FilterVisibility(percent=0)]).num_rows == 0
        assert process_data_table(splat_table.clone(), [FilterVisibility(percent=100)]).num_rows == 300

    def test_monotone(self, splat_table):
        """A larger count extends a smaller one."""
        kept = [
            process_data_table(splat_table.clone(), [FilterVisibility(count=n)])
            for n in (50, 100)
        ]
        np.testing.assert_array_equal(col(kept[1], "x")[:50], col(kept[0], "x"))
