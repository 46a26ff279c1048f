"""
Ordered application of processing actions to a splat table.

Transforms, ``lod`` and ``mortonOrder`` modify the table in place; filters
build a new table from the surviving rows. Either way the caller should use
the returned table.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

import numpy as np

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
    ProcessAction,
    Rotate,
    Scale,
    Summary,
    Translate,
)
from src.domain.services.ordering import sort_by_visibility, sort_morton_order
from src.domain.services.summary import compute_summary, format_markdown
from src.domain.services.transform import transform
from src.domain.table import Column, DataTable
from src.infrastructure.processing.gaussian_constants import (
    LOD_COLUMN,
    POSITION_COLUMNS,
    SH_REST_COLUMNS,
    GaussianConstants as GC,
)
from src.shared.exceptions import ConfigError
from src.shared.math import logit, quat_from_euler_deg
from src.shared.perf import PerfMonitor, StageTiming

from .context import ProcessingContext


logger = logging.getLogger(__name__)


def _logit(v: float) -> float:
    with np.errstate(invalid="ignore"):
        return float(logit(np.float64(v)))


def _log(v: float) -> float:
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.log(np.float64(v)))


def _affine(v: float) -> float:
    return (v - 0.5) / GC.SH_C0


# Display space to storage space; all strictly increasing
INVERSE_TRANSFORMS: dict[str, Callable[[float], float]] = {
    "opacity": _logit,
    "scale_0": _log,
    "scale_1": _log,
    "scale_2": _log,
    "f_dc_0": _affine,
    "f_dc_1": _affine,
    "f_dc_2": _affine,
}

RAW_SUFFIX = "_raw"

# Non-finite values that filterNaN keeps, per column
_ALLOWED_NON_FINITE = {
    "opacity": (np.inf, -np.inf),
    "scale_0": (-np.inf,),
    "scale_1": (-np.inf,),
    "scale_2": (-np.inf,),
}

_COMPARE = {
    "lt": np.less,
    "lte": np.less_equal,
    "gt": np.greater,
    "gte": np.greater_equal,
    "eq": np.equal,
    "neq": np.not_equal,
}


def _keep(table: DataTable, mask: np.ndarray) -> DataTable:
    return table.permute_rows(np.flatnonzero(mask))


# ----------------------------------------------------------------------
# Action handlers
# ----------------------------------------------------------------------


def _translate(table: DataTable, action: Translate, context: ProcessingContext) -> DataTable:
    transform(table, translation=action.value)
    return table


def _rotate(table: DataTable, action: Rotate, context: ProcessingContext) -> DataTable:
    transform(table, rotation=quat_from_euler_deg(*action.value))
    return table


def _scale(table: DataTable, action: Scale, context: ProcessingContext) -> DataTable:
    transform(table, scale=action.value)
    return table


def _filter_nan(table: DataTable, action: FilterNaN, context: ProcessingContext) -> DataTable:
    mask = np.ones(table.num_rows, dtype=bool)
    for column in table.columns:
        data = column.data
        if not np.issubdtype(data.dtype, np.floating):
            continue
        ok = np.isfinite(data)
        for allowed in _ALLOWED_NON_FINITE.get(column.name, ()):
            ok |= data == allowed
        mask &= ok
    return _keep(table, mask)


def _filter_by_value(table: DataTable, action: FilterByValue, context: ProcessingContext) -> DataTable:
    name, value = action.column_name, action.value
    if name.endswith(RAW_SUFFIX) and name[: -len(RAW_SUFFIX)] in INVERSE_TRANSFORMS:
        name = name[: -len(RAW_SUFFIX)]
    elif name in INVERSE_TRANSFORMS:
        value = INVERSE_TRANSFORMS[name](value)

    (data,) = table.row_view([name])
    mask = _COMPARE[action.comparator](data.astype(np.float64), value)
    context.logger.debug(f"filter-value {name} {action.comparator} {value}")
    return _keep(table, mask)


def _input_bands(table: DataTable) -> int:
    for index, name in enumerate(SH_REST_COLUMNS):
        if not table.has_column(name):
            return {9: 1, 24: 2}.get(index, 0)
    return 3


def _filter_bands(table: DataTable, action: FilterBands, context: ProcessingContext) -> DataTable:
    input_bands = _input_bands(table)
    output_bands = action.value
    if output_bands >= input_bands:
        return table

    input_coeffs = GC.SH.BAND_COEFFS[input_bands]
    output_coeffs = GC.SH.BAND_COEFFS[output_bands]

    # f_rest_{i + j*in} -> f_rest_{i + j*out} for channel j, or dropped
    rename: dict[str, str | None] = {}
    for i in range(input_coeffs):
        for j in range(3):
            target = f"f_rest_{i + j * output_coeffs}" if i < output_coeffs else None
            rename[f"f_rest_{i + j * input_coeffs}"] = target

    columns = []
    for column in table.columns:
        if column.name in rename:
            target = rename[column.name]
            if target is not None:
                columns.append(Column(target, column.data))
        else:
            columns.append(column)
    return DataTable(columns)


def _filter_box(table: DataTable, action: FilterBox, context: ProcessingContext) -> DataTable:
    mask = np.ones(table.num_rows, dtype=bool)
    for data, lo, hi in zip(table.row_view(POSITION_COLUMNS), action.min, action.max):
        values = data.astype(np.float64)
        mask &= (values >= lo) & (values <= hi)
    return _keep(table, mask)


def _filter_sphere(table: DataTable, action: FilterSphere, context: ProcessingContext) -> DataTable:
    distance_sq = np.zeros(table.num_rows, dtype=np.float64)
    for data, center in zip(table.row_view(POSITION_COLUMNS), action.center):
        distance_sq += (data.astype(np.float64) - center) ** 2
    return _keep(table, distance_sq < action.radius * action.radius)


def _param(table: DataTable, action: Param, context: ProcessingContext) -> DataTable:
    context.logger.debug(f"Ignoring generator parameter {action.name}={action.value}")
    return table


def _lod(table: DataTable, action: Lod, context: ProcessingContext) -> DataTable:
    column = table.get_column(LOD_COLUMN)
    if column is None:
        column = Column(LOD_COLUMN, np.zeros(table.num_rows, dtype=np.float32))
        table.add_column(column)
    column.data.fill(action.value)
    return table


def _summary(table: DataTable, action: Summary, context: ProcessingContext) -> DataTable:
    context.output(format_markdown(compute_summary(table)))
    return table


def _morton_order(table: DataTable, action: MortonOrder, context: ProcessingContext) -> DataTable:
    table.permute_rows_in_place(sort_morton_order(table))
    return table


def _filter_visibility(table: DataTable, action: FilterVisibility, context: ProcessingContext) -> DataTable:
    order = sort_by_visibility(table)
    num_rows = table.num_rows
    if action.count is not None:
        keep = min(action.count, num_rows)
    else:
        keep = int(np.floor(num_rows * action.percent / 100 + 0.5))
    keep = max(0, keep)
    return table.permute_rows(order[:keep])


_HANDLERS: dict[type, Callable[[DataTable, ProcessAction, ProcessingContext], DataTable]] = {
    Translate: _translate,
    Rotate: _rotate,
    Scale: _scale,
    FilterNaN: _filter_nan,
    FilterByValue: _filter_by_value,
    FilterBands: _filter_bands,
    FilterBox: _filter_box,
    FilterSphere: _filter_sphere,
    Param: _param,
    Lod: _lod,
    Summary: _summary,
    MortonOrder: _morton_order,
    FilterVisibility: _filter_visibility,
}


def process_data_table(
    table: DataTable,
    actions: Sequence[ProcessAction],
    context: ProcessingContext | None = None,
) -> DataTable:
    """
    Apply ``actions`` to ``table`` in order.

    Parameters
    ----------
    table : DataTable
        Input table; may be modified in place
    actions : Sequence[ProcessAction]
        Actions to apply, first to last
    context : ProcessingContext | None
        Logger, progress and output channel (a default context if None)

    Returns
    -------
    DataTable
        The processed table (a new instance when any filter ran)

    Raises
    ------
    ConfigError
        If an action type is not supported
    DataFormatError
        If an action needs a column the table lacks
    """
    context = context or ProcessingContext()
    if not actions:
        return table

    monitor = PerfMonitor("pipeline")
    result = table

    context.progress.begin(len(actions), "Processing")
    try:
        for index, action in enumerate(actions):
            handler = _HANDLERS.get(type(action))
            if handler is None:
                raise ConfigError(f"Unsupported action: {action!r}")

            stage = f"{index}:{action.kind}"
            rows_in = result.num_rows
            with monitor.track(stage):
                result = handler(result, action, context)

            context.timings.append(
                StageTiming(action.kind, monitor.duration(stage), rows_in, result.num_rows)
            )
            if result.num_rows != rows_in:
                context.logger.debug(f"{action.kind}: {rows_in} -> {result.num_rows} rows")
            context.progress.step(action.kind)
    finally:
        context.progress.end()

    monitor.log_summary(logger)
    return result
