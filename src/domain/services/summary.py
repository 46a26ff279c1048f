"""
Per-column statistics and their markdown rendering.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from src.domain.constants import SH
from src.domain.table import DataTable
from src.shared.math import sigmoid

logger = logging.getLogger(__name__)

HISTOGRAM_BINS = 16
SPARK_GLYPHS = "▁▂▃▄▅▆▇█"


def _forward_affine(v: float) -> float:
    return 0.5 + v * SH.C0


# Raw storage space to display space (linear opacity, linear scale, colour)
FORWARD_TRANSFORMS = {
    "opacity": sigmoid,
    "scale_0": np.exp,
    "scale_1": np.exp,
    "scale_2": np.exp,
    "f_dc_0": _forward_affine,
    "f_dc_1": _forward_affine,
    "f_dc_2": _forward_affine,
}


@dataclass
class ColumnStats:
    """Statistics of one column; min..stdDev ignore NaN and infinite values."""

    min: float
    max: float
    median: float
    mean: float
    std_dev: float
    nan_count: int
    inf_count: int
    histogram: str


@dataclass
class SummaryData:
    row_count: int
    columns: dict[str, ColumnStats] = field(default_factory=dict)


def sparkline(counts: np.ndarray) -> str:
    """Render histogram counts with block glyphs; empty bins are spaces."""
    peak = counts.max() if counts.size else 0
    if peak == 0:
        return " " * counts.size
    chars = []
    for count in counts:
        if count == 0:
            chars.append(" ")
        else:
            level = int(np.ceil(count / peak * len(SPARK_GLYPHS))) - 1
            chars.append(SPARK_GLYPHS[min(max(level, 0), len(SPARK_GLYPHS) - 1)])
    return "".join(chars)


def column_stats(data: np.ndarray) -> ColumnStats:
    values = data.astype(np.float64)
    nan_count = int(np.isnan(values).sum())
    inf_count = int(np.isinf(values).sum())
    finite = values[np.isfinite(values)]

    if finite.size == 0:
        nan = float("nan")
        return ColumnStats(nan, nan, nan, nan, nan, nan_count, inf_count, " " * HISTOGRAM_BINS)

    lo, hi = float(finite.min()), float(finite.max())
    counts, _ = np.histogram(finite, bins=HISTOGRAM_BINS, range=(lo, hi) if hi > lo else (lo, lo + 1))
    return ColumnStats(
        min=lo,
        max=hi,
        median=float(np.median(finite)),
        mean=float(finite.mean()),
        std_dev=float(finite.std()),
        nan_count=nan_count,
        inf_count=inf_count,
        histogram=sparkline(counts),
    )


def compute_summary(table: DataTable) -> SummaryData:
    """Compute :class:`ColumnStats` for every column of ``table``."""
    summary = SummaryData(row_count=table.num_rows)
    for column in table.columns:
        summary.columns[column.name] = column_stats(column.data)
    return summary


def _format_value(name: str, value: float) -> str:
    fn = FORWARD_TRANSFORMS.get(name)
    if fn is not None:
        with np.errstate(over="ignore"):
            value = float(fn(value))
    return format(value, ".6g")


def format_markdown(summary: SummaryData) -> str:
    """
    Render a summary as a markdown report.

    Splat attributes stored in log/logit/SH space are shown in display space
    (linear opacity, linear scale, 0..1 colour).
    """
    headers = ["Column", "min", "max", "median", "mean", "stdDev", "nans", "infs", "histogram"]
    rows = []
    for name, stats in summary.columns.items():
        rows.append([
            name,
            _format_value(name, stats.min),
            _format_value(name, stats.max),
            _format_value(name, stats.median),
            _format_value(name, stats.mean),
            _format_value(name, stats.std_dev),
            str(stats.nan_count),
            str(stats.inf_count),
            stats.histogram,
        ])

    widths = [
        max([len(header)] + [len(row[i]) for row in rows]) for i, header in enumerate(headers)
    ]

    def pad_row(cells: list[str]) -> str:
        return "| " + " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells)) + " |"

    lines = [
        "# Summary",
        "",
        f"**Row Count:** {summary.row_count}",
        "",
        pad_row(headers),
        "|" + "|".join("-" * (w + 2) for w in widths) + "|",
    ]
    lines.extend(pad_row(row) for row in rows)
    return "\n".join(lines)
