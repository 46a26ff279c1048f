"""
Processing actions applied to splat tables.

Each action is a small frozen dataclass identified by its ``kind``. Values are
validated on construction, so an invalid job fails before any file is read.
Actions are executed by :func:`src.splat_transform.processing.pipeline.process_data_table`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar, Union

from src.shared.exceptions import ConfigError


Vec3 = tuple[float, float, float]

COMPARATORS = ("lt", "lte", "gt", "gte", "eq", "neq")


def _vec3(value, field_name: str, allow_inf: bool = False) -> Vec3:
    try:
        x, y, z = (float(v) for v in value)
    except (TypeError, ValueError):
        raise ConfigError(f"Expected three numbers, got {value!r}", field_name=field_name) from None
    for v in (x, y, z):
        if math.isnan(v) or (not allow_inf and math.isinf(v)):
            raise ConfigError(f"Invalid component {v} in {value!r}", field_name=field_name)
    return x, y, z


@dataclass(frozen=True)
class Translate:
    """Move splats by an offset."""

    kind: ClassVar[str] = "translate"
    value: Vec3

    def __post_init__(self):
        object.__setattr__(self, "value", _vec3(self.value, "translate"))


@dataclass(frozen=True)
class Rotate:
    """Rotate splats by Euler angles in degrees (x, y, z)."""

    kind: ClassVar[str] = "rotate"
    value: Vec3

    def __post_init__(self):
        object.__setattr__(self, "value", _vec3(self.value, "rotate"))


@dataclass(frozen=True)
class Scale:
    """Uniformly scale splats about the origin."""

    kind: ClassVar[str] = "scale"
    value: float

    def __post_init__(self):
        value = float(self.value)
        if not math.isfinite(value) or value <= 0:
            raise ConfigError(f"Scale must be a positive finite number, got {self.value}", field_name="scale")
        object.__setattr__(self, "value", value)


@dataclass(frozen=True)
class FilterNaN:
    """Drop splats holding NaN or disallowed infinite values."""

    kind: ClassVar[str] = "filterNaN"


@dataclass(frozen=True)
class FilterByValue:
    """
    Keep splats whose column compares true against a value.

    For ``opacity``, ``scale_*`` and ``f_dc_*`` the value is given in display
    space (linear opacity, linear scale, 0..1 colour). Append ``_raw`` to the
    column name to compare against stored values directly.
    """

    kind: ClassVar[str] = "filterByValue"
    column_name: str
    comparator: str
    value: float

    def __post_init__(self):
        if not self.column_name:
            raise ConfigError("Column name must not be empty", field_name="filter-value")
        if self.comparator not in COMPARATORS:
            raise ConfigError(
                f"Unknown comparator '{self.comparator}', expected one of {', '.join(COMPARATORS)}",
                field_name="filter-value",
            )
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class FilterBands:
    """Drop SH bands above ``value`` (0-3)."""

    kind: ClassVar[str] = "filterBands"
    value: int

    def __post_init__(self):
        if self.value not in (0, 1, 2, 3):
            raise ConfigError(f"SH band must be 0, 1, 2 or 3, got {self.value}", field_name="filter-harmonics")
        object.__setattr__(self, "value", int(self.value))


@dataclass(frozen=True)
class FilterBox:
    """Keep splats inside an axis-aligned box (bounds inclusive, may be infinite)."""

    kind: ClassVar[str] = "filterBox"
    min: Vec3
    max: Vec3

    def __post_init__(self):
        object.__setattr__(self, "min", _vec3(self.min, "filter-box", allow_inf=True))
        object.__setattr__(self, "max", _vec3(self.max, "filter-box", allow_inf=True))


@dataclass(frozen=True)
class FilterSphere:
    """Keep splats strictly inside a sphere."""

    kind: ClassVar[str] = "filterSphere"
    center: Vec3
    radius: float

    def __post_init__(self):
        object.__setattr__(self, "center", _vec3(self.center, "filter-sphere"))
        radius = float(self.radius)
        if not math.isfinite(radius) or radius < 0:
            raise ConfigError(f"Sphere radius must be >= 0, got {self.radius}", field_name="filter-sphere")
        object.__setattr__(self, "radius", radius)


@dataclass(frozen=True)
class Param:
    """Named parameter for generator inputs; inert in the pipeline."""

    kind: ClassVar[str] = "param"
    name: str
    value: str


@dataclass(frozen=True)
class Lod:
    """Tag every splat with a level of detail (-1 marks environment splats)."""

    kind: ClassVar[str] = "lod"
    value: int

    def __post_init__(self):
        if int(self.value) != self.value or self.value < -1:
            raise ConfigError(f"LOD must be an integer >= -1, got {self.value}", field_name="lod")
        object.__setattr__(self, "value", int(self.value))


@dataclass(frozen=True)
class Summary:
    """Emit per-column statistics; the table is unchanged."""

    kind: ClassVar[str] = "summary"


@dataclass(frozen=True)
class MortonOrder:
    """Reorder splats along a Morton curve."""

    kind: ClassVar[str] = "mortonOrder"


@dataclass(frozen=True)
class FilterVisibility:
    """Keep the most visible splats, by count or by percentage."""

    kind: ClassVar[str] = "filterVisibility"
    count: int | None = None
    percent: float | None = None

    def __post_init__(self):
        if (self.count is None) == (self.percent is None):
            raise ConfigError("Exactly one of count or percent must be set", field_name="filter-visibility")
        if self.count is not None:
            if int(self.count) != self.count or self.count < 0:
                raise ConfigError(f"Count must be a non-negative integer, got {self.count}", field_name="filter-visibility")
            object.__setattr__(self, "count", int(self.count))
        else:
            percent = float(self.percent)
            if math.isnan(percent):
                raise ConfigError("Percent must be a number", field_name="filter-visibility")
            object.__setattr__(self, "percent", min(max(percent, 0.0), 100.0))


ProcessAction = Union[
    Translate,
    Rotate,
    Scale,
    FilterNaN,
    FilterByValue,
    FilterBands,
    FilterBox,
    FilterSphere,
    Param,
    Lod,
    Summary,
    MortonOrder,
    FilterVisibility,
]
