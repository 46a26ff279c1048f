"""
Parsing of action tokens and command lines.

An action token is ``name`` or ``name=value`` where ``name`` is a long action
name or its one-letter alias::

    translate=1,0,0   t=1,0,0
    filter-box=-1,-1,-,1,1,   (empty or '-' parts are unbounded)
    filter-visibility=50%     F=10000
    params=seed=4,size=2      (one Param action per pair)

A command line is a flat token list ``INPUT [ACTION...] ... OUTPUT [ACTION...]``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Sequence

from src.domain.actions import (
    COMPARATORS,
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
from src.shared.exceptions import ConfigError

from .settings import FileSpec


logger = logging.getLogger(__name__)


def _number(text: str, field_name: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise ConfigError(f"Invalid number value: '{text}'", field_name=field_name) from None
    if math.isnan(value):
        raise ConfigError(f"Invalid number value: '{text}'", field_name=field_name)
    return value


def _integer(text: str, field_name: str) -> int:
    value = _number(text, field_name)
    if not value.is_integer():
        raise ConfigError(f"Invalid integer value: '{text}'", field_name=field_name)
    return int(value)


def _parts(value: str, count: int, field_name: str) -> list[str]:
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != count:
        raise ConfigError(
            f"Expected {count} comma-separated values, got '{value}'", field_name=field_name
        )
    return parts


def _vec3(value: str, field_name: str) -> tuple[float, float, float]:
    x, y, z = (_number(part, field_name) for part in _parts(value, 3, field_name))
    return x, y, z


def _parse_translate(value: str) -> list[ProcessAction]:
    return [Translate(_vec3(value, "translate"))]


def _parse_rotate(value: str) -> list[ProcessAction]:
    return [Rotate(_vec3(value, "rotate"))]


def _parse_scale(value: str) -> list[ProcessAction]:
    return [Scale(_number(value.strip(), "scale"))]


def _parse_filter_nan(value: str) -> list[ProcessAction]:
    return [FilterNaN()]


def _parse_filter_value(value: str) -> list[ProcessAction]:
    name, comparator, number = _parts(value, 3, "filter-value")
    if comparator not in COMPARATORS:
        raise ConfigError(f"Invalid comparator value: '{comparator}'", field_name="filter-value")
    return [FilterByValue(name, comparator, _number(number, "filter-value"))]


def _parse_filter_harmonics(value: str) -> list[ProcessAction]:
    return [FilterBands(_integer(value.strip(), "filter-harmonics"))]


def _parse_filter_box(value: str) -> list[ProcessAction]:
    defaults = (-math.inf, -math.inf, -math.inf, math.inf, math.inf, math.inf)
    values = [
        default if part in ("", "-") else _number(part, "filter-box")
        for part, default in zip(_parts(value, 6, "filter-box"), defaults)
    ]
    return [FilterBox(values[:3], values[3:])]


def _parse_filter_sphere(value: str) -> list[ProcessAction]:
    x, y, z, radius = (_number(part, "filter-sphere") for part in _parts(value, 4, "filter-sphere"))
    return [FilterSphere((x, y, z), radius)]


def _parse_filter_visibility(value: str) -> list[ProcessAction]:
    value = value.strip()
    if value.endswith("%"):
        percent = _number(value[:-1], "filter-visibility")
        if not 0 <= percent <= 100:
            raise ConfigError(
                f"Invalid percentage '{value}', must be between 0% and 100%",
                field_name="filter-visibility",
            )
        return [FilterVisibility(percent=percent)]
    return [FilterVisibility(count=_integer(value, "filter-visibility"))]


def _parse_params(value: str) -> list[ProcessAction]:
    actions: list[ProcessAction] = []
    for item in value.split(","):
        name, _, param_value = (part.strip() for part in item.partition("="))
        actions.append(Param(name, param_value))
    return actions


def _parse_lod(value: str) -> list[ProcessAction]:
    lod = _integer(value.strip(), "lod")
    if lod < 0:
        raise ConfigError(f"Invalid lod value '{value}', must be a non-negative integer", field_name="lod")
    return [Lod(lod)]


def _parse_summary(value: str) -> list[ProcessAction]:
    return [Summary()]


def _parse_morton_order(value: str) -> list[ProcessAction]:
    return [MortonOrder()]


# name -> (alias, takes a value, parser)
ACTION_PARSERS: dict[str, tuple[str, bool, Callable[[str], list[ProcessAction]]]] = {
    "translate": ("t", True, _parse_translate),
    "rotate": ("r", True, _parse_rotate),
    "scale": ("s", True, _parse_scale),
    "filter-nan": ("N", False, _parse_filter_nan),
    "filter-value": ("V", True, _parse_filter_value),
    "filter-harmonics": ("H", True, _parse_filter_harmonics),
    "filter-box": ("B", True, _parse_filter_box),
    "filter-sphere": ("S", True, _parse_filter_sphere),
    "filter-visibility": ("F", True, _parse_filter_visibility),
    "params": ("p", True, _parse_params),
    "lod": ("l", True, _parse_lod),
    "summary": ("m", False, _parse_summary),
    "morton-order": ("M", False, _parse_morton_order),
}

ALIASES = {alias: name for name, (alias, _, _) in ACTION_PARSERS.items()}


def _resolve(head: str) -> str | None:
    head = head.lstrip("-")
    if head in ACTION_PARSERS:
        return head
    return ALIASES.get(head)


def is_action_token(token: str) -> bool:
    """True when ``token`` names an action (with or without a value)."""
    head, _, _ = token.partition("=")
    return _resolve(head) is not None


def parse_action(token: str) -> list[ProcessAction]:
    """
    Parse one action token.

    Args:
        token: ``name`` or ``name=value``; a leading ``--`` (long name) or
            ``-`` (alias) is accepted.

    Returns:
        The actions the token expands to (``params`` may yield several).

    Raises:
        ConfigError: If the name is unknown or the value is invalid.
    """
    head, has_value, value = token.partition("=")
    name = _resolve(head)
    if name is None:
        raise ConfigError(f"Unknown action '{head}'", field_name="actions")

    _, takes_value, parser = ACTION_PARSERS[name]
    if takes_value and not (has_value and value.strip()):
        raise ConfigError(f"Action '{name}' requires a value", field_name=name)
    if not takes_value and has_value:
        raise ConfigError(f"Action '{name}' does not take a value", field_name=name)
    return parser(value)


def parse_actions(tokens: Iterable[str]) -> list[ProcessAction]:
    """Parse a sequence of action tokens in order."""
    actions: list[ProcessAction] = []
    for token in tokens:
        actions.extend(parse_action(token))
    return actions


def _format_number(value: float, unbounded: str = "") -> str:
    if math.isinf(value):
        return unbounded
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def format_action(action: ProcessAction) -> str:
    """Render an action back into the token :func:`parse_action` accepts."""
    if isinstance(action, (Translate, Rotate)):
        return f"{action.kind}=" + ",".join(_format_number(v) for v in action.value)
    if isinstance(action, Scale):
        return f"scale={action.value!r}"
    if isinstance(action, FilterNaN):
        return "filter-nan"
    if isinstance(action, FilterByValue):
        return f"filter-value={action.column_name},{action.comparator},{action.value!r}"
    if isinstance(action, FilterBands):
        return f"filter-harmonics={action.value}"
    if isinstance(action, FilterBox):
        parts = [_format_number(v, "-") for v in (*action.min, *action.max)]
        return "filter-box=" + ",".join(parts)
    if isinstance(action, FilterSphere):
        parts = [_format_number(v) for v in (*action.center, action.radius)]
        return "filter-sphere=" + ",".join(parts)
    if isinstance(action, FilterVisibility):
        if action.count is not None:
            return f"filter-visibility={action.count}"
        return f"filter-visibility={action.percent!r}%"
    if isinstance(action, Param):
        return f"params={action.name}={action.value}"
    if isinstance(action, Lod):
        return f"lod={action.value}"
    if isinstance(action, Summary):
        return "summary"
    if isinstance(action, MortonOrder):
        return "morton-order"
    raise ConfigError(f"Unsupported action: {action!r}")


def parse_command_line(tokens: Sequence[str]) -> tuple[list[FileSpec], FileSpec]:
    """
    Split a flat token list into input file specs and the output file spec.

    Actions attach to the file before them; the last file is the output.

    Raises
    ------
    ConfigError
        If the list starts with an action or names fewer than two files
    """
    files: list[FileSpec] = []
    for token in tokens:
        if is_action_token(token):
            if not files:
                raise ConfigError(f"Action '{token}' must follow a file name", field_name="tokens")
            files[-1].actions.extend(parse_action(token))
        else:
            files.append(FileSpec(token))

    if len(files) < 2:
        raise ConfigError("Expected at least one input file and one output file", field_name="tokens")

    logger.debug(f"Parsed {len(files) - 1} input(s), output '{files[-1].filename}'")
    return files[:-1], files[-1]
