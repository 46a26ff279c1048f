"""
Configuration dataclasses for splat-transform jobs.

A job is a list of input files, each with its own actions, and one output
file whose actions run on the combined result.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

from src.domain.actions import ProcessAction
from src.shared.exceptions import ConfigError


logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class TransformOptions:
    """Run-wide options."""

    chunk_color_bounds: bool = True  # Store per-chunk colour bounds in compressed PLY
    morton_order_on_write: bool = True  # Morton-order splats before compressing
    overwrite: bool = False  # Replace an existing output file
    quiet: bool = False  # Only log errors and hide progress bars
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate settings after initialization."""
        level = str(self.log_level).upper()
        if level not in LOG_LEVELS:
            raise ConfigError(
                f"Unknown log level '{self.log_level}', expected one of {', '.join(LOG_LEVELS)}",
                field_name="log_level",
            )
        self.log_level = level

    @property
    def effective_log_level(self) -> str:
        """Level actually used for logging; quiet forces ERROR."""
        return "ERROR" if self.quiet else self.log_level

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for easy serialization."""
        return asdict(self)


@dataclass
class FileSpec:
    """A file name plus the actions attached to it."""

    filename: str
    actions: list[ProcessAction] = field(default_factory=list)

    def __post_init__(self):
        if not self.filename:
            raise ConfigError("File name must not be empty", field_name="filename")
        self.filename = str(self.filename)
        self.actions = list(self.actions)


@dataclass
class JobConfig:
    """Inputs, output and options of one conversion run."""

    inputs: list[FileSpec]
    output: FileSpec
    options: TransformOptions = field(default_factory=TransformOptions)

    def __post_init__(self):
        self.inputs = list(self.inputs)
        if not self.inputs:
            raise ConfigError("At least one input file is required", field_name="inputs")
