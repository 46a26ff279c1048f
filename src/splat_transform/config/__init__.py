"""Job configuration: options, action parsing and job files."""

from .io import load_job, save_job
from .parsing import (
    ACTION_PARSERS,
    format_action,
    is_action_token,
    parse_action,
    parse_actions,
    parse_command_line,
)
from .settings import FileSpec, JobConfig, TransformOptions


__all__ = [
    "ACTION_PARSERS",
    "FileSpec",
    "JobConfig",
    "TransformOptions",
    "format_action",
    "is_action_token",
    "load_job",
    "parse_action",
    "parse_actions",
    "parse_command_line",
    "save_job",
]
