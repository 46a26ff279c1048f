"""
Job file import/export.

A job file is YAML (JSON is a subset and is accepted too)::

    inputs:
      - file: scene.ply
        actions: ["scale=0.5", "filter-nan"]
    output:
      file: scene.compressed.ply
      actions: ["morton-order"]
    options:
      overwrite: true

Relative file names are resolved against the job file's directory.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from src.shared.exceptions import ConfigError

from .parsing import format_action, parse_actions
from .settings import FileSpec, JobConfig, TransformOptions


logger = logging.getLogger(__name__)

_OPTION_NAMES = {f.name for f in fields(TransformOptions)}


def _resolve_path(filename: str, base_dir: Path) -> str:
    if filename == "null":
        return filename
    path = Path(filename).expanduser()
    return str(path if path.is_absolute() else base_dir / path)


def _file_spec(entry: Any, base_dir: Path, config_path: str, field_name: str) -> FileSpec:
    if isinstance(entry, str):
        entry = {"file": entry}
    if not isinstance(entry, dict) or "file" not in entry:
        raise ConfigError(
            "Expected a file name or a mapping with a 'file' key",
            config_path=config_path,
            field_name=field_name,
        )

    actions = entry.get("actions") or []
    if isinstance(actions, str) or not all(isinstance(token, str) for token in actions):
        raise ConfigError(
            "Actions must be a list of action tokens",
            config_path=config_path,
            field_name=f"{field_name}.actions",
        )
    return FileSpec(_resolve_path(str(entry["file"]), base_dir), parse_actions(actions))


def load_job(path: str | Path) -> JobConfig:
    """
    Load a job description.

    Parameters
    ----------
    path : str | Path
        YAML or JSON job file

    Returns
    -------
    JobConfig
        Validated job with parsed actions

    Raises
    ------
    ConfigError
        If the file is missing, unparsable or describes an invalid job
    """
    path = Path(path)
    config_path = str(path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError("Job file not found", config_path=config_path) from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse job file: {e}", config_path=config_path) from e

    if not isinstance(data, dict):
        raise ConfigError("Job file must contain a mapping", config_path=config_path)

    base_dir = path.parent
    try:
        inputs = data.get("inputs") or []
        if not isinstance(inputs, list):
            raise ConfigError("'inputs' must be a list", field_name="inputs")
        input_specs = [
            _file_spec(entry, base_dir, config_path, f"inputs[{i}]") for i, entry in enumerate(inputs)
        ]
        if "output" not in data:
            raise ConfigError("Missing output", field_name="output")
        output_spec = _file_spec(data["output"], base_dir, config_path, "output")

        options = data.get("options") or {}
        if not isinstance(options, dict):
            raise ConfigError("'options' must be a mapping", field_name="options")
        unknown = set(options) - _OPTION_NAMES
        if unknown:
            raise ConfigError(f"Unknown option(s): {', '.join(sorted(unknown))}", field_name="options")

        job = JobConfig(inputs=input_specs, output=output_spec, options=TransformOptions(**options))
    except ConfigError as e:
        if e.config_path:
            raise
        raise ConfigError(str(e), config_path=config_path) from e

    logger.info(f"Loaded job from {path}: {len(job.inputs)} input(s)")
    return job


def save_job(job: JobConfig, path: str | Path) -> Path:
    """Write ``job`` as YAML; actions are stored as tokens."""

    def spec_dict(spec: FileSpec) -> dict[str, Any]:
        return {"file": spec.filename, "actions": [format_action(a) for a in spec.actions]}

    export_data = {
        "inputs": [spec_dict(spec) for spec in job.inputs],
        "output": spec_dict(job.output),
        "options": job.options.to_dict(),
    }

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(export_data, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Saved job to {path}")
    return path
