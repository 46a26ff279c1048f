"""
splat-transform - Main Entry Point.

This is the CLI entry point that uses tyro for argument parsing.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import tyro

from src.shared.exceptions import ConfigError, SplatTransformError
from src.splat_transform import __version__
from src.splat_transform.config.io import load_job
from src.splat_transform.config.parsing import parse_command_line
from src.splat_transform.config.settings import JobConfig, TransformOptions
from src.splat_transform.core.app import SplatTransformApp

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """
    Setup logging configuration.

    Parameters
    ----------
    level : str
        Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        force=True,
    )


def build_job(
    tokens: tuple[str, ...],
    job: Path | None,
    overwrite: bool,
    quiet: bool,
    log_level: str,
    chunk_color_bounds: bool,
    morton_order: bool,
) -> JobConfig:
    """Build the job from either the token list or a job file plus flags."""
    if job is not None:
        if tokens:
            raise ConfigError("File arguments cannot be combined with --job", field_name="tokens")
        config = load_job(job)
        config.options = replace(
            config.options,
            overwrite=config.options.overwrite or overwrite,
            quiet=config.options.quiet or quiet,
            chunk_color_bounds=config.options.chunk_color_bounds and chunk_color_bounds,
            morton_order_on_write=config.options.morton_order_on_write and morton_order,
        )
        return config

    inputs, output = parse_command_line(tokens)
    options = TransformOptions(
        chunk_color_bounds=chunk_color_bounds,
        morton_order_on_write=morton_order,
        overwrite=overwrite,
        quiet=quiet,
        log_level=log_level,
    )
    return JobConfig(inputs=inputs, output=output, options=options)


def main(
    tokens: Annotated[tuple[str, ...], tyro.conf.Positional] = (),
    job: Path | None = None,
    overwrite: bool = False,
    quiet: bool = False,
    log_level: str = "INFO",
    chunk_color_bounds: bool = True,
    morton_order: bool = True,
    version: bool = False,
) -> None:
    """
    Convert and transform Gaussian splat files.

    Parameters
    ----------
    tokens : tuple[str, ...]
        INPUT [ACTION...] [INPUT [ACTION...]]... OUTPUT [ACTION...]
        Actions follow the file they apply to; the last file is the output
        and its actions run on the combined inputs.
    job : Path | None
        YAML/JSON job file used instead of file arguments
    overwrite : bool
        Replace the output file if it exists (default: False)
    quiet : bool
        Only log errors and hide progress (default: False)
    log_level : str
        Logging level: DEBUG, INFO, WARNING, ERROR (default: INFO)
    chunk_color_bounds : bool
        Store per-chunk colour bounds in compressed PLY output (default: True)
    morton_order : bool
        Morton-order splats before writing compressed PLY (default: True)
    version : bool
        Print the version and exit

    Actions
    -------
    translate=x,y,z (t)          rotate=x,y,z degrees (r)    scale=f (s)
    filter-nan (N)               filter-value=name,cmp,v (V) filter-harmonics=0..3 (H)
    filter-box=x,y,z,X,Y,Z (B)   filter-sphere=x,y,z,r (S)   filter-visibility=n|n% (F)
    params=k=v,... (p)           lod=n (l)                   summary (m)
    morton-order (M)

    Examples
    --------
    Convert to compressed PLY:
        splat-transform scene.ply scene.compressed.ply

    Scale and move one input, then keep the 50% most visible splats:
        splat-transform a.ply scale=0.5 t=1,0,0 b.ply out.ply F=50%

    Print a summary without writing anything:
        splat-transform scene.ply null summary
    """
    if version:
        print(f"splat-transform {__version__}")
        return

    setup_logging("ERROR" if quiet else log_level)

    try:
        config = build_job(tokens, job, overwrite, quiet, log_level, chunk_color_bounds, morton_order)
        if job is not None:
            setup_logging(config.options.effective_log_level)

        logger.info(f"=== splat-transform v{__version__} ===")
        SplatTransformApp(config).run()
    except (SplatTransformError, FileNotFoundError) as e:
        logger.error(str(e))
        sys.exit(1)


def cli() -> None:
    """Entry point for the installed script."""
    tyro.cli(main)


if __name__ == "__main__":
    cli()
