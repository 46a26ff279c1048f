"""
Conversion run: read inputs, process, combine and write one output.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np

from src.domain.table import DataTable, combine
from src.infrastructure.exporters import ExporterFactory, ExportFormat, get_output_format
from src.infrastructure.processing.data_validation import validate_before_export, validate_input_table
from src.infrastructure.processing.gaussian_constants import ENVIRONMENT_LOD, LOD_COLUMN
from src.infrastructure.processing.ply import load_splat_table
from src.shared.exceptions import MalformedInputError, NoDataError, OutputExistsError
from src.shared.perf import PerfMonitor
from src.splat_transform.config.settings import JobConfig, TransformOptions
from src.splat_transform.processing import ProcessingContext, process_data_table


logger = logging.getLogger(__name__)

READABLE_SUFFIXES = (".ply",)


def read_file(file_path: str | Path) -> list[DataTable]:
    """
    Read a splat file into one or more tables.

    Raises
    ------
    MalformedInputError
        If the file type is not readable or the contents are unusable
    FileNotFoundError
        If the file does not exist
    """
    path = Path(file_path)
    if path.suffix.lower() not in READABLE_SUFFIXES:
        raise MalformedInputError(
            "Unsupported input file type",
            path=str(path),
            expected=", ".join(READABLE_SUFFIXES),
            actual=path.suffix or "no extension",
        )
    return [load_splat_table(path)]


def write_file(
    file_path: str | Path,
    format: ExportFormat | str,
    table: DataTable,
    env_table: DataTable | None = None,
    options: TransformOptions | None = None,
) -> None:
    """
    Write ``table`` (and optionally ``env_table``) in the given format.

    Parameters
    ----------
    file_path : str | Path
        Destination; ignored by the null format
    format : ExportFormat | str
        Output format
    table : DataTable
        Splats to write
    env_table : DataTable | None
        Environment splats (lod -1), kept apart from ``table``
    options : TransformOptions | None
        Encoder options
    """
    options = options or TransformOptions()
    format = ExportFormat(format) if isinstance(format, str) else format

    exporter_config: dict[str, Any] = {}
    if format is ExportFormat.COMPRESSED_PLY:
        exporter_config = {
            "chunk_color_bounds": options.chunk_color_bounds,
            "morton_order": options.morton_order_on_write,
        }

    validate_before_export(table, format.value)
    exporter = ExporterFactory.create(format, **exporter_config)
    exporter.export(table, file_path, env_table=env_table)


def is_environment_table(table: DataTable) -> bool:
    """True when every splat is tagged with the environment lod."""
    column = table.get_column(LOD_COLUMN)
    return column is not None and bool(np.all(column.data == ENVIRONMENT_LOD))


class SplatTransformApp:
    """
    One conversion job.

    Usage:
        job = JobConfig(inputs=[FileSpec("in.ply", [Scale(0.5)])], output=FileSpec("out.ply"))
        SplatTransformApp(job).run()
    """

    def __init__(self, job: JobConfig, context: ProcessingContext | None = None):
        self.job = job
        self.options = job.options
        self.context = context or ProcessingContext.create(quiet=job.options.quiet)

    @property
    def output_format(self) -> ExportFormat:
        return get_output_format(self.job.output.filename)

    def _check_output(self, output_format: ExportFormat) -> Path | None:
        if output_format is ExportFormat.NULL:
            return None

        output_path = Path(self.job.output.filename)
        if output_path.exists() and not self.options.overwrite:
            raise OutputExistsError(str(output_path))
        return output_path

    def _read_inputs(self) -> list[DataTable]:
        tables: list[DataTable] = []
        for spec in self.job.inputs:
            self.context.logger.info(f"Reading '{spec.filename}'")
            for table in read_file(spec.filename):
                validate_input_table(table, spec.filename)
                tables.append(process_data_table(table, spec.actions, self.context))
        return tables

    def run(self) -> DataTable:
        """
        Execute the job.

        Returns
        -------
        DataTable
            The combined, processed table (also what was written)

        Raises
        ------
        OutputExistsError
            If the output exists and overwrite is off (checked before any reading)
        NoDataError
            If no splats are left to write
        """
        monitor = PerfMonitor("job")
        output_format = self.output_format
        output_path = self._check_output(output_format)
        output_actions = self.job.output.actions

        with monitor.track("read"):
            tables = self._read_inputs()

        env_tables = [table for table in tables if is_environment_table(table)]
        splat_tables = [table for table in tables if not is_environment_table(table)]
        if not splat_tables:
            raise NoDataError()

        with monitor.track("process"):
            data_table = process_data_table(combine(splat_tables), output_actions, self.context)
            if data_table.num_rows == 0:
                raise NoDataError()

            env_table = None
            if env_tables:
                env_table = process_data_table(combine(env_tables), output_actions, self.context)
                self.context.logger.info(f"Environment splats: {env_table.num_rows}")

        self.context.logger.info(
            f"Loaded {data_table.num_rows} splats with {data_table.num_columns} columns"
        )

        if output_path is not None:
            with monitor.track("write"):
                write_file(output_path, output_format, data_table, env_table, self.options)
            self.context.logger.info(f"Wrote '{output_path}' ({output_format.value})")
        else:
            self.context.logger.info("Null output, nothing written")

        monitor.log_summary(logger)
        return data_table
