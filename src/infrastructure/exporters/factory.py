"""
Factory for creating exporter instances based on format.

Provides centralized registration and creation of exporters, and maps output
file names to formats through the registered file extensions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from src.domain.interfaces import ExporterInterface
from src.infrastructure.exporters.compressed_ply_exporter import CompressedPlyExporter
from src.infrastructure.exporters.csv_exporter import CsvExporter, NullExporter
from src.infrastructure.exporters.ply_exporter import PlyExporter
from src.shared.exceptions import ConfigError


logger = logging.getLogger(__name__)


class ExportFormat(Enum):
    """Supported output formats."""
    PLY = "ply"
    COMPRESSED_PLY = "compressed-ply"
    CSV = "csv"
    NULL = "null"


@dataclass
class ExporterInfo:
    """Information about a registered exporter."""
    format: str
    exporter_class: type[ExporterInterface]
    description: str
    file_extension: str

    def matches(self, filename: str) -> bool:
        """True if ``filename`` (lower case, no directory) selects this format.

        Formats without an extension are selected by their literal name.
        """
        if self.file_extension:
            return filename.endswith(self.file_extension)
        return filename == self.format


class ExporterFactory:
    """
    Factory for creating exporter instances.

    Supports registration of custom exporters and creation based on a format
    string or enum.
    """

    _exporters: dict[str, ExporterInfo] = {}

    @classmethod
    def _register_builtin_exporters(cls) -> None:
        """Register built-in exporters."""
        if not cls._exporters:  # Only register once
            cls.register("ply", PlyExporter, description="Standard PLY format")
            cls.register(
                "compressed-ply",
                CompressedPlyExporter,
                description="Compressed PLY format (16 bytes/splat)",
            )
            cls.register("csv", CsvExporter, description="Comma-separated values")
            cls.register("null", NullExporter, description="Discard output")

    @classmethod
    def create(cls, format: str | ExportFormat, **config: Any) -> ExporterInterface:
        """
        Create exporter instance for specified format.

        Parameters
        ----------
        format : str | ExportFormat
            Export format (string or enum)
        **config : Any
            Configuration options passed to exporter constructor

        Returns
        -------
        ExporterInterface
            Configured exporter instance

        Raises
        ------
        ConfigError
            If format is not registered

        Examples
        --------
        >>> exporter = ExporterFactory.create("ply")
        >>> exporter = ExporterFactory.create(ExportFormat.COMPRESSED_PLY, morton_order=False)
        """
        exporter_info = cls.get_exporter_info(format)

        if exporter_info is None:
            available = ", ".join(cls.get_available_formats())
            raise ConfigError(
                f"Unknown export format: '{format}'. Available formats: {available}",
                field_name="format",
            )

        logger.debug(f"Creating {exporter_info.format.upper()} exporter with config: {config}")

        return exporter_info.exporter_class(**config)

    @classmethod
    def register(
        cls,
        format: str,
        exporter_class: type[ExporterInterface],
        description: str = "",
        file_extension: str | None = None,
    ) -> None:
        """
        Register an exporter for a format.

        Parameters
        ----------
        format : str
            Format name (e.g., "ply", "csv")
        exporter_class : type[ExporterInterface]
            Exporter class implementing ExporterInterface
        description : str
            Human-readable description
        file_extension : str | None
            File extension (e.g., ".ply"); defaults to what a default-constructed
            exporter reports from ``get_file_extension()``
        """
        format_lower = format.lower()
        logger.debug(f"Registering exporter for format: {format_lower}")

        if file_extension is None:
            file_extension = exporter_class().get_file_extension()

        cls._exporters[format_lower] = ExporterInfo(
            format=format_lower,
            exporter_class=exporter_class,
            description=description or f"{format_lower.upper()} exporter",
            file_extension=file_extension.lower(),
        )

    @classmethod
    def get_available_formats(cls) -> list[str]:
        """Sorted list of registered format names."""
        cls._register_builtin_exporters()
        return sorted(cls._exporters.keys())

    @classmethod
    def get_exporter_info(cls, format: str | ExportFormat) -> ExporterInfo | None:
        """Registration details of a format, or None if unknown."""
        cls._register_builtin_exporters()

        if isinstance(format, ExportFormat):
            format = format.value

        return cls._exporters.get(format.lower())


def get_output_format(filename: str | Path) -> ExportFormat:
    """
    Infer the output format from a file name.

    Registered extensions are matched longest first, so ``.compressed.ply``
    wins over ``.ply``; the literal name ``null`` selects the null output.

    Raises
    ------
    ConfigError
        If the extension is not a supported output format
    """
    name = Path(filename).name.lower()
    infos = [ExporterFactory.get_exporter_info(fmt) for fmt in ExportFormat]
    infos.sort(key=lambda info: len(info.file_extension), reverse=True)

    for info in infos:
        if info.matches(name):
            return ExportFormat(info.format)

    supported = ", ".join(f"{info.file_extension or info.format} ({info.description})" for info in infos)
    raise ConfigError(
        f"Unsupported output file type: {filename}. Supported: {supported}",
        field_name="output",
    )
