"""
Modular exporter infrastructure for splat tables.

This package provides pluggable exporters for different file formats,
following the ExporterInterface protocol from the domain layer.
"""

from src.infrastructure.exporters.compressed_ply_exporter import CompressedPlyExporter
from src.infrastructure.exporters.csv_exporter import CsvExporter, NullExporter
from src.infrastructure.exporters.factory import ExporterFactory, ExportFormat, get_output_format
from src.infrastructure.exporters.ply_exporter import PlyExporter


__all__ = [
    "CompressedPlyExporter",
    "CsvExporter",
    "ExportFormat",
    "ExporterFactory",
    "NullExporter",
    "PlyExporter",
    "get_output_format",
]
