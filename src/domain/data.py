"""
Section-level container shared by readers and writers.

Loaders produce a PlyContainer (a sequence of named sections, each one a
DataTable), the codec and the pipeline turn it into a single splat DataTable,
and exporters turn a DataTable back into a PlyContainer before serialising it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from src.domain.constants import GAUSSIAN_COLUMNS
from src.domain.table import DataTable


logger = logging.getLogger(__name__)


@dataclass
class PlySection:
    """One named element of a PLY file (e.g. ``vertex``, ``chunk``, ``sh``)."""

    name: str
    table: DataTable

    @property
    def num_rows(self) -> int:
        return self.table.num_rows


@dataclass
class PlyContainer:
    """Ordered list of sections plus the header comments of the file.

    Attributes:
        sections: Sections in file order
        comments: Header comment lines (without the ``comment`` keyword)
        source_path: Original file path (for error messages)
    """

    sections: list[PlySection] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    source_path: str | None = None

    @property
    def num_sections(self) -> int:
        return len(self.sections)

    def get_section(self, name: str) -> PlySection | None:
        """Return the first section with the given name, or None."""
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def section_names(self) -> list[str]:
        return [section.name for section in self.sections]


def is_gaussian_table(table: DataTable) -> bool:
    """True when ``table`` carries every column a splat needs."""
    return all(table.has_column(name) for name in GAUSSIAN_COLUMNS)
