"""
Columnar storage for per-splat attributes.

A :class:`DataTable` is an ordered mapping of column name to :class:`Column`,
where every column holds one contiguous numpy buffer of ``num_rows`` values.
Row order is meaningful (spatial locality, insertion order) and is the unit of
permutation: filters and reorderings are expressed as index arrays handed to
:meth:`DataTable.permute_rows` / :meth:`DataTable.permute_rows_in_place`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any

import numpy as np

from src.shared.exceptions import DataFormatError


logger = logging.getLogger(__name__)


class DataType(Enum):
    """Element types a column buffer may hold."""

    INT8 = "int8"
    UINT8 = "uint8"
    INT16 = "int16"
    UINT16 = "uint16"
    INT32 = "int32"
    UINT32 = "uint32"
    FLOAT32 = "float32"
    FLOAT64 = "float64"

    @property
    def dtype(self) -> np.dtype:
        """Native-endian numpy dtype for this element type."""
        return np.dtype(self.value)

    @classmethod
    def from_dtype(cls, dtype: np.dtype | str | type) -> DataType:
        """
        Map a numpy dtype (any byte order) to a DataType.

        Raises
        ------
        DataFormatError
            If the dtype is not a supported scalar element type
        """
        dtype = np.dtype(dtype)
        try:
            return cls(dtype.newbyteorder("=").name)
        except ValueError:
            supported = ", ".join(member.value for member in cls)
            raise DataFormatError(
                "Unsupported column element type",
                expected_format=supported,
                actual_format=str(dtype),
            ) from None


class Column:
    """A named, typed, contiguous 1-D buffer."""

    __slots__ = ("name", "data")

    def __init__(self, name: str, data: np.ndarray | Sequence[float]):
        """
        Initialize Column.

        Parameters
        ----------
        name : str
            Column name (case-sensitive)
        data : np.ndarray | Sequence[float]
            Values; converted to a contiguous native-endian buffer. Plain
            sequences become float32.
        """
        if not isinstance(data, np.ndarray):
            data = np.asarray(data, dtype=np.float32)
        if data.ndim != 1:
            raise DataFormatError(
                f"Column '{name}' must be one-dimensional",
                expected_format="(N,)",
                actual_format=str(data.shape),
            )
        data_type = DataType.from_dtype(data.dtype)

        self.name = name
        self.data = np.ascontiguousarray(data, dtype=data_type.dtype)

    @property
    def data_type(self) -> DataType:
        return DataType.from_dtype(self.data.dtype)

    def __len__(self) -> int:
        return self.data.shape[0]

    def clone(self) -> Column:
        return Column(self.name, self.data.copy())

    def __repr__(self) -> str:
        return f"Column(name={self.name!r}, data_type={self.data_type.value}, rows={len(self)})"


class DataTable:
    """
    Ordered collection of equal-length columns.

    Invariants:
    - column names are unique
    - every column buffer has exactly ``num_rows`` entries
    """

    def __init__(self, columns: Iterable[Column] = ()):
        self._columns: list[Column] = []
        self._index: dict[str, int] = {}
        for column in columns:
            self.add_column(column)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def num_rows(self) -> int:
        return len(self._columns[0]) if self._columns else 0

    @property
    def num_columns(self) -> int:
        return len(self._columns)

    @property
    def columns(self) -> list[Column]:
        return list(self._columns)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self._columns]

    def has_column(self, name: str) -> bool:
        return name in self._index

    def get_column(self, name: str) -> Column | None:
        """Return the named column, or None when absent."""
        index = self._index.get(name)
        return None if index is None else self._columns[index]

    def get_column_index(self, name: str) -> int:
        """Return the position of the named column, or -1 when absent."""
        return self._index.get(name, -1)

    def get_column_by_index(self, index: int) -> Column:
        return self._columns[index]

    def __len__(self) -> int:
        return self.num_rows

    def __repr__(self) -> str:
        return f"DataTable(rows={self.num_rows}, columns={self.column_names})"

    # ------------------------------------------------------------------
    # Column management
    # ------------------------------------------------------------------

    def add_column(self, column: Column) -> None:
        """
        Append a column.

        Raises
        ------
        DataFormatError
            If the name is already present or the length differs from num_rows
        """
        if column.name in self._index:
            raise DataFormatError(f"Duplicate column name: '{column.name}'")
        if self._columns and len(column) != self.num_rows:
            raise DataFormatError(
                f"Column '{column.name}' length mismatch",
                expected_format=f"{self.num_rows} rows",
                actual_format=f"{len(column)} rows",
            )
        self._index[column.name] = len(self._columns)
        self._columns.append(column)

    def remove_column(self, name: str) -> bool:
        """Remove the named column; returns False when it was absent."""
        if name not in self._index:
            return False
        del self._columns[self._index[name]]
        self._index = {column.name: i for i, column in enumerate(self._columns)}
        return True

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------

    def get_row(self, index: int, out: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Materialize one row as a ``{column_name: value}`` mapping.

        Parameters
        ----------
        index : int
            Row index
        out : dict | None
            Optional mapping to fill (and return) instead of allocating one
        """
        row = {} if out is None else out
        for column in self._columns:
            row[column.name] = column.data[index].item()
        return row

    def row_view(self, names: Sequence[str]) -> tuple[np.ndarray, ...]:
        """
        Return the buffers of the named columns for vectorised predicates.

        Raises
        ------
        DataFormatError
            If any of the named columns is missing
        """
        missing = [name for name in names if name not in self._index]
        if missing:
            raise DataFormatError(
                f"Missing column(s): {', '.join(missing)}",
                expected_format=", ".join(names),
                actual_format=", ".join(self.column_names),
            )
        return tuple(self._columns[self._index[name]].data for name in names)

    # ------------------------------------------------------------------
    # Permutation
    # ------------------------------------------------------------------

    def permute_rows(self, indices: np.ndarray | Sequence[int]) -> DataTable:
        """
        Build a new table whose rows are ``[self.row(i) for i in indices]``.

        ``indices`` may be shorter than num_rows (filtering), contain repeats,
        or be in any order (sorting).
        """
        indices = _as_index_array(indices, self.num_rows)
        return DataTable(Column(column.name, column.data[indices]) for column in self._columns)

    def permute_rows_in_place(self, indices: np.ndarray | Sequence[int]) -> None:
        """
        Reorder rows by overwriting the existing buffers.

        Raises
        ------
        DataFormatError
            If ``indices`` does not have exactly num_rows entries
        """
        indices = _as_index_array(indices, self.num_rows)
        if indices.shape[0] != self.num_rows:
            raise DataFormatError(
                "In-place permutation must keep the row count",
                expected_format=f"{self.num_rows} indices",
                actual_format=f"{indices.shape[0]} indices",
            )
        for column in self._columns:
            column.data[:] = column.data[indices]

    def clone(self) -> DataTable:
        return DataTable(column.clone() for column in self._columns)


def _as_index_array(indices: np.ndarray | Sequence[int], num_rows: int) -> np.ndarray:
    indices = np.asarray(indices)
    if indices.size == 0:
        return np.zeros(0, dtype=np.intp)
    if indices.ndim != 1 or not np.issubdtype(indices.dtype, np.integer):
        raise DataFormatError(
            "Row indices must be a 1-D integer array",
            actual_format=f"{indices.dtype} {indices.shape}",
        )
    if indices.min() < 0 or indices.max() >= num_rows:
        raise IndexError(f"Row index out of range for table with {num_rows} rows")
    return indices.astype(np.intp, copy=False)


def combine(tables: Sequence[DataTable]) -> DataTable:
    """
    Concatenate tables row-wise into a new table.

    The result holds the union of all column names, in first-seen order. A
    column missing from some input is zero-filled for that input's rows.

    Raises
    ------
    DataFormatError
        If no tables are given or a column name is used with different types
    """
    tables = list(tables)
    if not tables:
        raise DataFormatError("Cannot combine an empty list of tables")
    if len(tables) == 1:
        return tables[0]

    dtypes: dict[str, np.dtype] = {}
    for table in tables:
        for column in table.columns:
            existing = dtypes.setdefault(column.name, column.data.dtype)
            if existing != column.data.dtype:
                raise DataFormatError(
                    f"Column '{column.name}' has conflicting types across inputs",
                    expected_format=str(existing),
                    actual_format=str(column.data.dtype),
                )

    total_rows = sum(table.num_rows for table in tables)
    result = DataTable()
    for name, dtype in dtypes.items():
        data = np.zeros(total_rows, dtype=dtype)
        offset = 0
        for table in tables:
            column = table.get_column(name)
            if column is not None:
                data[offset:offset + table.num_rows] = column.data
            offset += table.num_rows
        result.add_column(Column(name, data))

    filled = [
        name for name in dtypes
        if any(not table.has_column(name) for table in tables)
    ]
    if filled:
        logger.debug("Combine zero-filled columns missing from some inputs: %s", filled)

    logger.debug("Combined %d tables into %d rows", len(tables), total_rows)
    return result
