"""
Data format validation for Gaussian splatting tables.

This module provides validation functions to ensure data is in the correct
format before processing, catching errors early and providing helpful messages.
"""
import logging

import numpy as np

from src.domain.table import DataTable
from src.infrastructure.processing.gaussian_constants import (
    GAUSSIAN_COLUMNS,
    SH_REST_COLUMNS,
    GaussianConstants as GC,
)
from src.shared.exceptions import DataFormatError, MalformedInputError, NoDataError

logger = logging.getLogger(__name__)


class DataFormatValidator:
    """Validator for Gaussian splatting tables."""

    @staticmethod
    def validate_gaussian_table(table: DataTable, check_sh: bool = True) -> tuple[bool, list[str]]:
        """
        Validate a DataTable for use as splat data.

        Parameters
        ----------
        table : DataTable
            The table to validate
        check_sh : bool
            Also require a valid f_rest_* layout

        Returns
        -------
        tuple[bool, list[str]]
            (is_valid, list_of_error_messages)
        """
        errors = []

        missing = [name for name in GAUSSIAN_COLUMNS if not table.has_column(name)]
        if missing:
            errors.append(f"Missing splat columns: {', '.join(missing)}")

        for name in GAUSSIAN_COLUMNS:
            column = table.get_column(name)
            if column is not None and not np.issubdtype(column.data.dtype, np.floating):
                errors.append(f"Column '{name}' must be floating point, got {column.data.dtype}")

        if table.num_rows == 0:
            errors.append("Table has no rows")

        if check_sh:
            is_valid, message = DataFormatValidator.validate_sh_format(table)
            if not is_valid:
                errors.append(message)

        return len(errors) == 0, errors

    @staticmethod
    def validate_sh_format(table: DataTable) -> tuple[bool, str]:
        """
        Validate the f_rest_* columns of a table.

        The coefficients must form a contiguous run ``f_rest_0..f_rest_{n-1}``
        with n in (0, 9, 24, 45).

        Returns
        -------
        tuple[bool, str]
            (is_valid, error_message_or_info)
        """
        present = [name for name in SH_REST_COLUMNS if table.has_column(name)]
        count = len(present)
        valid_counts = tuple(3 * k for k in GC.SH.BAND_COEFFS)

        if count not in valid_counts:
            return False, f"Invalid SH coefficient count: {count} (expected one of {valid_counts})"
        if present != list(SH_REST_COLUMNS[:count]):
            return False, "SH coefficient columns are not contiguous from f_rest_0"

        bands = valid_counts.index(count)
        return True, f"SH bands: {bands} ({count} coefficients)"


def validate_input_table(table: DataTable, path: str) -> None:
    """
    Check a freshly read table before it enters the pipeline.

    Raises
    ------
    MalformedInputError
        If the table is empty or not splat data
    """
    is_valid, errors = DataFormatValidator.validate_gaussian_table(table, check_sh=False)
    if not is_valid:
        raise MalformedInputError(
            "Unsupported data in file: " + "; ".join(errors),
            path=path,
        )


def validate_before_export(table: DataTable | None, target_format: str = "ply") -> None:
    """
    Validate data before exporting to file.

    Parameters
    ----------
    table : DataTable | None
        Data to validate
    target_format : str
        Target export format ("ply", "compressed-ply", etc.)

    Raises
    ------
    NoDataError
        If there are no rows to write
    DataFormatError
        If a compressed export lacks splat columns
    """
    if table is None or table.num_rows == 0:
        raise NoDataError(stage=f"export {target_format}")

    if target_format == "compressed-ply":
        is_valid, errors = DataFormatValidator.validate_gaussian_table(table)
        if not is_valid:
            error_msg = f"Cannot export to {target_format}, data validation failed: "
            error_msg += "; ".join(errors)
            raise DataFormatError(error_msg)

    logger.debug(f"Data validation passed for {target_format} export")


# Export convenience functions
__all__ = [
    "DataFormatValidator",
    "validate_before_export",
    "validate_input_table",
]
