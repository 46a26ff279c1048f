"""
Custom exceptions for splat-transform.

This module provides domain-specific exceptions for better error handling
and clearer error messages throughout the application.

Clean Architecture Note:
- This file belongs to the Shared layer (cross-cutting concerns)
- Can be imported by any layer (domain, infrastructure, application)

Format mismatch is never an exception: detection predicates return False and
the caller tries the next format.
"""


class SplatTransformError(Exception):
    """Base exception for all splat-transform errors."""

    pass


class DataFormatError(SplatTransformError):
    """Raised when data is in an unexpected or invalid format."""

    def __init__(
        self,
        message: str,
        expected_format: str | None = None,
        actual_format: str | None = None,
    ):
        """
        Initialize DataFormatError.

        Parameters
        ----------
        message : str
            Error message
        expected_format : str | None
            Expected data format
        actual_format : str | None
            Actual data format encountered
        """
        self.expected_format = expected_format
        self.actual_format = actual_format

        full_message = message
        if expected_format and actual_format:
            full_message = f"{full_message} (expected: {expected_format}, got: {actual_format})"
        elif expected_format:
            full_message = f"{full_message} (expected: {expected_format})"

        super().__init__(full_message)


class MalformedInputError(SplatTransformError):
    """Raised when an input file was recognised but its contents are unusable."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ):
        """
        Initialize MalformedInputError.

        Parameters
        ----------
        message : str
            Error message
        path : str | None
            Path of the offending input file
        expected : str | None
            What the reader expected to find
        actual : str | None
            What the reader found instead
        """
        self.path = path
        self.expected = expected
        self.actual = actual

        full_message = message
        if expected and actual:
            full_message = f"{full_message} (expected: {expected}, got: {actual})"
        if path:
            full_message = f"{full_message} (file: {path})"

        super().__init__(full_message)


class ConfigError(SplatTransformError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        config_path: str | None = None,
        field_name: str | None = None,
    ):
        """
        Initialize ConfigError.

        Parameters
        ----------
        message : str
            Error message
        config_path : str | None
            Path to the config file
        field_name : str | None
            Name of the invalid/missing config field
        """
        self.config_path = config_path
        self.field_name = field_name

        full_message = message
        if field_name:
            full_message = f"{full_message} (field: {field_name})"
        if config_path:
            full_message = f"{full_message} (config: {config_path})"

        super().__init__(full_message)


class NoDataError(SplatTransformError):
    """Raised when a pipeline ends with no splats to write."""

    def __init__(self, message: str = "No Gaussians to write", stage: str | None = None):
        self.stage = stage

        full_message = message
        if stage:
            full_message = f"{full_message} (stage: {stage})"

        super().__init__(full_message)


class OutputExistsError(SplatTransformError):
    """Raised when the destination exists and overwriting was not requested."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File '{path}' already exists. Use --overwrite to replace it.")
