"""
Processing subsystem: the action pipeline and its execution context.
"""

from .context import ProcessingContext, ProgressReporter
from .pipeline import process_data_table


__all__ = [
    "ProcessingContext",
    "ProgressReporter",
    "process_data_table",
]
