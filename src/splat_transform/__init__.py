"""
splat-transform application layer.

Job configuration, the action pipeline and the command-line entry point.
"""

__version__ = "0.1.0"
