"""
Domain service exports.

Numeric services over splat tables: rigid transforms, SH rotation,
reorderings and column statistics.
"""

from .ordering import compute_visibility, encode_morton3, sort_by_visibility, sort_morton_order
from .sh_rotation import RotateSH
from .summary import compute_summary, format_markdown
from .transform import TransformService, transform


__all__ = [
    "RotateSH",
    "TransformService",
    "compute_summary",
    "compute_visibility",
    "encode_morton3",
    "format_markdown",
    "sort_by_visibility",
    "sort_morton_order",
    "transform",
]
