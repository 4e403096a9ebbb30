"""
Option model: declared feature options and their validated resolution.
"""

from .schema import OptionSpec, OptionSchema, Requires, Excludes, is_set
from .resolver import ResolvedOptions, resolve, coerce_cli_value

__all__ = [
    "OptionSpec",
    "OptionSchema",
    "Requires",
    "Excludes",
    "is_set",
    "ResolvedOptions",
    "resolve",
    "coerce_cli_value",
]
