"""
Manifest package: declarative feature entries and their evaluation.
"""

from .model import (
    ActiveManifest,
    CommandEntry,
    DependencyEntry,
    FileContext,
    FileEntry,
    Manifest,
)
from .evaluator import evaluate

__all__ = [
    "ActiveManifest",
    "CommandEntry",
    "DependencyEntry",
    "FileContext",
    "FileEntry",
    "Manifest",
    "evaluate",
]
