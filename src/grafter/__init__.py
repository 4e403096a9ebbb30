"""
Grafter - Declarative Project Mutation Engine

Adds backend integrations to existing projects by merging generated code
into the files that are already there.
"""

__version__ = "0.1.0"

# Core exports
from grafter.exceptions import (
    GrafterError,
    ValidationError,
    ManifestError,
    ParseFailure,
    StructuralAnchorNotFound,
    FileWriteError,
    CommandExecutionError,
)
from grafter.options import OptionSchema, OptionSpec, Requires, ResolvedOptions, resolve
from grafter.printer import create_printer, dedent
from grafter.manifest import CommandEntry, DependencyEntry, FileEntry, Manifest, evaluate
from grafter.merge import DiskFileTree, MemoryFileTree, OverlayFileTree, MergeEngine
from grafter.plan import Feature, apply_feature, plan
from grafter.runner import CommandRunner
from grafter.schemas import Environment, MutationPlan

__all__ = [
    "__version__",
    "GrafterError",
    "ValidationError",
    "ManifestError",
    "ParseFailure",
    "StructuralAnchorNotFound",
    "FileWriteError",
    "CommandExecutionError",
    "OptionSchema",
    "OptionSpec",
    "Requires",
    "ResolvedOptions",
    "resolve",
    "create_printer",
    "dedent",
    "CommandEntry",
    "DependencyEntry",
    "FileEntry",
    "Manifest",
    "evaluate",
    "DiskFileTree",
    "MemoryFileTree",
    "OverlayFileTree",
    "MergeEngine",
    "Feature",
    "apply_feature",
    "plan",
    "CommandRunner",
    "Environment",
    "MutationPlan",
]
