"""
Merge package: structural, idempotent edits into existing project files.

Provides the create-vs-merge engine plus the parse/print collaborators it
drives (tree-sitter scripts, Svelte components, JSON, line-oriented text).
"""

from .engine import MergeEngine
from .filetree import FileTree, DiskFileTree, MemoryFileTree, OverlayFileTree, normalize_path
from .script import ScriptTree
from .markup import SvelteDocument, MarkupSection
from .data import JsonData, JsonSource, parse_json, print_json, set_default, set_defaults, splice_json
from .text import append_content, env_keys, merge_env_lines, replace_in_table, replace_literals
from .config import MERGE_CONFIG, detect_script_language

__all__ = [
    # Engine
    "MergeEngine",

    # File trees
    "FileTree",
    "DiskFileTree",
    "MemoryFileTree",
    "OverlayFileTree",
    "normalize_path",

    # Structures
    "ScriptTree",
    "SvelteDocument",
    "MarkupSection",
    "JsonData",
    "JsonSource",
    "parse_json",
    "print_json",
    "set_default",
    "set_defaults",
    "splice_json",

    # Text edits
    "append_content",
    "env_keys",
    "merge_env_lines",
    "replace_in_table",
    "replace_literals",

    # Configuration
    "MERGE_CONFIG",
    "detect_script_language",
]
