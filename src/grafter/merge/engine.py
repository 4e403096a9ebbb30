"""
MergeEngine: decide create-vs-merge for each file entry and apply it.

Pipeline per entry:
1. Resolve the project-relative path from the Environment
2. Read the existing file, if any
3. Produce text (text entries) or parse + mutate + print (structured entries)
4. Write only when the result differs from what is on disk
"""

import copy
import difflib
import json
from typing import Any, Optional

from grafter.exceptions import EntrySkipped, ManifestError
from grafter.logging_config import logger
from grafter.manifest.model import FileContext, FileEntry
from grafter.schemas import Environment, FileOperation

from .config import MERGE_CONFIG, detect_script_language
from .data import parse_json, print_json, splice_json
from .filetree import FileTree, normalize_path
from .markup import SvelteDocument
from .script import ScriptTree
from .text import merge_env_lines


class MergeEngine:
    """
    Apply file entries to a file tree, one at a time.

    Errors raised here (ParseFailure, StructuralAnchorNotFound,
    FileWriteError, ManifestError) concern only the entry being applied;
    the caller records them and moves on to the next entry. A producer that
    raises EntrySkipped yields a skipped operation carrying its reason.
    """

    def __init__(self, tree: FileTree, config: Optional[dict] = None, dry_run: bool = False):
        self.tree = tree
        self.dry_run = dry_run
        self.config = {**MERGE_CONFIG, **(config or {})}

    def resolve_path(self, entry: FileEntry, environment: Environment) -> str:
        return normalize_path(entry.name(environment))

    def apply(self, entry: FileEntry, options: Any, environment: Environment) -> FileOperation:
        """
        Create or merge the file described by ``entry``.

        Returns:
            FileOperation recording created / merged / skipped
        """
        path = self.resolve_path(entry, environment)
        exists = self.tree.exists(path)
        original = self.tree.read(path) if exists else ""
        ctx = FileContext(
            options=options,
            environment=environment,
            path=path,
            exists=exists,
            content=original,
            dry_run=self.dry_run,
        )

        if entry.kind == "text" and exists and entry.existing == "skip":
            logger.debug(f"{path}: exists, creation-only entry skipped")
            return FileOperation(path=path, operation="skipped", content=original)

        try:
            result = self._produce(entry, ctx)
        except EntrySkipped as e:
            logger.info(f"Skipped {path}: {e.reason}")
            return FileOperation(path=path, operation="skipped", content=original, note=e.reason)

        if exists and result == original:
            logger.debug(f"{path}: already up to date")
            return FileOperation(path=path, operation="skipped", content=original)

        self.tree.write(path, result)
        if not exists:
            logger.info(f"Created {path}")
            return FileOperation(path=path, operation="created", content=result)

        logger.info(f"Merged into {path}")
        return FileOperation(
            path=path,
            operation="merged",
            content=result,
            diff=self._diff(path, original, result),
        )

    def _produce(self, entry: FileEntry, ctx: FileContext) -> str:
        if entry.kind == "text":
            return self._produce_text(entry, ctx)
        if entry.kind == "script":
            return self._merge_script(entry, ctx)
        if entry.kind == "markup":
            return self._merge_markup(entry, ctx)
        return self._merge_json(entry, ctx)

    def _produce_text(self, entry: FileEntry, ctx: FileContext) -> str:
        existing = ctx.content
        if entry.existing != "transform":
            # Producers build the full text for a fresh file
            ctx.content = ""
        text = entry.content(ctx)
        if not isinstance(text, str):
            raise ManifestError(f"Text producer for {ctx.path} returned {type(text).__name__}, expected str")
        if ctx.exists and entry.existing == "lines":
            return merge_env_lines(existing, text)
        return text

    def _merge_script(self, entry: FileEntry, ctx: FileContext) -> str:
        ast = ScriptTree(ctx.content, detect_script_language(ctx.path), path=ctx.path)
        ctx.ast = ast
        entry.content(ctx)
        return ast.print()

    def _merge_markup(self, entry: FileEntry, ctx: FileContext) -> str:
        document = SvelteDocument(ctx.content, path=ctx.path, typescript=ctx.environment.typescript)
        ctx.ast = document
        ctx.script = document.script
        ctx.html = document.html
        entry.content(ctx)
        return document.print()

    def _merge_json(self, entry: FileEntry, ctx: FileContext) -> str:
        data = parse_json(ctx.content, ctx.path)
        before = copy.deepcopy(dict(data))
        ctx.data = data
        entry.content(ctx)
        if ctx.exists and dict(data) == before:
            return ctx.content
        if not ctx.content.strip():
            return print_json(data)

        spliced = splice_json(ctx.content, before, data, ctx.path, data.indent)
        if json.loads(spliced) == dict(data):
            return spliced
        # The producer replaced or removed existing members
        logger.debug(f"{ctx.path}: changes go beyond added keys, reprinting the document")
        return print_json(data)

    def _diff(self, path: str, original: str, modified: str) -> str:
        diff_lines = list(difflib.unified_diff(
            original.splitlines(keepends=True),
            modified.splitlines(keepends=True),
            fromfile=f"a/{path}",
            tofile=f"b/{path}",
        ))
        limit = self.config["max_diff_lines"]
        if len(diff_lines) > limit:
            omitted = len(diff_lines) - limit
            diff_lines = diff_lines[:limit] + [f"... ({omitted} more diff lines)\n"]
        return "".join(diff_lines)
