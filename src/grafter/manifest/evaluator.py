"""
Manifest evaluation: filter entries by their conditions.
"""

from typing import Any, Iterable, List, TypeVar

from grafter.exceptions import ManifestError
from grafter.logging_config import logger
from grafter.schemas import Environment

from .model import ActiveManifest, Manifest

T = TypeVar("T")


def evaluate(manifest: Manifest, options: Any, environment: Environment) -> ActiveManifest:
    """
    Select the entries that apply to this run.

    Each condition is called exactly once; entries without a condition are
    always active. Declaration order is preserved within each kind.

    Raises:
        ManifestError: if a condition raises
    """
    active = ActiveManifest(
        dependencies=_filter("dependency", manifest.dependencies, options, environment),
        commands=_filter("command", manifest.commands, options, environment),
        files=_filter("file", manifest.files, options, environment),
    )
    logger.debug(
        f"Manifest evaluated: {len(active.dependencies)} dependencies, "
        f"{len(active.commands)} commands, {len(active.files)} files"
    )
    return active


def _filter(kind: str, entries: Iterable[T], options: Any, environment: Environment) -> List[T]:
    selected: List[T] = []
    for index, entry in enumerate(entries):
        condition = getattr(entry, "condition", None)
        if condition is None:
            selected.append(entry)
            continue
        try:
            keep = bool(condition(options, environment))
        except Exception as e:
            raise ManifestError(f"Condition of {kind} entry #{index} failed: {e}") from e
        if keep:
            selected.append(entry)
    return selected
