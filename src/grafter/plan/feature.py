"""
Feature: everything needed to install one backend integration.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Tuple

from grafter.manifest.model import Manifest
from grafter.options.schema import OptionSchema
from grafter.schemas import Environment

NextSteps = Callable[[Any, Environment], List[str]]


def _no_steps(options: Any, environment: Environment) -> List[str]:
    return []


@dataclass(frozen=True)
class Feature:
    """
    A named option schema, manifest and follow-up instructions.

    ``declare_dependencies`` adds the manifest's packages to an existing
    ``package.json`` (insert-if-absent) during the dependency phase.
    """
    id: str
    name: str
    schema: OptionSchema
    manifest: Manifest
    description: str = ""
    documentation: str = ""
    keywords: Tuple[str, ...] = field(default_factory=tuple)
    next_steps: NextSteps = _no_steps
    declare_dependencies: bool = True
