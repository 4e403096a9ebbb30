"""
Declarative manifest entries describing one installable feature.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from grafter.exceptions import ManifestError
from grafter.schemas import Environment

Condition = Callable[[Any, Environment], bool]

FILE_KINDS = ("text", "script", "markup", "json")
EXISTING_POLICIES = ("skip", "lines", "transform")


@dataclass(frozen=True)
class DependencyEntry:
    """A package to declare in the project's package manifest."""
    name: str
    version: str
    dev: bool = False
    condition: Optional[Condition] = None


@dataclass(frozen=True)
class CommandEntry:
    """An external command run (blocking) after dependencies are declared."""
    description: str
    args: Tuple[str, ...]
    capture: bool = True
    condition: Optional[Condition] = None


@dataclass(frozen=True)
class FileEntry:
    """
    A file to create or merge into.

    ``name`` maps the Environment to a project-relative path. ``content``
    receives a FileContext: for ``text`` entries it returns the full text
    (``ctx.content`` holds the existing text when ``existing="transform"``);
    for structured kinds it mutates ``ctx.ast`` / ``ctx.script`` and
    ``ctx.html`` / ``ctx.data`` in place and returns nothing.
    """
    name: Callable[[Environment], str]
    content: Callable[["FileContext"], Optional[str]]
    kind: str = "text"
    existing: str = "skip"
    condition: Optional[Condition] = None

    def __post_init__(self):
        if self.kind not in FILE_KINDS:
            raise ManifestError(f"Unknown file kind '{self.kind}'")
        if self.existing not in EXISTING_POLICIES:
            raise ManifestError(f"Unknown existing-file policy '{self.existing}'")


@dataclass
class FileContext:
    """Everything a content producer may read (and, for trees, mutate)."""
    options: Any
    environment: Environment
    path: str
    exists: bool = False
    content: str = ""
    ast: Any = None
    script: Any = None
    html: Any = None
    data: Optional[Dict[str, Any]] = None
    dry_run: bool = False

    @property
    def typescript(self) -> bool:
        return self.environment.typescript


@dataclass(frozen=True)
class Manifest:
    """Dependency, command and file entries in declaration order."""
    dependencies: Tuple[DependencyEntry, ...] = ()
    commands: Tuple[CommandEntry, ...] = ()
    files: Tuple[FileEntry, ...] = ()


@dataclass
class ActiveManifest:
    """Entries whose condition held for one run, split by application phase."""
    dependencies: List[DependencyEntry] = field(default_factory=list)
    commands: List[CommandEntry] = field(default_factory=list)
    files: List[FileEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.dependencies) + len(self.commands) + len(self.files)
