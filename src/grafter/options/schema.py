"""
Option schema: declared feature options and the constraints between them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple, Union

from grafter.exceptions import ManifestError

OPTION_KINDS = ("select", "multiselect", "boolean")


@dataclass(frozen=True)
class OptionSpec:
    """
    One user-facing option.

    ``allowed`` is ignored for boolean options. The default of a
    multiselect option is a sequence of allowed values.
    """
    key: str
    kind: str
    question: str = ""
    allowed: Tuple[Any, ...] = ()
    default: Any = None

    def __post_init__(self):
        if self.kind not in OPTION_KINDS:
            raise ManifestError(f"Option '{self.key}' has unknown kind '{self.kind}'")
        if self.kind == "boolean":
            object.__setattr__(self, "allowed", (True, False))
            if self.default is None:
                object.__setattr__(self, "default", False)
        elif self.kind == "multiselect":
            object.__setattr__(self, "default", tuple(self.default or ()))
        elif self.default is None and self.allowed:
            object.__setattr__(self, "default", self.allowed[0])


Target = Union[str, Tuple[str, Any]]


def _split_target(target: Target) -> Tuple[str, Any]:
    if isinstance(target, tuple):
        return target
    return target, None


@dataclass(frozen=True)
class Requires:
    """
    ``option`` (optionally only a particular value of it) is valid only when
    ``needs`` is set. ``needs`` is either an option key or a ``(key, value)``
    pair; several alternatives may be given, any one of which suffices.
    """
    option: Target
    needs: Sequence[Target]
    message: Optional[str] = None

    def describe(self) -> str:
        if self.message:
            return self.message
        key, value = _split_target(self.option)
        subject = f"'{key}={value}'" if value is not None else f"'{key}'"
        wanted = " or ".join(_format_target(t) for t in self.needs)
        return f"{subject} requires {wanted}"


@dataclass(frozen=True)
class Excludes:
    """At most one of ``values`` may be selected for the multiselect ``option``."""
    option: str
    values: Tuple[Any, ...]
    message: Optional[str] = None

    def describe(self) -> str:
        if self.message:
            return self.message
        listed = ", ".join(repr(v) for v in self.values)
        return f"'{self.option}' accepts only one of {listed}"


Constraint = Union[Requires, Excludes]


def _format_target(target: Target) -> str:
    key, value = _split_target(target)
    return f"'{key}={value}'" if value is not None else f"'{key}'"


@dataclass(frozen=True)
class OptionSchema:
    """Ordered collection of option specs plus inter-option constraints."""
    options: Tuple[OptionSpec, ...]
    constraints: Tuple[Constraint, ...] = field(default_factory=tuple)

    def __post_init__(self):
        keys = [spec.key for spec in self.options]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ManifestError(f"Duplicate option keys: {', '.join(duplicates)}")
        for constraint in self.constraints:
            for target in _constraint_targets(constraint):
                if target not in keys:
                    raise ManifestError(f"Constraint references unknown option '{target}'")

    def __iter__(self) -> Iterator[OptionSpec]:
        return iter(self.options)

    def __contains__(self, key: str) -> bool:
        return any(spec.key == key for spec in self.options)

    def get(self, key: str) -> Optional[OptionSpec]:
        for spec in self.options:
            if spec.key == key:
                return spec
        return None

    def defaults(self) -> Dict[str, Any]:
        return {spec.key: spec.default for spec in self.options}


def _constraint_targets(constraint: Constraint) -> Iterator[str]:
    if isinstance(constraint, Excludes):
        yield constraint.option
        return
    yield _split_target(constraint.option)[0]
    for target in constraint.needs:
        yield _split_target(target)[0]


def is_set(values, target: Target) -> bool:
    """
    True when ``target`` is active in a mapping of resolved values.

    A bare key is active when its value is truthy (non-empty multiselect,
    True boolean, any select value). A ``(key, value)`` pair is active when
    the multiselect includes ``value`` or the scalar equals it.
    """
    key, wanted = _split_target(target)
    current = values.get(key)
    if wanted is None:
        return bool(current)
    if isinstance(current, tuple):
        return wanted in current
    return current == wanted
