"""
Option resolution: turn raw user selections into validated ResolvedOptions.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping as MappingType

from grafter.exceptions import ValidationError
from grafter.logging_config import logger

from .schema import Excludes, OptionSchema, OptionSpec, Requires, is_set

TRUE_STRINGS = ("1", "true", "yes", "y", "on")
FALSE_STRINGS = ("0", "false", "no", "n", "off")


class ResolvedOptions(Mapping):
    """
    Immutable, validated option values for one run.

    Multiselect values are tuples ordered as the schema declares them, so the
    same selection always compares (and serializes) identically.
    """

    def __init__(self, values: MappingType[str, Any]):
        self._values = MappingProxyType(dict(values))

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, key: str) -> Any:
        if key.startswith("_"):
            raise AttributeError(key)
        try:
            return self._values[key]
        except KeyError:
            raise AttributeError(key) from None

    def __setattr__(self, key: str, value: Any) -> None:
        if key != "_values":
            raise AttributeError("ResolvedOptions is immutable")
        object.__setattr__(self, key, value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ResolvedOptions):
            return dict(self._values) == dict(other._values)
        if isinstance(other, Mapping):
            return dict(self._values) == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._values.items())))

    def __repr__(self) -> str:
        return f"ResolvedOptions({dict(self._values)!r})"

    def includes(self, key: str, value: Any) -> bool:
        """True when the option ``key`` is (or contains) ``value``."""
        return is_set(self._values, (key, value))

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly copy (tuples become lists)."""
        return {
            key: list(value) if isinstance(value, tuple) else value
            for key, value in self._values.items()
        }


def resolve(raw_selections: MappingType[str, Any], schema: OptionSchema) -> ResolvedOptions:
    """
    Validate raw selections against the schema.

    Args:
        raw_selections: Option key -> chosen value(s). Missing keys take defaults.
        schema: Option schema to validate against

    Returns:
        ResolvedOptions

    Raises:
        ValidationError: listing every problem found
    """
    problems: List[str] = []
    raw = dict(raw_selections or {})

    for key in sorted(raw):
        if key not in schema:
            problems.append(f"Unknown option '{key}'")

    values: Dict[str, Any] = {}
    for spec in schema:
        supplied = spec.key in raw
        value = raw[spec.key] if supplied else spec.default
        values[spec.key] = _normalize(spec, value, problems)

    if not problems:
        for constraint in schema.constraints:
            if not _satisfied(constraint, values):
                problems.append(constraint.describe())

    if problems:
        logger.debug(f"Option validation failed: {problems}")
        raise ValidationError(problems)

    resolved = ResolvedOptions(values)
    logger.debug(f"Resolved options: {resolved.to_dict()}")
    return resolved


def _normalize(spec: OptionSpec, value: Any, problems: List[str]) -> Any:
    if spec.kind == "boolean":
        if not isinstance(value, bool):
            problems.append(f"Option '{spec.key}' expects true or false, got {value!r}")
            return spec.default
        return value

    if spec.kind == "select":
        if value not in spec.allowed:
            problems.append(
                f"Option '{spec.key}' must be one of {_listing(spec.allowed)}, got {value!r}"
            )
            return spec.default
        return value

    # multiselect
    if isinstance(value, (str, bytes)) or not _is_iterable(value):
        problems.append(f"Option '{spec.key}' expects a list of values, got {value!r}")
        return spec.default
    chosen = set()
    for item in value:
        if item not in spec.allowed:
            problems.append(
                f"Option '{spec.key}' does not allow {item!r} (allowed: {_listing(spec.allowed)})"
            )
        else:
            chosen.add(item)
    return tuple(item for item in spec.allowed if item in chosen)


def _satisfied(constraint, values: Dict[str, Any]) -> bool:
    if isinstance(constraint, Excludes):
        current = values.get(constraint.option) or ()
        return sum(1 for v in constraint.values if v in current) <= 1
    if isinstance(constraint, Requires):
        if not is_set(values, constraint.option):
            return True
        return any(is_set(values, target) for target in constraint.needs)
    return True


def _is_iterable(value: Any) -> bool:
    try:
        iter(value)
    except TypeError:
        return False
    return True


def _listing(allowed) -> str:
    return ", ".join(repr(v) for v in allowed)


def coerce_cli_value(spec: OptionSpec, text: str) -> Any:
    """
    Parse a command-line string into the shape ``spec`` expects.

    Booleans accept yes/no style words; multiselect values are
    comma-separated (an empty string selects nothing). Unparseable booleans
    are returned unchanged so that resolve() reports them.
    """
    text = text.strip()
    if spec.kind == "boolean":
        lowered = text.lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
        return text
    if spec.kind == "multiselect":
        if text.lower() in ("", "none"):
            return []
        return [part.strip() for part in text.split(",") if part.strip()]
    return text
