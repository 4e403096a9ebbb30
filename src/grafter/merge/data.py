"""
JSON documents (package.json and friends) with insert-if-absent key edits.

Edits are made on a plain dict; ``splice_json`` then writes only the added
members back into the original text, so keys the edit did not touch keep
their exact formatting.
"""

import json
import re
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from tree_sitter import Language, Node, Parser
import tree_sitter_json as tsjson

from grafter.exceptions import ParseFailure, StructuralAnchorNotFound

from .config import MERGE_CONFIG

_INDENT_PATTERN = re.compile(r'^\{\s*?\n([ \t]+)"', re.MULTILINE)

_JSON_LANGUAGE: Dict[str, Language] = {}


class JsonData(dict):
    """A parsed JSON object that remembers where it came from and how it was indented."""

    def __init__(self, *args, path: str = "<json>", indent: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.path = path
        self.indent = indent or MERGE_CONFIG["json_default_indent"]


def parse_json(text: str, path: str = "<json>") -> JsonData:
    """
    Parse a JSON object.

    Raises:
        ParseFailure: if the text is not a JSON object
    """
    if not text.strip():
        return JsonData(path=path)
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseFailure(path, f"invalid JSON ({e.msg} at line {e.lineno})") from e
    if not isinstance(value, dict):
        raise ParseFailure(path, "expected a JSON object at the top level")
    match = _INDENT_PATTERN.search(text)
    return JsonData(value, path=path, indent=match.group(1) if match else "")


def print_json(data: Mapping[str, Any], indent: Union[str, int, None] = None) -> str:
    if indent is None:
        indent = getattr(data, "indent", MERGE_CONFIG["json_default_indent"])
    return json.dumps(dict(data), indent=indent, ensure_ascii=False) + "\n"


def _section(data: Dict[str, Any], section: Union[str, Sequence[str]]) -> Tuple[Dict[str, Any], str]:
    keys = [section] if isinstance(section, str) else list(section)
    node = data
    for key in keys:
        node = node.setdefault(key, {})
        if not isinstance(node, dict):
            path = getattr(data, "path", "<json>")
            raise StructuralAnchorNotFound(
                path,
                ".".join(keys),
                f"`{'.'.join(keys)}` in {path} is not an object",
            )
    return node, ".".join(keys)


def set_default(data: Dict[str, Any], section: Union[str, Sequence[str]], key: str, value: Any) -> bool:
    """
    Set ``section.key`` to ``value`` unless the key is already present.

    Existing values are never replaced. Missing sections are created.

    Returns:
        True if the key was inserted
    """
    node, _ = _section(data, section)
    if key in node:
        return False
    node[key] = value
    return True


def set_defaults(data: Dict[str, Any], section: Union[str, Sequence[str]], values: Mapping[str, Any]) -> List[str]:
    """Insert each missing key of ``values`` under ``section``; returns the keys added."""
    node, _ = _section(data, section)
    added = []
    for key, value in values.items():
        if key not in node:
            node[key] = value
            added.append(key)
    return added


# ----------------------------------------------------------------------
# Text-preserving writes
# ----------------------------------------------------------------------

def _json_language() -> Language:
    if "json" not in _JSON_LANGUAGE:
        _JSON_LANGUAGE["json"] = Language(tsjson.language())
    return _JSON_LANGUAGE["json"]


def _key(pair: Node) -> Any:
    return json.loads(pair.child_by_field_name("key").text.decode("utf8"))


class JsonSource:
    """
    JSON text that grows by splicing new members next to their siblings.

    Mirrors the layout it finds: members of a multi-line object go on their
    own line at the indent of the last member, members of a one-line object
    are appended inline.

    Args:
        text: Document text (must hold an object at the top level)
        path: Project-relative path, used in error messages
        indent: Indentation unit for nested values (default: tab)
    """

    def __init__(self, text: str, path: str = "<json>", indent: Optional[str] = None):
        self.path = path
        self.indent = indent or MERGE_CONFIG["json_default_indent"]
        self._parser = Parser()
        self._parser.language = _json_language()
        self._source = text.encode("utf8")
        self._tree = self._parse(self._source)

    @property
    def text(self) -> str:
        return self._source.decode("utf8")

    def _parse(self, source: bytes):
        tree = self._parser.parse(source)
        if tree.root_node.has_error:
            raise ParseFailure(self.path, "invalid JSON")
        return tree

    def _splice(self, start: int, end: int, text: str) -> None:
        updated = self._source[:start] + text.encode("utf8") + self._source[end:]
        self._tree = self._parse(updated)
        self._source = updated

    def _line_indent(self, offset: int) -> str:
        start = self._source.rfind(b"\n", 0, offset) + 1
        match = re.match(rb"[ \t]*", self._source[start:])
        return match.group(0).decode("utf8")

    def _object(self, keys: Sequence[str]) -> Node:
        node = next((c for c in self._tree.root_node.named_children if c.type == "object"), None)
        if node is None:
            raise ParseFailure(self.path, "expected a JSON object at the top level")
        for depth, key in enumerate(keys):
            # Duplicate keys: the last one wins, as in json.loads
            pairs = [c for c in node.named_children if c.type == "pair" and _key(c) == key]
            value = pairs[-1].child_by_field_name("value") if pairs else None
            if value is None or value.type != "object":
                dotted = ".".join(keys[:depth + 1])
                raise StructuralAnchorNotFound(self.path, dotted, f"`{dotted}` in {self.path} is not an object")
            node = value
        return node

    def _render(self, value: Any, indent: str) -> str:
        return json.dumps(value, indent=self.indent, ensure_ascii=False).replace("\n", "\n" + indent)

    def insert(self, keys: Sequence[str], key: str, value: Any) -> None:
        """Add ``key: value`` as the last member of the object at ``keys``."""
        target = self._object(keys)
        members = [c for c in target.named_children if c.type == "pair"]
        name = json.dumps(key, ensure_ascii=False)

        if not members:
            outer = self._line_indent(target.start_byte)
            inner = outer + self.indent
            member = f"{name}: {self._render(value, inner)}"
            self._splice(target.start_byte + 1, target.end_byte - 1, f"\n{inner}{member}\n{outer}")
            return

        last = members[-1]
        if b"\n" in self._source[target.start_byte:target.end_byte]:
            indent = self._line_indent(last.start_byte)
            text = f",\n{indent}{name}: {self._render(value, indent)}"
        else:
            text = f", {name}: {json.dumps(value, ensure_ascii=False)}"
        self._splice(last.end_byte, last.end_byte, text)


def _additions(before: Mapping[str, Any], after: Mapping[str, Any],
               keys: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], str, Any]]:
    """(object path, key, value) for every member ``after`` adds to ``before``."""
    for key, value in after.items():
        if key not in before:
            yield keys, key, value
        elif isinstance(value, dict) and isinstance(before[key], dict):
            yield from _additions(before[key], value, keys + (key,))


def splice_json(original: str, before: Mapping[str, Any], after: Mapping[str, Any],
                path: str = "<json>", indent: Optional[str] = None) -> str:
    """
    Write the members ``after`` adds to ``before`` into ``original``.

    ``before`` is the parsed form of ``original``. Only insertions are
    carried over; the text of every existing member is left byte for byte.

    Raises:
        ParseFailure: if ``original`` is not a JSON object
        StructuralAnchorNotFound: if an added member's parent is not an object in the text
    """
    source = JsonSource(original, path, indent)
    for keys, key, value in _additions(before, after):
        source.insert(keys, key, value)
    return source.text
