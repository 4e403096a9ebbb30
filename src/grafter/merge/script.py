"""
ScriptTree: tree-sitter backed JavaScript/TypeScript source with idempotent
structural edits.

Every edit splices new text into the original source at byte ranges taken
from the syntax tree and re-parses, so untouched text is printed back exactly
as it was read. Each edit first looks for an equivalent construct by name and
does nothing when one is already present.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from tree_sitter import Language, Node, Parser
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript

from grafter.exceptions import ParseFailure, StructuralAnchorNotFound
from grafter.logging_config import logger

from .config import MERGE_CONFIG

_LANGUAGES: Dict[str, Language] = {}

DECLARATION_TYPES = (
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
)
VARIABLE_TYPES = ("lexical_declaration", "variable_declaration")
MEMBER_TYPES = (
    "property_signature",
    "method_signature",
    "call_signature",
    "construct_signature",
    "index_signature",
)
NAMESPACE_TYPES = ("internal_module", "module")

NameSpec = Union[Mapping[str, str], Iterable[str]]


def _language(name: str) -> Language:
    """Load (once) the tree-sitter grammar for ``name``."""
    if name not in _LANGUAGES:
        if name == "typescript":
            _LANGUAGES[name] = Language(tstypescript.language_typescript())
        elif name == "javascript":
            _LANGUAGES[name] = Language(tsjavascript.language())
        else:
            raise ValueError(f"Unsupported script language: {name}")
    return _LANGUAGES[name]


def _text(node: Node) -> str:
    return node.text.decode("utf8")


def _walk(node: Node) -> Iterator[Node]:
    yield node
    for child in node.children:
        yield from _walk(child)


def _find_error_nodes(node: Node) -> List[Node]:
    errors = []
    if node.type == "ERROR" or node.is_missing:
        errors.append(node)
    for child in node.children:
        errors.extend(_find_error_nodes(child))
    return errors


def _compact(code: str) -> str:
    return re.sub(r"\s+", "", code)


def _normalize_names(names: NameSpec) -> List[Tuple[str, str]]:
    """(imported, local) pairs in the order given."""
    if isinstance(names, Mapping):
        return [(imported, local) for imported, local in names.items()]
    return [(name, name) for name in names]


@dataclass
class ImportInfo:
    """One import statement as found in the source."""
    module: str
    type_only: bool
    node: Node
    specifiers: List[Tuple[str, str, bool]] = field(default_factory=list)  # (imported, local, type_only)
    named_imports: Optional[Node] = None

    def provides(self, local: str, type_only: bool) -> bool:
        for _, name, spec_type_only in self.specifiers:
            if name != local:
                continue
            if type_only or not (self.type_only or spec_type_only):
                return True
        return False


class ScriptTree:
    """
    Parsed JavaScript/TypeScript module supporting insert-if-absent edits.

    Args:
        source: Module source text ('' for a new file)
        language: "typescript" or "javascript"
        path: Project-relative path, used in error messages
    """

    def __init__(self, source: str, language: str = "typescript", path: str = "<script>"):
        self.language = language
        self.path = path
        self.original = source
        self._source = source.encode("utf8")
        self._parser = Parser()
        self._parser.language = _language(language)
        self._tree = self._parse(self._source)

    # ------------------------------------------------------------------
    # Parse / print
    # ------------------------------------------------------------------

    def _parse(self, source: bytes):
        tree = self._parser.parse(source)
        errors = _find_error_nodes(tree.root_node)
        if errors:
            row, column = errors[0].start_point[0] + 1, errors[0].start_point[1] + 1
            raise ParseFailure(self.path, f"syntax error at line {row}, column {column}")
        return tree

    @property
    def root(self) -> Node:
        return self._tree.root_node

    @property
    def source(self) -> str:
        return self._source.decode("utf8")

    @property
    def modified(self) -> bool:
        return self.source != self.original

    def print(self) -> str:
        return self.source

    def _splice(self, start: int, end: int, text: str) -> None:
        """Replace bytes [start, end) with ``text`` and re-parse."""
        updated = self._source[:start] + text.encode("utf8") + self._source[end:]
        tree = self._parser.parse(updated)
        errors = _find_error_nodes(tree.root_node)
        if errors:
            row = errors[0].start_point[0] + 1
            raise ParseFailure(self.path, f"edit produced invalid syntax near line {row}")
        self._source = updated
        self._tree = tree

    def _line_start(self, offset: int) -> int:
        return self._source.rfind(b"\n", 0, offset) + 1

    def _line_indent(self, offset: int) -> str:
        start = self._line_start(offset)
        match = re.match(rb"[ \t]*", self._source[start:])
        return match.group(0).decode("utf8")

    def indent_unit(self) -> str:
        """Indentation unit used by the file (tab, or the narrowest space run)."""
        widths = []
        for line in self.source.splitlines():
            if line.startswith("\t"):
                return "\t"
            stripped = len(line) - len(line.lstrip(" "))
            if stripped and line.strip():
                widths.append(stripped)
        if widths:
            return " " * min(widths)
        return MERGE_CONFIG["default_indent"]

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def imports(self) -> List[ImportInfo]:
        """Top-level import statements in source order."""
        found = []
        for node in self.root.children:
            if node.type != "import_statement":
                continue
            source = node.child_by_field_name("source")
            if source is None:
                source = next((c for c in node.children if c.type == "string"), None)
            if source is None:
                continue
            info = ImportInfo(
                module=_text(source)[1:-1],
                type_only=any(c.type == "type" for c in node.children),
                node=node,
            )
            clause = next((c for c in node.children if c.type == "import_clause"), None)
            if clause is not None:
                self._collect_specifiers(clause, info)
            found.append(info)
        return found

    def _collect_specifiers(self, clause: Node, info: ImportInfo) -> None:
        for child in clause.children:
            if child.type == "identifier":
                info.specifiers.append(("default", _text(child), False))
            elif child.type == "namespace_import":
                name = next((c for c in child.children if c.type == "identifier"), None)
                if name is not None:
                    info.specifiers.append(("*", _text(name), False))
            elif child.type == "named_imports":
                info.named_imports = child
                for spec in child.children:
                    if spec.type != "import_specifier":
                        continue
                    name = spec.child_by_field_name("name")
                    alias = spec.child_by_field_name("alias")
                    if name is None:
                        continue
                    imported = _text(name)
                    local = _text(alias) if alias is not None else imported
                    spec_type_only = any(c.type == "type" for c in spec.children)
                    info.specifiers.append((imported, local, spec_type_only))

    def has_import(self, module: str, local: str, type_only: bool = False) -> bool:
        return any(
            info.module == module and info.provides(local, type_only)
            for info in self.imports()
        )

    def _quote(self) -> str:
        for info in self.imports():
            source = info.node.child_by_field_name("source")
            if source is not None:
                return _text(source)[0]
        return MERGE_CONFIG["default_quote"]

    def _semicolon(self) -> str:
        imports = self.imports()
        if imports:
            return ";" if _text(imports[-1].node).rstrip().endswith(";") else ""
        return ";" if MERGE_CONFIG["default_semicolon"] else ""

    def add_named_import(self, module: str, names: NameSpec, type_only: bool = False) -> List[str]:
        """
        Import named symbols from ``module``.

        Pairs already imported are skipped. Missing ones are appended to an
        existing import of the same module (same type-only flavour), or to a
        new import statement placed after the last import.

        Args:
            module: Module specifier, e.g. '@supabase/ssr'
            names: {imported: local} mapping or iterable of names
            type_only: Emit ``import type``

        Returns:
            Local names that were added
        """
        missing = [
            (imported, local)
            for imported, local in _normalize_names(names)
            if not self.has_import(module, local, type_only)
        ]
        if not missing:
            return []

        rendered = [imported if imported == local else f"{imported} as {local}" for imported, local in missing]
        target = next(
            (
                info for info in self.imports()
                if info.module == module and info.type_only == type_only and info.named_imports is not None
            ),
            None,
        )
        if target is not None:
            self._extend_named_imports(target.named_imports, rendered)
        else:
            self._insert_import_statement(module, rendered, type_only)

        added = [local for _, local in missing]
        logger.debug(f"{self.path}: imported {added} from '{module}'")
        return added

    def _extend_named_imports(self, named: Node, rendered: Sequence[str]) -> None:
        specifiers = [c for c in named.children if c.type == "import_specifier"]
        if not specifiers:
            opening = named.start_byte + 1
            self._splice(opening, named.end_byte - 1, " " + ", ".join(rendered) + " ")
            return

        last = specifiers[-1]
        multiline = b"\n" in self._source[named.start_byte:named.end_byte]
        if multiline:
            indent = self._line_indent(last.start_byte)
            text = "".join(f",\n{indent}{name}" for name in rendered)
        else:
            text = "".join(f", {name}" for name in rendered)
        self._splice(last.end_byte, last.end_byte, text)

    def _insert_import_statement(self, module: str, rendered: Sequence[str], type_only: bool) -> None:
        quote = self._quote()
        keyword = "import type" if type_only else "import"
        statement = f"{keyword} {{ {', '.join(rendered)} }} from {quote}{module}{quote}{self._semicolon()}"

        imports = self.imports()
        if imports:
            end = imports[-1].node.end_byte
            self._splice(end, end, "\n" + statement)
            return

        body = self.source
        if body.strip():
            self._splice(0, len(self._source), statement + "\n\n" + body.lstrip("\n"))
        else:
            self._splice(0, len(self._source), statement + "\n")

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _statement_bindings(self, node: Node) -> List[str]:
        """Names bound by a top-level statement (exports unwrapped)."""
        if node.type == "export_statement":
            declaration = node.child_by_field_name("declaration")
            if declaration is None:
                declaration = next(
                    (c for c in node.named_children if c.type in DECLARATION_TYPES + VARIABLE_TYPES),
                    None,
                )
            if declaration is None:
                return []
            node = declaration
        if node.type == "ambient_declaration":
            inner = next((c for c in node.named_children if c.type in DECLARATION_TYPES + VARIABLE_TYPES), None)
            if inner is None:
                return []
            node = inner

        if node.type in DECLARATION_TYPES:
            name = node.child_by_field_name("name")
            return [_text(name)] if name is not None else []

        names: List[str] = []
        if node.type in VARIABLE_TYPES:
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                target = declarator.child_by_field_name("name")
                if target is None:
                    continue
                if target.type == "identifier":
                    names.append(_text(target))
                else:
                    names.extend(self._pattern_names(target))
        return names

    def _pattern_names(self, pattern: Node) -> List[str]:
        names = []
        for node in _walk(pattern):
            if node.type == "shorthand_property_identifier_pattern":
                names.append(_text(node))
            elif node.type == "identifier" and node.parent is not None and node.parent.type in (
                "pair_pattern", "array_pattern", "assignment_pattern", "rest_pattern", "object_assignment_pattern",
            ):
                if node.parent.type == "pair_pattern" and node.parent.child_by_field_name("key") == node:
                    continue
                names.append(_text(node))
        return names

    def top_level_bindings(self) -> List[str]:
        names: List[str] = []
        for node in self.root.named_children:
            names.extend(self._statement_bindings(node))
        return names

    def has_binding(self, name: str) -> bool:
        return name in self.top_level_bindings()

    def _statement_for(self, name: str) -> Optional[Node]:
        for node in self.root.named_children:
            if name in self._statement_bindings(node):
                return node
        return None

    def append(self, code: str) -> None:
        """Append a block of code at the end of the module, one blank line apart."""
        code = code.strip("\n").rstrip()
        current = self.source
        if current.strip():
            self._splice(0, len(self._source), current.rstrip("\n") + "\n\n" + code + "\n")
        else:
            self._splice(0, len(self._source), code + "\n")

    def insert_before(self, name: str, code: str) -> bool:
        """Insert code on the lines above the top-level statement binding ``name``."""
        anchor = self._statement_for(name)
        if anchor is None:
            return False
        start = self._line_start(anchor.start_byte)
        self._splice(start, start, code.strip("\n").rstrip() + "\n\n")
        return True

    def add_declaration(self, name: str, code: str, before: Optional[str] = None) -> bool:
        """
        Declare ``name`` unless a top-level binding with that name exists.

        Returns:
            True if the declaration was inserted
        """
        if self.has_binding(name):
            logger.debug(f"{self.path}: '{name}' already declared")
            return False
        if before is None or not self.insert_before(before, code):
            self.append(code)
        return True

    def add_destructured(self, initializer: str, names: Sequence[str], keyword: str = "let") -> List[str]:
        """
        Bind ``names`` from ``initializer`` through an object pattern.

        Extends an existing top-level ``{ ... } = <initializer>`` declaration
        (Svelte allows ``$props()`` only once per component) or declares
        a new one.

        Returns:
            Names that were added
        """
        for node in self.root.named_children:
            if node.type not in VARIABLE_TYPES:
                continue
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                pattern = declarator.child_by_field_name("name")
                value = declarator.child_by_field_name("value")
                if pattern is None or value is None or pattern.type != "object_pattern":
                    continue
                if _compact(_text(value)) != _compact(initializer):
                    continue
                bound = self._pattern_names(pattern)
                missing = [name for name in names if name not in bound]
                if missing:
                    self._extend_pattern(pattern, missing)
                return missing

        missing = [name for name in names if not self.has_binding(name)]
        if missing:
            self.append(f"{keyword} {{ {', '.join(missing)} }} = {initializer}{self._semicolon()}")
        return missing

    def _extend_pattern(self, pattern: Node, names: Sequence[str]) -> None:
        entries = [c for c in pattern.named_children if c.type != "comment"]
        joined = ", ".join(names)
        if not entries:
            self._splice(pattern.start_byte + 1, pattern.end_byte - 1, f" {joined} ")
        elif entries[-1].type == "rest_pattern":
            start = entries[-1].start_byte
            self._splice(start, start, f"{joined}, ")
        else:
            end = entries[-1].end_byte
            self._splice(end, end, f", {joined}")

    def add_from_string(self, code: str) -> bool:
        """
        Append the statements of ``code`` that the module does not already have.

        A statement is present when its whitespace-normalized text occurs in
        the module. A statement that would bind a name the module already
        binds is skipped with a warning, so the user's declaration stays and
        no duplicate is produced.

        Returns:
            True if anything was appended
        """
        if _compact(code) in _compact(self.source):
            return False

        snippet = ScriptTree(code.strip("\n"), self.language, path=f"{self.path} (snippet)")
        existing = set(self.top_level_bindings())
        statements = [n for n in snippet.root.children if n.type != "comment"]
        accepted = []
        for node in statements:
            text = _text(node)
            if _compact(text) in _compact(self.source):
                continue
            bound = snippet._statement_bindings(node)
            clashing = [n for n in bound if n in existing]
            if clashing and len(clashing) == len(bound):
                logger.warning(f"{self.path}: keeping existing {', '.join(clashing)}; generated statement not added")
                continue
            if clashing:
                logger.warning(f"{self.path}: skipping statement redeclaring {clashing}")
                continue
            accepted.append(node)

        if not accepted:
            return False
        if len(accepted) == len(statements):
            self.append(snippet.source)
        else:
            self.append("\n\n".join(_text(n) for n in accepted))
        return True

    # ------------------------------------------------------------------
    # Interfaces
    # ------------------------------------------------------------------

    def find_namespace(self, name: str) -> Optional[Node]:
        for node in _walk(self.root):
            if node.type in NAMESPACE_TYPES:
                node_name = node.child_by_field_name("name")
                if node_name is not None and _text(node_name) == name:
                    return node
        return None

    def find_interface(self, name: str, within: Optional[Node] = None) -> Optional[Node]:
        for node in _walk(within or self.root):
            if node.type == "interface_declaration":
                node_name = node.child_by_field_name("name")
                if node_name is not None and _text(node_name) == name:
                    return node
        return None

    def _block_of(self, node: Node) -> Node:
        body = node.child_by_field_name("body")
        if body is None:
            body = next(
                (c for c in node.children if c.type in ("statement_block", "interface_body", "object_type")),
                None,
            )
        if body is None:
            raise StructuralAnchorNotFound(self.path, _text(node).split("{", 1)[0].strip())
        return body

    def _insert_into_block(self, block: Node, line: str, member_indent: Optional[str] = None) -> None:
        """Add ``line`` as the last entry of a ``{ ... }`` block."""
        closing = block.end_byte - 1
        line_start = self._line_start(closing)
        before_brace = self._source[line_start:closing]

        if not before_brace.strip():
            closing_indent = before_brace.decode("utf8")
            indent = member_indent or closing_indent + self.indent_unit()
            self._splice(line_start, line_start, f"{indent}{line}\n")
            return

        outer = self._line_indent(block.start_byte)
        indent = member_indent or outer + self.indent_unit()
        start = closing
        while start > block.start_byte + 1 and self._source[start - 1:start] in (b" ", b"\t"):
            start -= 1
        self._splice(start, closing, f"\n{indent}{line}\n{outer}")

    def add_global_app_interface(self, name: str, namespace: str = "App") -> str:
        """
        Ensure ``interface <name>`` exists inside ``namespace App``.

        The interface is synthesized when missing; a missing namespace means
        the file does not have the expected shape and is reported.

        Returns the qualified name (``App.Locals``) for the member methods,
        so they edit the declaration inside the namespace even when the file
        declares another interface of the same name elsewhere.

        Raises:
            StructuralAnchorNotFound: if ``namespace <namespace>`` is absent
        """
        host = self.find_namespace(namespace)
        if host is None:
            raise StructuralAnchorNotFound(
                self.path,
                f"namespace {namespace}",
                f"Failed detecting `{namespace}` namespace in {self.path}",
            )
        if self.find_interface(name, host) is None:
            self._insert_into_block(self._block_of(host), f"interface {name} {{}}")
            logger.debug(f"{self.path}: synthesized interface {namespace}.{name}")
        return f"{namespace}.{name}"

    def interface_members(self, interface: str) -> List[str]:
        node = self._require_interface(interface)
        names = []
        for member in self._block_of(node).named_children:
            if member.type in MEMBER_TYPES:
                member_name = member.child_by_field_name("name")
                if member_name is not None:
                    names.append(_text(member_name))
        return names

    def _require_interface(self, interface: str) -> Node:
        """Find ``Name`` anywhere, or ``Namespace.Name`` inside that namespace only."""
        namespace, _, name = interface.rpartition(".")
        host = None
        if namespace:
            host = self.find_namespace(namespace)
            if host is None:
                raise StructuralAnchorNotFound(
                    self.path,
                    f"namespace {namespace}",
                    f"Failed detecting `{namespace}` namespace in {self.path}",
                )
        node = self.find_interface(name, host)
        if node is None:
            raise StructuralAnchorNotFound(
                self.path,
                f"interface {interface}",
                f"Failed detecting `{interface}` interface in {self.path}",
            )
        return node

    def add_interface_member(self, interface: str, member: str, declaration: str) -> bool:
        """
        Add ``declaration`` (e.g. ``session: Session | null``) to an interface
        unless a member called ``member`` is already declared there.

        Raises:
            StructuralAnchorNotFound: if the interface does not exist
        """
        if member in self.interface_members(interface):
            return False
        block = self._block_of(self._require_interface(interface))
        members = [c for c in block.named_children if c.type in MEMBER_TYPES]
        member_indent = self._line_indent(members[0].start_byte) if members else None
        self._insert_into_block(block, declaration, member_indent)
        logger.debug(f"{self.path}: added member '{member}' to {interface}")
        return True

    # ------------------------------------------------------------------
    # SvelteKit server hooks
    # ------------------------------------------------------------------

    def _exported_declarator(self, name: str) -> Optional[Node]:
        for node in self.root.named_children:
            if node.type != "export_statement":
                continue
            declaration = node.child_by_field_name("declaration")
            if declaration is None or declaration.type not in VARIABLE_TYPES:
                if declaration is not None and declaration.type in DECLARATION_TYPES:
                    declared = declaration.child_by_field_name("name")
                    if declared is not None and _text(declared) == name:
                        raise StructuralAnchorNotFound(
                            self.path,
                            name,
                            f"`{name}` in {self.path} is not a const export and cannot be composed",
                        )
                continue
            for declarator in declaration.named_children:
                target = declarator.child_by_field_name("name")
                if declarator.type == "variable_declarator" and target is not None and _text(target) == name:
                    return declarator
        return None

    def add_hooks_handle(self, name: str, body: str, typescript: bool, first: bool = False) -> bool:
        """
        Declare a ``Handle`` called ``name`` and compose it into
        ``export const handle`` via ``sequence(...)``.

        Args:
            name: Handle constant name, e.g. 'supabase'
            body: Handle implementation (an arrow function expression)
            typescript: Annotate the constant with ``Handle``
            first: Run this handle before the existing ones

        Returns:
            True if the module changed
        """
        before = self.source
        if typescript:
            self.add_named_import("@sveltejs/kit", ["Handle"], type_only=True)

        annotation = ": Handle" if typescript else ""
        declaration = f"const {name}{annotation} = {body.strip().rstrip(';')};"
        self.add_declaration(name, declaration, before="handle")

        declarator = self._exported_declarator("handle")
        if declarator is None:
            self.append(f"export const handle{annotation} = {name}{self._semicolon()}")
            return self.source != before

        value = declarator.child_by_field_name("value")
        if value is None:
            raise StructuralAnchorNotFound(self.path, "handle", f"`handle` in {self.path} has no value")

        if value.type == "call_expression" and _text(value.child_by_field_name("function")) == "sequence":
            arguments = value.child_by_field_name("arguments")
            handles = [_text(a) for a in arguments.named_children]
            if name not in handles:
                if not handles:
                    self._splice(arguments.start_byte + 1, arguments.start_byte + 1, name)
                elif first:
                    start = arguments.named_children[0].start_byte
                    self._splice(start, start, f"{name}, ")
                else:
                    end = arguments.named_children[-1].end_byte
                    self._splice(end, end, f", {name}")
        elif _text(value) != name:
            existing = _text(value)
            composed = f"sequence({name}, {existing})" if first else f"sequence({existing}, {name})"
            self._splice(value.start_byte, value.end_byte, composed)
            self.add_named_import("@sveltejs/kit/hooks", ["sequence"])

        return self.source != before
