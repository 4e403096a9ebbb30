"""
SvelteDocument: a Svelte component split into its instance script and markup.

The script is handed to ScriptTree for structural edits; the markup is
treated as section text with containment-checked appends. Text outside the
edited parts is printed back unchanged.
"""

import re
from typing import Optional

from grafter.logging_config import logger

from .config import MERGE_CONFIG, SVELTE_MODULE_ATTRS, SVELTE_SCRIPT_PATTERN, SVELTE_TS_ATTRS
from .script import ScriptTree


def _compact(text: str) -> str:
    return re.sub(r"\s+", "", text)


def _common_indent(body: str) -> str:
    indents = [
        line[:len(line) - len(line.lstrip())]
        for line in body.split("\n")
        if line.strip()
    ]
    if not indents:
        return ""
    prefix = indents[0]
    for indent in indents[1:]:
        while not indent.startswith(prefix):
            prefix = prefix[:-1]
    return prefix


class MarkupSection:
    """Component markup following the instance script."""

    def __init__(self, text: str):
        self.original = text
        self.text = text

    @property
    def modified(self) -> bool:
        return self.text != self.original

    def contains(self, html: str) -> bool:
        return _compact(html) in _compact(self.text)

    def add_from_raw_html(self, html: str) -> bool:
        """
        Append ``html`` unless the markup already contains it.

        Returns:
            True if the markup changed
        """
        html = html.strip("\n")
        if self.contains(html):
            return False
        if self.text.strip():
            self.text = self.text.rstrip("\n") + "\n\n" + html + "\n"
        else:
            self.text = "\n" + html + "\n"
        return True


class SvelteDocument:
    """
    Parsed Svelte component.

    Attributes:
        script: ScriptTree for the instance ``<script>`` (created on demand)
        html: MarkupSection for everything after the script
    """

    def __init__(self, source: str, path: str = "<svelte>", typescript: bool = False):
        self.path = path
        self.original = source
        match = self._instance_script(source)

        if match is not None:
            self._prefix = source[:match.start()]
            self._attrs = match.group("attrs")
            self._raw_body = match.group("body")
            self._has_script = True
            suffix = source[match.end():]
        else:
            self._prefix = ""
            self._attrs = ' lang="ts"' if typescript else ""
            self._raw_body = "\n"
            self._has_script = False
            suffix = source

        self._indent = _common_indent(self._raw_body) if self._has_script else MERGE_CONFIG["default_indent"]
        language = "typescript" if SVELTE_TS_ATTRS.search(self._attrs) else "javascript"
        self.script = ScriptTree(self._dedent(self._raw_body), language, path=path)
        self.html = MarkupSection(suffix)

    @staticmethod
    def _instance_script(source: str) -> Optional[re.Match]:
        for match in SVELTE_SCRIPT_PATTERN.finditer(source):
            if not SVELTE_MODULE_ATTRS.search(match.group("attrs")):
                return match
        return None

    def _dedent(self, body: str) -> str:
        if not self._indent:
            return body
        return "\n".join(
            line[len(self._indent):] if line.strip() else line
            for line in body.split("\n")
        )

    def _reindent(self, body: str) -> str:
        if not self._indent:
            return body
        return "\n".join(
            self._indent + line if line.strip() else line
            for line in body.split("\n")
        )

    def _script_block(self) -> str:
        if not self.script.modified:
            return f"<script{self._attrs}>{self._raw_body}</script>"
        body = self._reindent(self.script.print())
        if not body.startswith("\n"):
            body = "\n" + body
        if not body.endswith("\n"):
            body += "\n"
        return f"<script{self._attrs}>{body}</script>"

    def print(self) -> str:
        markup = self.html.text
        if self._has_script:
            return self._prefix + self._script_block() + markup
        if not self.script.modified:
            return markup if self.original else markup.lstrip("\n")
        logger.debug(f"{self.path}: adding instance script")
        rest = markup.lstrip("\n")
        return self._script_block() + "\n" + ("\n" + rest if rest else "")
