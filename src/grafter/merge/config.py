"""
Configuration for the structural merge engine.

Contains indentation defaults, language detection and text-format settings.
"""

import re

MERGE_CONFIG = {
    "default_indent": "\t",       # SvelteKit projects are tab-indented
    "default_quote": "'",
    "default_semicolon": True,    # Used when a file has no imports to mirror
    "json_default_indent": "\t",
    "max_diff_lines": 200,
}

SCRIPT_LANGUAGES = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

# KEY=value lines in dotenv files; comments and blank lines carry no key
ENV_LINE_PATTERN = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_.-]*)\s*=")

# [table] and [[array.of.tables]] header lines in TOML files
TOML_TABLE_PATTERN = re.compile(r"^[ \t]*\[\[?[ \t]*([^\]\s]+)[ \t]*\]\]?[ \t]*(?:#.*)?$", re.MULTILINE)

# Instance script of a Svelte component (module scripts are left alone)
SVELTE_SCRIPT_PATTERN = re.compile(
    r"<script(?P<attrs>(?:\s[^>]*)?)>(?P<body>.*?)</script>",
    re.DOTALL,
)
SVELTE_MODULE_ATTRS = re.compile(r"""\bcontext\s*=\s*["']module["']|\bmodule\b""")
SVELTE_TS_ATTRS = re.compile(r"""\blang\s*=\s*["'](?:ts|typescript)["']""")


def detect_script_language(path: str) -> str:
    """Map a file path to the tree-sitter grammar used to parse it."""
    lowered = path.lower()
    for extension, language in SCRIPT_LANGUAGES.items():
        if lowered.endswith(extension):
            return language
    return "javascript"
