"""
Line- and section-oriented text edits for files without a parsed structure.
"""

from typing import Iterable, List, Optional, Set, Tuple

from .config import ENV_LINE_PATTERN, TOML_TABLE_PATTERN


def env_key(line: str):
    """Key of a ``KEY=value`` line, or None for comments and blank lines."""
    match = ENV_LINE_PATTERN.match(line)
    return match.group(1) if match else None


def env_keys(text: str) -> Set[str]:
    return {key for key in (env_key(line) for line in text.splitlines()) if key}


def _with_trailing_newline(text: str) -> str:
    if not text or text.endswith("\n"):
        return text
    return text + "\n"


def merge_env_lines(existing: str, generated: str) -> str:
    """
    Append the ``KEY=value`` lines of ``generated`` whose key ``existing`` lacks.

    Values already set are never overwritten. Comment lines are carried
    along only when they are not already present verbatim; blank lines are
    dropped.
    """
    present = env_keys(existing)
    present_lines = {line.strip() for line in existing.splitlines()}
    additions: List[str] = []
    for line in generated.splitlines():
        if not line.strip():
            continue
        key = env_key(line)
        if key is None:
            if line.strip() not in present_lines:
                additions.append(line)
            continue
        if key in present:
            continue
        present.add(key)
        additions.append(line)

    # Comments that only introduced skipped keys are dropped with them
    while additions and env_key(additions[-1]) is None:
        additions.pop()

    if not additions:
        return existing
    return _with_trailing_newline(existing) + "\n".join(additions) + "\n"


def append_content(existing: str, block: str) -> str:
    """
    Append ``block`` unless ``existing`` already contains it.

    The containment check ignores surrounding blank lines so a re-run does
    not stack duplicate sections.
    """
    if block.strip() and block.strip() in existing:
        return existing
    return _with_trailing_newline(existing) + block.rstrip("\n") + "\n"


def replace_literals(text: str, replacements: Iterable[Tuple[str, str]]) -> str:
    """Apply fixed literal replacements (first occurrence of each)."""
    for old, new in replacements:
        text = text.replace(old, new, 1)
    return text


def toml_table_span(text: str, table: str) -> Optional[Tuple[int, int]]:
    """
    Character range of the body of ``[table]``: from the end of its header
    line up to the next table header (or the end of the text).

    Returns None when the table is not declared.
    """
    headers = list(TOML_TABLE_PATTERN.finditer(text))
    for index, header in enumerate(headers):
        if header.group(1) != table:
            continue
        end = headers[index + 1].start() if index + 1 < len(headers) else len(text)
        return header.end(), end
    return None


def replace_in_table(text: str, table: str, old: str, new: str) -> str:
    """
    Replace the first ``old`` inside ``[table]`` with ``new``.

    Other tables are never touched, so keys that repeat across tables
    (``enable_confirmations`` under both ``[auth.email]`` and
    ``[auth.sms]``) only change where intended. Text without the table, or
    whose table no longer holds ``old``, is returned unchanged.
    """
    span = toml_table_span(text, table)
    if span is None:
        return text
    start, end = span
    body = text[start:end]
    if old not in body:
        return text
    return text[:start] + body.replace(old, new, 1) + text[end:]
