"""
Conditional printer: fragment selection driven by a vector of flags.

File-content producers use these selectors to assemble output that varies
per combination of independent flags (static typing, demo routes, auth
variant) without repeating the branching in every template.
"""

import re
import textwrap
from typing import Callable, List

Selector = Callable[..., str]

_BLANK_RUN = re.compile(r"\n[ \t]*(?:\n[ \t]*)+\n")


def _make_selector(flag: bool) -> Selector:
    enabled = bool(flag)

    def select(if_true: str, if_false: str = "") -> str:
        return if_true if enabled else if_false

    select.enabled = enabled
    return select


def create_printer(*flags: bool) -> List[Selector]:
    """
    Build one selector per flag.

    Each selector is ``select(if_true, if_false="") -> str`` and returns one
    of the two fragments it is handed, untouched. Selectors hold no state
    beyond their flag, so they can be shared across producers in a run.

    Example:
        ts, demo = create_printer(environment.typescript, options.demo)
        f"export const load{ts(': PageLoad')} = ..."
    """
    return [_make_selector(flag) for flag in flags]


def dedent(text: str) -> str:
    """
    Remove common indentation from a template.

    A single leading newline is dropped and trailing whitespace is
    trimmed to one final newline, so triple-quoted templates can start on
    the line after the opening quotes.
    """
    if text.startswith("\n"):
        text = text[1:]
    text = textwrap.dedent(text).rstrip()
    return squeeze_blank_lines(text) + "\n"


def squeeze_blank_lines(text: str) -> str:
    """Collapse runs of blank lines (left behind by empty fragments) into one."""
    text = _BLANK_RUN.sub("\n\n", text)
    return text.lstrip("\n")
