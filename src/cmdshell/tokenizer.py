"""
Line tokenizer.

Splits one input line into a command name and its argument tokens:

    "add 3 4"             (delimiter " ")  -> "add", ["3", "4"]
    "greet --name:world"  (delimiter ":")  -> "greet", ["world"]

The command is the leading run of non-whitespace characters. Each argument is
an occurrence of the delimiter immediately followed by word characters. This
is a single regex pass, not a shell-quoting parser: there is no quoting or
escaping, and the delimiter is embedded in the pattern as-is. A delimiter that
is a regex metacharacter must be escaped by the caller.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Pattern, Tuple

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ParsedInput:
    """Command token plus ordered argument tokens for one line."""

    command: str
    arguments: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        """True when the line produced no command token."""
        return not self.command


EMPTY_INPUT = ParsedInput(command="")


@lru_cache(maxsize=32)
def compile_pattern(delimiter: str) -> Pattern[str]:
    """Compile the tokenizer pattern for ``delimiter``.

    Raises:
        re.error: If the delimiter does not form a valid pattern.
    """
    return re.compile(r"(^\S*)|(" + delimiter + r"\w+)")


def tokenize(line: str, delimiter: str) -> ParsedInput:
    """Split ``line`` into a ParsedInput.

    Args:
        line: Raw input line; a trailing newline is ignored.
        delimiter: Argument delimiter, embedded verbatim in the pattern.

    Returns:
        ParsedInput for the line, or EMPTY_INPUT if there is no command token
        (blank line or leading whitespace).
    """
    line = line.rstrip("\r\n")
    command = ""
    arguments = []
    for match in compile_pattern(delimiter).finditer(line):
        head, raw = match.group(1), match.group(2)
        if head is not None:
            command = head
            continue
        if not raw:
            continue
        token = _WHITESPACE_RE.sub("", raw.replace(delimiter, ""))
        if token:
            arguments.append(token)

    if not command:
        return EMPTY_INPUT
    return ParsedInput(command=command, arguments=tuple(arguments))
