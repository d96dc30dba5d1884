"""Migration script parsing.

Turns the text of a SQL migration script into a list of statements:

- lines are trimmed and blank lines dropped
- full-line comments (``/*``, ``#``, ``-- `` by default) are dropped;
  block comments spanning lines and trailing comments are not supported
- a statement ends on a line ending with ``;``, multi-line statements are
  joined with single spaces
- trailing text without a closing ``;`` is discarded
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

from ..core.config import DEFAULT_COMMENT_PREFIXES
from ..core.exceptions import ScriptNotFoundError


def parse_commands(
    lines: Iterable[str],
    comment_prefixes: Sequence[str] = DEFAULT_COMMENT_PREFIXES,
) -> list[str]:
    """Parse script lines into executable statements.

    Args:
        lines: Raw script lines, in file order.
        comment_prefixes: Prefixes marking a full-line comment.

    Returns:
        Statements in file order, without their terminating semicolon.
    """
    prefixes = tuple(comment_prefixes)
    commands: list[str] = []
    fragments: list[str] = []

    for line in lines:
        normalized = line.strip()
        if not normalized:
            continue
        if prefixes and normalized.startswith(prefixes):
            continue

        if normalized.endswith(";"):
            fragments.append(normalized[:-1].strip())
            command = " ".join(f for f in fragments if f).strip()
            fragments.clear()
            if command:
                commands.append(command)
        else:
            fragments.append(normalized)

    return commands


def parse_script(
    text: str,
    comment_prefixes: Sequence[str] = DEFAULT_COMMENT_PREFIXES,
) -> list[str]:
    """Parse the full text of a script."""
    return parse_commands(text.splitlines(), comment_prefixes)


def load_script(
    path: Path | str,
    comment_prefixes: Sequence[str] = DEFAULT_COMMENT_PREFIXES,
) -> list[str]:
    """Read and parse a script file.

    Raises:
        ScriptNotFoundError: If the file is missing or unreadable.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ScriptNotFoundError(str(path)) from e
    return parse_script(text, comment_prefixes)
