"""
Line helpers shared by the extraction drivers.
"""

import functools
from typing import Callable, List, Optional, Sequence, Tuple

from core.chunk_types import Candidate, DriverResult, ParseFailed
from utils.logging import get_logger

logger = get_logger(__name__)


def split_lines(content: str) -> List[str]:
    """Split source into lines; a final newline does not start another line."""
    lines = content.split("\n")
    if content.endswith("\n"):
        lines.pop()
    return lines


def slice_lines(lines: Sequence[str], start_line: int, end_line: int) -> str:
    """Verbatim text of a 1-indexed inclusive line range."""
    return "\n".join(lines[start_line - 1 : end_line])


def is_blank(line: str) -> bool:
    return not line.strip()


def indent_of(line: str) -> int:
    """Width of leading whitespace, tabs counted as one column."""
    return len(line) - len(line.lstrip())


def guarded(extract: Callable[[str, str, str], DriverResult]) -> Callable[[str, str, str], DriverResult]:
    """Turn any exception raised by a driver into ``ParseFailed``."""

    @functools.wraps(extract)
    def wrapper(file_path: str, content: str, language: str) -> DriverResult:
        try:
            return extract(file_path, content, language)
        except Exception as e:
            logger.debug(f"{extract.__module__} could not parse {file_path}: {e}")
            return ParseFailed(reason=str(e) or type(e).__name__)

    return wrapper


def compact(candidates: List[Candidate]) -> List[Candidate]:
    """
    Drop discarded candidates and remap parent indices.

    A candidate whose parent was discarded is re-attached to the nearest
    surviving ancestor.
    """
    new_index = {}
    kept: List[Candidate] = []
    for index, candidate in enumerate(candidates):
        if candidate.discarded:
            continue
        new_index[index] = len(kept)
        kept.append(candidate)

    for candidate in kept:
        parent = candidate.parent
        while parent is not None and parent not in new_index:
            parent = candidates[parent].parent
        candidate.parent = new_index[parent] if parent is not None else None

    return kept


class BraceScanner:
    """
    Signed curly-brace counter that ignores braces inside literals and comments.

    Block comments, triple-quoted text blocks, raw backtick strings and C#
    verbatim strings may span lines, so the scanner is fed the file line by
    line and keeps that state between calls.
    """

    def __init__(
        self,
        line_comments: Tuple[str, ...] = ("//",),
        string_quotes: str = "\"`",
        verbatim_strings: bool = False,
    ):
        self.depth = 0
        self.line_comments = line_comments
        self.string_quotes = string_quotes
        self.verbatim_strings = verbatim_strings
        self._in_block_comment = False
        # Closing delimiter of a literal left open at the end of a line
        self._open_literal: Optional[str] = None

    def _opens_literal(self, line: str, i: int) -> Optional[str]:
        if '"' in self.string_quotes and line.startswith('"""', i):
            return '"""'
        if line[i] == "`" and "`" in self.string_quotes:
            return "`"
        if line[i] == '"' and self.verbatim_strings and "@" in line[max(0, i - 2) : i]:
            return '"'
        return None

    def feed(self, line: str) -> int:
        """Consume one line and return the highest depth reached on it."""
        peak = self.depth
        i = 0
        length = len(line)
        quote: Optional[str] = None

        while i < length:
            ch = line[i]

            if self._in_block_comment:
                if line.startswith("*/", i):
                    self._in_block_comment = False
                    i += 2
                    continue
                i += 1
                continue

            if self._open_literal is not None:
                delimiter = self._open_literal
                if delimiter == '"""' and ch == "\\":
                    i += 2
                    continue
                if delimiter == '"' and line.startswith('""', i):
                    # Doubled quote inside a verbatim string
                    i += 2
                    continue
                if line.startswith(delimiter, i):
                    self._open_literal = None
                    i += len(delimiter)
                    continue
                i += 1
                continue

            if quote is not None:
                if ch == "\\":
                    i += 2
                    continue
                if ch == quote:
                    quote = None
                i += 1
                continue

            if line.startswith("/*", i):
                self._in_block_comment = True
                i += 2
                continue
            if any(line.startswith(marker, i) for marker in self.line_comments):
                break
            literal = self._opens_literal(line, i)
            if literal is not None:
                self._open_literal = literal
                i += len(literal)
                continue
            if ch in self.string_quotes:
                quote = ch
                i += 1
                continue
            if ch == "'":
                # Char literal; a lone quote (Rust lifetime) is left alone
                if line.startswith("\\", i + 1) and i + 3 < length and line[i + 3] == "'":
                    i += 4
                    continue
                if i + 2 < length and line[i + 2] == "'":
                    i += 3
                    continue
                i += 1
                continue

            if ch == "{":
                self.depth += 1
                peak = max(peak, self.depth)
            elif ch == "}":
                self.depth -= 1
            i += 1

        return peak

    @property
    def in_block_comment(self) -> bool:
        return self._in_block_comment

    @property
    def in_literal(self) -> bool:
        return self._open_literal is not None
