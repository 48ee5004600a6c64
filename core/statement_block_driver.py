"""
Statement-block driver for SQL scripts.
"""

import re
from typing import List, Optional

from core.chunk_types import Candidate, DriverResult, ParseOk
from core.scanning import guarded, split_lines
from utils.logging import get_logger

logger = get_logger(__name__)

CREATE_PATTERN = re.compile(
    r"^\s*CREATE\s+(?:OR\s+(?:REPLACE|ALTER)\s+)?"
    r"(?:(?:UNIQUE|CLUSTERED|NONCLUSTERED|MATERIALIZED|TEMP|TEMPORARY|GLOBAL|LOCAL|"
    r"EDITIONABLE|NONEDITIONABLE|RECURSIVE|FORCE|DEFINER\s*=\s*\S+)\s+)*"
    r"(PROCEDURE|PROC|FUNCTION|TRIGGER|TABLE|VIEW|INDEX|TYPE|SEQUENCE|SCHEMA|PACKAGE(?:\s+BODY)?)\s+"
    r"(?:IF\s+NOT\s+EXISTS\s+)?([\w.\[\]\"`$#@]+)",
    re.IGNORECASE,
)
GO_PATTERN = re.compile(r"^\s*GO\s*;?\s*$", re.IGNORECASE)
# BEGIN and CASE open blocks that a later END closes, in line order
BLOCK_TOKEN_PATTERN = re.compile(
    r"\b(?:(BEGIN)(?!\s+(?:TRAN|TRANSACTION|TRY|CATCH|DISTRIBUTED)\b)"
    r"|END(\s+CASE)?(?!\s+(?:IF|LOOP|WHILE|REPEAT|FOR|TRY|CATCH)\b)"
    r"|(CASE))\b",
    re.IGNORECASE,
)
STRING_LITERAL_PATTERN = re.compile(r"'(?:''|[^'])*'")

BLOCK_KINDS = {"PROCEDURE", "PROC", "FUNCTION", "TRIGGER", "PACKAGE", "PACKAGE BODY"}

KIND_TYPES = {
    "PROCEDURE": "function",
    "PROC": "function",
    "FUNCTION": "function",
    "TRIGGER": "handler",
    "TABLE": "model",
    "VIEW": "model",
    "INDEX": "property",
    "TYPE": "type",
    "SEQUENCE": "constant",
    "SCHEMA": "module",
    "PACKAGE": "module",
    "PACKAGE BODY": "module",
}


def _clean_name(name: str) -> str:
    return re.sub(r"[\[\]\"`]", "", name)


class _BlockDepth:
    """BEGIN/END nesting of one procedural body; CASE expressions also end in END."""

    def __init__(self):
        self.begin = 0
        self.case = 0

    def feed(self, line: str) -> bool:
        """Consume one line; True once an END brings the body back to depth zero."""
        code = STRING_LITERAL_PATTERN.sub("''", line).split("--", 1)[0]
        closed = False
        for match in BLOCK_TOKEN_PATTERN.finditer(code):
            if match.group(1):
                self.begin += 1
            elif match.group(3):
                self.case += 1
            elif self.case > 0 or match.group(2):
                self.case = max(self.case - 1, 0)
            else:
                self.begin -= 1
                closed = closed or self.begin <= 0
        return closed


@guarded
def extract(file_path: str, content: str, language: str) -> DriverResult:
    """Recognise CREATE statements and the blocks they open."""
    lines = split_lines(content)
    uses_go = any(GO_PATTERN.match(line) for line in lines)
    candidates: List[Candidate] = []
    open_block: Optional[Candidate] = None
    depth = _BlockDepth()

    for line_no, line in enumerate(lines, start=1):
        if line.lstrip().startswith("--"):
            continue

        create = CREATE_PATTERN.match(line)
        if create:
            if candidates and candidates[-1].end_line >= line_no:
                candidates[-1].end_line = max(candidates[-1].start_line, line_no - 1)
            kind = re.sub(r"\s+", " ", create.group(1).upper())
            name = _clean_name(create.group(2))
            candidate = Candidate(
                start_line=line_no,
                end_line=len(lines),
                name=name,
                chunk_type=KIND_TYPES[kind],
                context=[name],
                signature=line.strip(),
                is_public_api=True,
            )
            candidates.append(candidate)
            open_block = candidate if kind in BLOCK_KINDS else None
            depth = _BlockDepth()
            depth.feed(line)
            continue

        if open_block is None:
            continue

        # Batch separators take over from END when the script uses them
        if uses_go:
            if GO_PATTERN.match(line):
                open_block.end_line = line_no
                open_block = None
            continue

        if depth.feed(line):
            open_block.end_line = line_no
            open_block = None

    logger.debug(f"SQL scan found {len(candidates)} candidates in {file_path}")
    return ParseOk(candidates=candidates)
