"""
Fixed-column driver for COBOL.

Handles both fixed format (sequence area in columns 1-6, indicator in column 7,
code in columns 8-72) and free format. Divisions, sections, file descriptions,
level 01/77 data items and procedure paragraphs each start a new chunk that
runs until the next recognised header.
"""

import re
from pathlib import Path
from typing import List, NamedTuple, Optional

from core.chunk_types import Candidate, DriverResult, ParseOk
from core.classifiers import classify_paragraph
from core.scanning import guarded, split_lines
from utils.logging import get_logger

logger = get_logger(__name__)

DIVISION_PATTERN = re.compile(r"^(\w[\w-]*)\s+DIVISION\b", re.IGNORECASE)
SECTION_PATTERN = re.compile(r"^(\w[\w-]*)\s+SECTION\b", re.IGNORECASE)
FILE_DESCRIPTION_PATTERN = re.compile(r"^(FD|SD)\s+(\w[\w-]*)", re.IGNORECASE)
DATA_ITEM_PATTERN = re.compile(r"^(01|77)\s+(\w[\w-]*)", re.IGNORECASE)
PARAGRAPH_PATTERN = re.compile(r"^(\w[\w-]*)\s*\.\s*$")
PROGRAM_ID_PATTERN = re.compile(r"^PROGRAM-ID\s*\.?\s*[\"']?(\w[\w-]*)", re.IGNORECASE)
COPY_PATTERN = re.compile(r"\bCOPY\s+[\"']?(\w[\w-]*)", re.IGNORECASE)
SQL_INCLUDE_PATTERN = re.compile(r"\bEXEC\s+SQL\s+INCLUDE\s+(\w[\w-]*)", re.IGNORECASE)

RESERVED_PARAGRAPH_WORDS = {"EXIT", "GOBACK", "CONTINUE", "STOP", "ELSE", "END", "NEXT"}
COPYBOOK_EXTENSIONS = {".cpy", ".copy"}

# Columns 8-11
AREA_A_WIDTH = 4


class SourceLine(NamedTuple):
    text: str
    is_comment: bool
    in_area_a: bool


def normalize_line(line: str) -> SourceLine:
    """Strip the sequence, indicator and identification areas from a source line."""
    if len(line) > 6 and line[:6].strip(" 0123456789") == "":
        indicator = line[6]
        if indicator in "*/":
            return SourceLine("", True, False)
        text = line[7:72]
        in_area_a = len(text) - len(text.lstrip()) < AREA_A_WIDTH
    else:
        text = line
        in_area_a = True

    stripped = text.strip()
    if stripped.startswith("*>"):
        return SourceLine("", True, False)
    if "*>" in text:
        text = text.split("*>", 1)[0]
    return SourceLine(text.rstrip(), False, in_area_a)


def _is_paragraph(source: SourceLine) -> Optional[str]:
    if not source.in_area_a:
        return None
    match = PARAGRAPH_PATTERN.match(source.text.strip())
    if not match:
        return None
    name = match.group(1).upper()
    if name in RESERVED_PARAGRAPH_WORDS or name.startswith("END-"):
        return None
    return name


def _imports_on(text: str) -> List[str]:
    return [m.group(1).upper() for m in COPY_PATTERN.finditer(text)] + [
        m.group(1).upper() for m in SQL_INCLUDE_PATTERN.finditer(text)
    ]


class _CobolScanner:
    def __init__(self, lines: List[str]):
        self.lines = lines
        self.candidates: List[Candidate] = []
        self.division: Optional[str] = None
        self.section: Optional[str] = None
        self.program_id: Optional[str] = None
        self.file_imports: List[str] = []

    def _open(self, line_no: int, name: str, chunk_type: str, label: str, signature: str):
        if self.candidates:
            self.candidates[-1].end_line = max(self.candidates[-1].start_line, line_no - 1)

        context = []
        if self.division and label != self.division:
            context.append(self.division)
        if self.section and label not in (self.section, self.division):
            context.append(self.section)
        context.append(label)

        self.candidates.append(
            Candidate(
                start_line=line_no,
                end_line=len(self.lines),
                name=name,
                chunk_type=chunk_type,
                parent_name=context[-2] if len(context) > 1 else None,
                context=context,
                signature=signature,
            )
        )

    def scan(self):
        for line_no, raw in enumerate(self.lines, start=1):
            source = normalize_line(raw)
            stripped = source.text.strip()
            if source.is_comment or not stripped:
                continue

            for copybook in _imports_on(stripped):
                if copybook not in self.file_imports:
                    self.file_imports.append(copybook)
                if self.candidates and copybook not in self.candidates[-1].imports:
                    self.candidates[-1].imports.append(copybook)

            program = PROGRAM_ID_PATTERN.match(stripped)
            if program and self.program_id is None:
                self.program_id = program.group(1).upper()

            division = DIVISION_PATTERN.match(stripped)
            if division:
                self.division = f"{division.group(1).upper()} DIVISION"
                self.section = None
                self._open(line_no, self.division, "module", self.division, stripped)
                continue

            section = SECTION_PATTERN.match(stripped)
            if section and self.division:
                self.section = section.group(1).upper()
                if self.division == "PROCEDURE DIVISION":
                    chunk_type = classify_paragraph(self.section)
                else:
                    chunk_type = "module"
                self._open(line_no, self.section, chunk_type, self.section, stripped)
                continue

            if self.division == "DATA DIVISION":
                self._scan_data(line_no, stripped)
            elif self.division == "PROCEDURE DIVISION":
                paragraph = _is_paragraph(source)
                if paragraph:
                    self._open(line_no, paragraph, classify_paragraph(paragraph), paragraph, stripped)

    def _scan_data(self, line_no: int, stripped: str):
        description = FILE_DESCRIPTION_PATTERN.match(stripped)
        if description:
            name = description.group(2).upper()
            self._open(line_no, name, "model", name, stripped)
            return

        item = DATA_ITEM_PATTERN.match(stripped)
        if not item:
            return
        # Record layouts belong to the FD above them
        if self.section == "FILE" and self.candidates and self.candidates[-1].name != self.section:
            return
        name = item.group(2).upper()
        self._open(line_no, name, "model" if item.group(1) == "01" else "property", name, stripped)


@guarded
def extract(file_path: str, content: str, language: str) -> DriverResult:
    """Recognise COBOL divisions, sections, data records and paragraphs."""
    lines = split_lines(content)
    scanner = _CobolScanner(lines)
    scanner.scan()

    if Path(file_path).suffix.lower() in COPYBOOK_EXTENSIONS:
        logger.debug(f"Copybook {file_path} kept as one import block")
        copybook = Candidate(
            start_line=1,
            end_line=len(lines),
            name=Path(file_path).stem.upper(),
            chunk_type="import-block",
            imports=scanner.file_imports,
        )
        return ParseOk(candidates=[copybook], file_name=copybook.name, imports=scanner.file_imports)

    logger.debug(f"COBOL scan found {len(scanner.candidates)} candidates in {file_path}")
    return ParseOk(
        candidates=scanner.candidates,
        file_name=scanner.program_id,
        imports=scanner.file_imports,
    )
