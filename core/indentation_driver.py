"""
Indentation driver for Python sources.

Scans one indentation level at a time for ``class``/``def`` headers. Class
bodies are rescanned at their own indentation to produce nested members.
"""

import re
from typing import Dict, List, Optional, Sequence, Tuple

from core.chunk_types import Candidate, DriverResult, ParseOk, TypeInfo
from core.classifiers import classify_class, classify_function, classify_method
from core.scanning import guarded, indent_of, is_blank, split_lines
from utils.logging import get_logger

logger = get_logger(__name__)

CLASS_PATTERN = re.compile(r"^class\s+(\w+)\s*(?:\(([^)]*)\))?\s*:")
CLASS_START_PATTERN = re.compile(r"^class\s+(\w+)\b")
FUNCTION_PATTERN = re.compile(r"^(?:async\s+)?def\s+(\w+)\s*\(")
DECORATOR_PATTERN = re.compile(r"^@([\w.]+)")
IMPORT_PATTERN = re.compile(r"^(?:import|from)\s+")
TRIPLE_QUOTES = ('"""', "'''")


def _string_continuations(lines: Sequence[str]) -> List[bool]:
    """Mark lines that start inside a triple-quoted string."""
    inside: List[bool] = []
    open_quote: Optional[str] = None
    for line in lines:
        inside.append(open_quote is not None)
        i = 0
        while i < len(line):
            if open_quote is None:
                if line[i] == "#":
                    break
                quote = line[i : i + 3]
                if quote in TRIPLE_QUOTES:
                    open_quote = quote
                    i += 3
                    continue
            elif line.startswith(open_quote, i):
                open_quote = None
                i += 3
                continue
            i += 1
    return inside


def _split_top_level(text: str) -> List[str]:
    """Split on commas outside brackets."""
    parts, depth, current = [], 0, []
    for ch in text:
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _parse_header(header: str) -> Tuple[List[Dict[str, str]], Optional[str]]:
    """Parameters and return annotation of a ``def`` header."""
    open_paren = header.find("(")
    depth = 0
    close_paren = -1
    for i in range(open_paren, len(header)):
        if header[i] == "(":
            depth += 1
        elif header[i] == ")":
            depth -= 1
            if depth == 0:
                close_paren = i
                break
    if open_paren < 0 or close_paren < 0:
        return [], None

    parameters = []
    for part in _split_top_level(header[open_paren + 1 : close_paren]):
        name, _, annotation = part.split("=", 1)[0].partition(":")
        name = name.strip()
        if name in ("self", "cls", "*", "/"):
            continue
        entry = {"name": name}
        if annotation.strip():
            entry["type"] = annotation.strip()
        parameters.append(entry)

    rest = header[close_paren + 1 :]
    return_type = None
    if "->" in rest:
        return_type = rest.split("->", 1)[1].rsplit(":", 1)[0].strip() or None
    return parameters, return_type


def _is_public(name: str) -> bool:
    return not name.startswith("_") or (name.startswith("__") and name.endswith("__"))


class _IndentScanner:
    """Collects candidates from one Python source."""

    def __init__(self, lines: List[str]):
        self.lines = lines
        self.in_string = _string_continuations(lines)
        self.candidates: List[Candidate] = []

    def line(self, line_no: int) -> str:
        return self.lines[line_no - 1]

    def _is_code(self, line_no: int) -> bool:
        text = self.line(line_no)
        return not is_blank(text) and not text.lstrip().startswith("#")

    def _header_end(self, start: int, limit: int) -> int:
        """Last line of a possibly multi-line ``class``/``def`` header."""
        depth = 0
        for line_no in range(start, limit + 1):
            code = self.line(line_no).split("#", 1)[0]
            depth += code.count("(") + code.count("[") - code.count(")") - code.count("]")
            if depth <= 0:
                return line_no
        return start

    def _docstring(self, header_end: int, limit: int) -> Optional[str]:
        for line_no in range(header_end + 1, limit + 1):
            text = self.line(line_no).strip()
            if not text:
                continue
            body = text.lstrip("rRuUbB")
            quote = body[:3] if body[:3] in TRIPLE_QUOTES else None
            if quote is None:
                if body[:1] in ("'", '"') and len(body) > 1 and body.endswith(body[0]):
                    return body[1:-1].strip() or None
                return None

            collected = [body[3:]]
            if body.count(quote) >= 2:
                return body[3:].split(quote, 1)[0].strip() or None
            for next_no in range(line_no + 1, limit + 1):
                text = self.line(next_no)
                if quote in text:
                    collected.append(text.split(quote, 1)[0])
                    break
                collected.append(text)
            return "\n".join(part.strip() for part in collected).strip() or None
        return None

    def import_block(self) -> Optional[Candidate]:
        """Leading top-of-file imports as one candidate."""
        start = end = None
        modules: List[str] = []
        line_no = 1
        total = len(self.lines)
        while line_no <= total:
            text = self.line(line_no)
            if self.in_string[line_no - 1] or not self._is_code(line_no):
                line_no += 1
                continue
            if indent_of(text) != 0 or not IMPORT_PATTERN.match(text):
                # Module docstring may precede the imports
                if start is None and text.startswith(('"""', "'''", 'r"""')):
                    line_no += 1
                    continue
                break

            statement_end = line_no
            if "(" in text and ")" not in text:
                while statement_end < total and ")" not in self.line(statement_end):
                    statement_end += 1
            elif text.rstrip().endswith("\\"):
                while statement_end < total and self.line(statement_end).rstrip().endswith("\\"):
                    statement_end += 1

            stripped = text.strip()
            if stripped.startswith("from "):
                modules.append(stripped.split()[1])
            else:
                for part in stripped[len("import "):].split(","):
                    module = part.strip().split(" as ")[0].strip()
                    if module:
                        modules.append(module)

            if start is None:
                start = line_no
            end = statement_end
            line_no = statement_end + 1

        if start is None:
            return None
        return Candidate(
            start_line=start,
            end_line=end,
            name="imports",
            chunk_type="import-block",
            imports=list(dict.fromkeys(modules)),
        )

    def scan(
        self,
        start: int,
        end: int,
        level: int,
        parent: Optional[int],
        context: List[str],
        skip: Tuple[int, int] = (0, -1),
        public: bool = True,
    ):
        """Record constructs whose headers sit exactly at ``level`` within ``start..end``."""
        current: Optional[int] = None
        last_body_line = 0
        decorators: List[str] = []
        decorator_start: Optional[int] = None

        def close():
            if current is not None:
                candidate = self.candidates[current]
                candidate.end_line = max(candidate.header_line, last_body_line)

        line_no = start
        while line_no <= end:
            if skip[0] <= line_no <= skip[1] or not self._is_code(line_no):
                line_no += 1
                continue

            text = self.line(line_no)
            indent = indent_of(text)
            if self.in_string[line_no - 1] or indent > level:
                last_body_line = line_no
                line_no += 1
                continue

            stripped = text.strip()
            if DECORATOR_PATTERN.match(stripped):
                if decorator_start is None:
                    decorator_start = line_no
                # Decorator arguments may continue over several lines
                decorator_end = self._header_end(line_no, end)
                decorators.append(" ".join(self.line(n).strip() for n in range(line_no, decorator_end + 1)))
                line_no = decorator_end + 1
                continue

            class_match = CLASS_START_PATTERN.match(stripped)
            function_match = FUNCTION_PATTERN.match(stripped)
            if not class_match and not function_match:
                # Plain statement at this level ends the open construct
                close()
                current = None
                decorators, decorator_start = [], None
                line_no += 1
                continue

            close()
            header_end = self._header_end(line_no, end)
            header = " ".join(self.line(n).strip() for n in range(line_no, header_end + 1))
            name = (class_match or function_match).group(1)
            construct_start = decorator_start or line_no

            if class_match:
                bases_match = CLASS_PATTERN.match(header)
                bases = _split_top_level(bases_match.group(2) or "") if bases_match else []
                bases = [b for b in bases if "=" not in b]
                chunk_type = classify_class(name, decorators, bases)
                type_info = TypeInfo(extends=bases) if bases else None
            else:
                params, return_type = _parse_header(header)
                if parent is not None and self.candidates[parent].chunk_type != "module":
                    chunk_type = classify_method(name, decorators)
                else:
                    chunk_type = classify_function(name, [p["name"] for p in params], decorators)
                type_info = None
                if params or return_type:
                    type_info = TypeInfo(parameters=params or None, return_type=return_type)

            self.candidates.append(
                Candidate(
                    start_line=construct_start,
                    end_line=header_end,
                    header_line=line_no,
                    name=name,
                    chunk_type=chunk_type,
                    parent=parent,
                    parent_name=context[-1] if context else None,
                    context=list(context),
                    signature=header.rstrip(":").strip(),
                    decorators=decorators,
                    type_info=type_info,
                    is_public_api=public and _is_public(name),
                )
            )
            current = len(self.candidates) - 1
            last_body_line = header_end
            decorators, decorator_start = [], None
            line_no = header_end + 1

        close()

    def finish(self):
        """Fill docstrings and rescan class bodies for members."""
        index = 0
        while index < len(self.candidates):
            candidate = self.candidates[index]
            if candidate.chunk_type != "import-block":
                header_end = self._header_end(candidate.header_line, candidate.end_line)
                candidate.documentation = self._docstring(header_end, candidate.end_line)
                is_class = CLASS_START_PATTERN.match(self.line(candidate.header_line).strip())
                if is_class and candidate.end_line > header_end:
                    body_level = next(
                        (
                            indent_of(self.line(n))
                            for n in range(header_end + 1, candidate.end_line + 1)
                            if self._is_code(n) and not self.in_string[n - 1]
                        ),
                        None,
                    )
                    if body_level is not None:
                        self.scan(
                            header_end + 1,
                            candidate.end_line,
                            body_level,
                            index,
                            candidate.context + [candidate.name],
                            public=candidate.is_public_api,
                        )
                        candidate.exports = [
                            c.name for c in self.candidates
                            if c.parent == index and _is_public(c.name)
                        ]
            index += 1


@guarded
def extract(file_path: str, content: str, language: str) -> DriverResult:
    """Recognise classes, functions and methods by indentation."""
    lines = split_lines(content)
    scanner = _IndentScanner(lines)

    imports = scanner.import_block()
    skip = (imports.start_line, imports.end_line) if imports else (0, -1)
    if imports is not None:
        scanner.candidates.append(imports)
    scanner.scan(1, len(lines), 0, None, [], skip=skip)
    scanner.finish()

    logger.debug(f"Indentation scan found {len(scanner.candidates)} candidates in {file_path}")
    return ParseOk(candidates=scanner.candidates, imports=imports.imports if imports else [])
