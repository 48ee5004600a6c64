"""
Brace-depth driver for C#, Java, Kotlin, Scala, Go, Rust, Swift and PHP.

Opening patterns are matched per line; a signed brace counter and an explicit
stack of open constructs decide where each construct ends.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from core.chunk_types import Candidate, DriverResult, ParseError, ParseOk, TypeInfo
from core.classifiers import classify_class, classify_function, classify_method
from core.language_registry import get_language_registry
from core.scanning import BraceScanner, compact, guarded, split_lines
from utils.logging import get_logger

logger = get_logger(__name__)

TYPE = r"[\w.]+(?:<[^()]*>)?[?\[\]]*"

CS_MODS = r"(?:(?:public|private|protected|internal|static|abstract|sealed|partial|virtual|override|async|readonly|extern|unsafe|new|const|volatile|required|file)\s+)*"
JAVA_MODS = r"(?:(?:public|private|protected|static|abstract|final|synchronized|native|transient|strictfp|default|sealed|non-sealed)\s+)*"
KOTLIN_MODS = r"(?:(?:public|private|protected|internal|open|abstract|final|override|data|sealed|inner|inline|value|annotation|companion|suspend|operator|infix|external|tailrec|lateinit|const|expect|actual)\s+)*"
SCALA_MODS = r"(?:(?:private|protected|override|final|sealed|abstract|implicit|lazy|case)(?:\[\w+\])?\s+)*"
SWIFT_MODS = r"(?:(?:public|private|fileprivate|internal|open|final|static|class|override|mutating|required|convenience|dynamic|@\w+)\s+)*"
RUST_MODS = r"(?:(?:pub(?:\([\w\s:]+\))?|async|unsafe|const|extern(?:\s+\"\w+\")?|default)\s+)*"
PHP_MODS = r"(?:(?:public|private|protected|static|abstract|final|readonly)\s+)*"


def _compile(table: Sequence[Tuple[str, str]]) -> List[Tuple[Pattern, str]]:
    return [(re.compile(pattern), kind) for pattern, kind in table]


# Ordered: first match wins
OPENING_PATTERNS: Dict[str, List[Tuple[Pattern, str]]] = {
    "csharp": _compile([
        (r"^\s*namespace\s+([\w.]+)", "module"),
        (rf"^\s*{CS_MODS}(?:record\s+)?struct\s+(\w+)", "struct"),
        (rf"^\s*{CS_MODS}(?:class|record(?:\s+class)?)\s+(\w+)", "class"),
        (rf"^\s*{CS_MODS}interface\s+(\w+)", "interface"),
        (rf"^\s*{CS_MODS}enum\s+(\w+)", "enum"),
        (rf"^\s*{CS_MODS}(\w+)\s*\(", "constructor"),
        (rf"^\s*{CS_MODS}{TYPE}\s+(\w+)\s*(?:<[^>]*>)?\s*\(", "method"),
        (rf"^\s*{CS_MODS}{TYPE}\s+(\w+)\s*(?:\{{.*)?$", "property"),
    ]),
    "java": _compile([
        (rf"^\s*{JAVA_MODS}@interface\s+(\w+)", "interface"),
        (rf"^\s*{JAVA_MODS}(?:class|record)\s+(\w+)", "class"),
        (rf"^\s*{JAVA_MODS}interface\s+(\w+)", "interface"),
        (rf"^\s*{JAVA_MODS}enum\s+(\w+)", "enum"),
        (rf"^\s*{JAVA_MODS}(?:<[^>]*>\s+)?(\w+)\s*\(", "constructor"),
        (rf"^\s*{JAVA_MODS}(?:<[^>]*>\s+)?{TYPE}\s+(\w+)\s*\(", "method"),
    ]),
    "kotlin": _compile([
        (rf"^\s*{KOTLIN_MODS}enum\s+class\s+(\w+)", "enum"),
        (rf"^\s*{KOTLIN_MODS}(?:class|object)\s+(\w+)", "class"),
        (rf"^\s*{KOTLIN_MODS}(?:fun\s+)?interface\s+(\w+)", "interface"),
        (rf"^\s*{KOTLIN_MODS}(constructor)\s*\(", "init"),
        (rf"^\s*{KOTLIN_MODS}fun\s+(?:<[^>]*>\s*)?(?:[\w.<>]+\.)?(\w+)\s*\(", "function"),
    ]),
    "scala": _compile([
        (rf"^\s*{SCALA_MODS}(?:class|object)\s+(\w+)", "class"),
        (rf"^\s*{SCALA_MODS}trait\s+(\w+)", "interface"),
        (rf"^\s*{SCALA_MODS}enum\s+(\w+)", "enum"),
        (rf"^\s*{SCALA_MODS}def\s+(\w+)", "function"),
    ]),
    "go": _compile([
        (r"^func\s+\(\s*\w*\s*\*?\s*([\w.]+)[^)]*\)\s*(\w+)\s*[\[(]", "receiver"),
        (r"^func\s+(\w+)\s*[\[(]", "function"),
        (r"^type\s+(\w+)(?:\[[^\]]*\])?\s+struct\b", "struct"),
        (r"^type\s+(\w+)(?:\[[^\]]*\])?\s+interface\b", "interface"),
    ]),
    "rust": _compile([
        (rf"^\s*{RUST_MODS}mod\s+(\w+)", "module"),
        (rf"^\s*{RUST_MODS}struct\s+(\w+)", "struct"),
        (rf"^\s*{RUST_MODS}enum\s+(\w+)", "enum"),
        (rf"^\s*{RUST_MODS}trait\s+(\w+)", "interface"),
        (rf"^\s*{RUST_MODS}impl(?:<[^{{]*?>)?\s+(?:[\w:<>,\s&']+?\s+for\s+)?([\w:]+)", "impl"),
        (rf"^\s*{RUST_MODS}fn\s+(\w+)", "function"),
    ]),
    "swift": _compile([
        (rf"^\s*{SWIFT_MODS}(?:class|actor)\s+(\w+)", "class"),
        (rf"^\s*{SWIFT_MODS}struct\s+(\w+)", "struct"),
        (rf"^\s*{SWIFT_MODS}protocol\s+(\w+)", "interface"),
        (rf"^\s*{SWIFT_MODS}enum\s+(\w+)", "enum"),
        (rf"^\s*{SWIFT_MODS}extension\s+([\w.]+)", "impl"),
        (rf"^\s*{SWIFT_MODS}(init)\s*[?!]?\s*[\(<]", "init"),
        (rf"^\s*{SWIFT_MODS}func\s+(\w+)", "function"),
    ]),
    "php": _compile([
        (r"^\s*namespace\s+([\w\\]+)", "module"),
        (rf"^\s*{PHP_MODS}(?:class|trait)\s+(\w+)", "class"),
        (rf"^\s*{PHP_MODS}interface\s+(\w+)", "interface"),
        (rf"^\s*{PHP_MODS}enum\s+(\w+)", "enum"),
        (rf"^\s*{PHP_MODS}function\s+&?(\w+)", "function"),
    ]),
}

ANNOTATION_PATTERNS: Dict[str, Pattern] = {
    # A whole-line attribute, or one whose arguments continue below
    "csharp": re.compile(r"^\s*\[(?:.*\]\s*$|[^\]]*$|.*[(,]\s*$)"),
    "rust": re.compile(r"^\s*#!?\["),
    "php": re.compile(r"^\s*#\["),
}
DEFAULT_ANNOTATION = re.compile(r"^\s*@(?!interface\b)\w")

LINE_COMMENTS = {"php": ("//", "#")}
STRING_QUOTES = {"go": "\"`", "php": "\"'"}

CONTAINER_KINDS = {"module", "class", "struct", "interface", "enum", "impl"}

EXCLUDED_WORDS = {
    "if", "for", "while", "switch", "catch", "using", "lock", "foreach", "when",
    "synchronized", "sizeof", "typeof", "nameof", "fixed", "checked", "unchecked",
    "do", "try", "match", "loop", "base", "this", "super",
    "return", "new", "throw", "else", "await", "yield", "case",
}


def _is_public(language: str, header: str, name: str) -> bool:
    words = set(re.findall(r"[\w-]+", header.split("(")[0]))
    if language == "go":
        return name[:1].isupper()
    if language == "rust":
        return header.lstrip().startswith("pub")
    if language in ("csharp", "java"):
        return "public" in words
    if language == "swift":
        return bool(words & {"public", "open"})
    # Kotlin, Scala and PHP members are public by default
    return not words & {"private", "protected", "internal"}


def _bracket_balance(text: str) -> int:
    """Open round and square brackets left on a line, ignoring string contents."""
    code = re.sub(r'"(?:\\.|[^"\\])*"', '""', text)
    return code.count("(") + code.count("[") - code.count(")") - code.count("]")


def _split_params(header: str) -> List[str]:
    start = header.find("(")
    if start < 0:
        return []
    depth, parts, current = 0, [], []
    for ch in header[start:]:
        if ch in "(<[":
            depth += 1
            if depth == 1 and ch == "(":
                continue
        elif ch in ")>]":
            depth -= 1
            if depth == 0:
                break
        if ch == "," and depth == 1:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _parameters(language: str, header: str) -> List[Dict[str, str]]:
    parameters = []
    for part in _split_params(header):
        part = re.sub(r"^(?:@\w+(?:\([^)]*\))?\s+|\[[^\]]*\]\s*)+", "", part).split("=")[0].strip()
        if ":" in part and language != "csharp":
            name, _, param_type = part.partition(":")
            name = name.split()[-1] if name.split() else name
            entry = {"name": name.strip().lstrip("$&"), "type": param_type.strip()}
        else:
            tokens = part.split()
            if not tokens:
                continue
            if language == "go":
                entry = {"name": tokens[0], "type": " ".join(tokens[1:])}
            else:
                entry = {"name": tokens[-1].lstrip("$&"), "type": " ".join(tokens[:-1])}
        if entry["name"] in ("self", "&self", "&mut", "this"):
            continue
        if not entry["type"]:
            del entry["type"]
        parameters.append(entry)
    return parameters


def _return_type(language: str, header: str, name: str) -> Optional[str]:
    head = header.split("{")[0]
    if language in ("csharp", "java"):
        match = re.search(rf"({TYPE})\s+{re.escape(name)}\s*(?:<[^>]*>)?\s*\(", head)
        return match.group(1) if match else None

    match = re.search(rf"\b{re.escape(name)}\s*(?:<[^>]*>|\[[^\]]*\])?\s*\(", head)
    if not match:
        return None
    depth = 0
    close = len(head)
    for i in range(match.end() - 1, len(head)):
        if head[i] == "(":
            depth += 1
        elif head[i] == ")":
            depth -= 1
            if depth == 0:
                close = i
                break
    rest = head[close + 1 :].split(" where ")[0].strip().rstrip("=").strip()
    if "->" in rest:
        rest = rest.split("->", 1)[1]
    elif rest.startswith(":"):
        rest = rest[1:]
    elif language != "go":
        return None
    return rest.strip() or None


def _heritage(header: str, name: str) -> Tuple[List[str], List[str]]:
    """Base types and implemented interfaces named on a type header."""
    head = header.split("{")[0]
    after_name = head.split(name, 1)[1] if name in head else ""
    extends: List[str] = []
    implements: List[str] = []

    extends_match = re.search(r"\bextends\s+([\w.<>, ]+?)(?:\bimplements\b|\bwith\b|$)", after_name)
    implements_match = re.search(r"\bimplements\s+([\w.<>, ]+)", after_name)
    if extends_match:
        extends = [p.strip() for p in extends_match.group(1).split(",") if p.strip()]
    if implements_match:
        implements = [p.strip() for p in implements_match.group(1).split(",") if p.strip()]
    if not extends and not implements and ":" in after_name:
        bases = after_name.split(":", 1)[1].split(" where ")[0]
        names = [re.sub(r"\(.*\)", "", p).strip() for p in bases.split(",") if p.strip()]
        extends, implements = names[:1], names[1:]
    return extends, implements


@dataclass
class _Open:
    index: int
    depth: int
    opened: bool = False
    kind: str = ""


class _BraceWalker:
    def __init__(self, language: str, lines: List[str]):
        self.language = language
        self.lines = lines
        self.patterns = OPENING_PATTERNS[language]
        self.annotation = ANNOTATION_PATTERNS.get(language, DEFAULT_ANNOTATION)
        self.config = get_language_registry().get_config(language)
        self.scanner = BraceScanner(
            line_comments=LINE_COMMENTS.get(language, ("//",)),
            string_quotes=STRING_QUOTES.get(language, "\""),
            verbatim_strings=language == "csharp",
        )
        self.candidates: List[Candidate] = []
        self.stack: List[_Open] = []

    def _enclosing(self) -> Optional[_Open]:
        """Innermost construct whose body is open."""
        for entry in reversed(self.stack):
            if entry.opened:
                return entry
        return None

    def _match(self, text: str, enclosing: Optional[_Open]) -> Optional[Tuple[str, str, Optional[str]]]:
        """Kind, name and receiver of the construct opening on ``text``."""
        for pattern, kind in self.patterns:
            match = pattern.match(text)
            if not match:
                continue
            receiver = None
            if kind == "receiver":
                receiver, name = match.group(1).split(".")[-1], match.group(2)
            else:
                name = match.group(1)

            prefix = re.findall(r"[\w-]+", text[: match.start(match.lastindex)])
            if name in EXCLUDED_WORDS or EXCLUDED_WORDS & set(prefix):
                continue
            if kind == "constructor":
                owner = self.candidates[enclosing.index].name if enclosing else None
                if name != owner:
                    continue
            if kind in ("method", "property", "constructor") and enclosing is None:
                continue
            return kind, name, receiver
        return None

    def _chunk_type(self, kind: str, name: str, header: str, decorators, inside: bool, params) -> str:
        if kind == "module":
            return "module"
        if kind in ("class", "impl"):
            extends, _ = _heritage(header, name)
            return classify_class(name, decorators, extends)
        if kind == "struct":
            chunk_type = classify_class(name, decorators)
            return "model" if chunk_type == "class" else chunk_type
        if kind in ("interface", "enum"):
            return kind
        if kind in ("constructor", "init"):
            return "constructor"
        if kind == "property":
            return "property"
        if kind == "receiver" or kind == "method" or inside:
            return classify_method(name, decorators)
        return classify_function(name, [p["name"] for p in params], decorators)

    def _push(self, line_no: int, text: str, kind: str, name: str, receiver, decorators, decorator_start):
        depth = self.scanner.depth
        enclosing = self._enclosing()

        # A bodiless declaration at this depth is done
        while self.stack and not self.stack[-1].opened and self.stack[-1].depth >= depth:
            self.candidates[self.stack.pop().index].discarded = True

        context: List[str] = []
        for entry in self.stack:
            if entry.opened:
                context.append(self.candidates[entry.index].name)

        header = text.strip()
        # Go receivers come before the parameter list
        signature_part = header.split(")", 1)[1] if kind == "receiver" else header
        params = _parameters(self.language, signature_part) if kind not in CONTAINER_KINDS else []
        chunk_type = self._chunk_type(kind, name, header, decorators, enclosing is not None, params)

        type_info = None
        if kind in CONTAINER_KINDS:
            extends, implements = _heritage(header, name)
            if extends or implements:
                type_info = TypeInfo(extends=extends or None, implements=implements or None)
        else:
            return_type = _return_type(self.language, header, name) if kind not in ("constructor", "init") else None
            if params or return_type:
                type_info = TypeInfo(parameters=params or None, return_type=return_type)

        self.candidates.append(
            Candidate(
                start_line=decorator_start or line_no,
                end_line=line_no,
                header_line=line_no,
                name=name,
                chunk_type=chunk_type,
                parent=enclosing.index if enclosing else None,
                parent_name=receiver or (context[-1] if context else None),
                context=context,
                signature=header.split("{")[0].strip(),
                decorators=decorators,
                type_info=type_info,
                is_public_api=_is_public(self.language, header, name),
            )
        )
        self.stack.append(_Open(index=len(self.candidates) - 1, depth=depth, kind=kind))

    def walk(self) -> List[Candidate]:
        decorators: List[str] = []
        decorator_start: Optional[int] = None
        # Brackets still open in the pending annotation's arguments
        annotation_balance = 0

        for line_no, text in enumerate(self.lines, start=1):
            stripped = text.strip()
            recognisable = (
                stripped
                and not self.scanner.in_block_comment
                and not self.scanner.in_literal
                and not self.config.line_is_comment(text)
            )

            if recognisable and annotation_balance > 0:
                decorators[-1] = f"{decorators[-1]} {stripped}"
                annotation_balance += _bracket_balance(stripped)
            elif recognisable:
                enclosing = self._enclosing()
                at_scope = (
                    (enclosing is None and self.scanner.depth == 0)
                    or (
                        enclosing is not None
                        and enclosing.kind in CONTAINER_KINDS
                        and self.scanner.depth == enclosing.depth + 1
                    )
                )
                if at_scope and self.annotation.match(text):
                    if decorator_start is None:
                        decorator_start = line_no
                    decorators.append(stripped)
                    annotation_balance = max(_bracket_balance(stripped), 0)
                elif at_scope:
                    found = self._match(text, enclosing)
                    if found:
                        kind, name, receiver = found
                        self._push(line_no, text, kind, name, receiver, decorators, decorator_start)
                    decorators, decorator_start = [], None

            peak = self.scanner.feed(text)
            if self.scanner.depth < 0:
                raise ParseError(f"unbalanced closing brace on line {line_no}")

            if self.stack and not self.stack[-1].opened and peak > self.stack[-1].depth:
                self.stack[-1].opened = True

            while self.stack:
                top = self.stack[-1]
                if not top.opened:
                    if self.scanner.depth < top.depth or stripped.endswith(";"):
                        self.candidates[self.stack.pop().index].discarded = True
                        continue
                    break
                if self.scanner.depth <= top.depth:
                    self.stack.pop()
                    self.candidates[top.index].end_line = line_no
                    continue
                break

        for entry in self.stack:
            if entry.opened:
                name = self.candidates[entry.index].name
                raise ParseError(f"'{name}' is still open at end of file")
            self.candidates[entry.index].discarded = True
        if self.scanner.depth != 0:
            raise ParseError(f"{self.scanner.depth} unclosed brace(s) at end of file")

        return compact(self.candidates)


@guarded
def extract(file_path: str, content: str, language: str) -> DriverResult:
    """Recognise declarations by brace depth."""
    walker = _BraceWalker(language, split_lines(content))
    candidates = walker.walk()
    logger.debug(f"Brace scan found {len(candidates)} candidates in {file_path}")
    return ParseOk(candidates=candidates)
