"""
Fallback chunking for languages without a dedicated driver, and the
whole-file chunk every driver falls back to.
"""

import re
from pathlib import Path
from typing import List, Optional, Sequence

from core.chunk_types import Candidate, Chunk, ChunkingConfig, DriverResult, ParseOk
from core.classifiers import classify_class, classify_function, classify_variable
from core.domain_hints import infer_domain_hints
from core.scanning import BraceScanner, guarded, split_lines
from utils.logging import get_logger

logger = get_logger(__name__)


class FallbackChunker:
    """Cross-language heuristic chunking on column-0 declarations."""

    # Ordered: first match wins
    DECLARATION_PATTERNS = [
        # JavaScript-style: function name(...)
        (r"^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(\w+)", "function"),
        # const/let/var name = ...
        (r"^(?:export\s+)?(?:const|let|var)\s+(\w+)\s*(?::[^=]+)?=", "variable"),
        # class Name
        (r"^(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(\w+)", "class"),
        # Python/Ruby-style: def name
        (r"^(?:async\s+)?def\s+(?:self\.)?(\w+[?!]?)", "function"),
        # Go-style: func name(...)
        (r"^func\s+(?:\([^)]*\)\s*)?(\w+)", "function"),
        # Rust-style: fn name(...)
        (r"^(?:pub(?:\([^)]*\))?\s+)?(?:async\s+)?(?:unsafe\s+)?fn\s+(\w+)", "function"),
        # Ruby-style: module Name
        (r"^module\s+([\w:]+)", "module"),
        # Perl-style: sub name
        (r"^sub\s+(\w+)", "function"),
        # Lua-style: function name(...)
        (r"^(?:local\s+)?function\s+([\w.:]+)", "function"),
        # Shell-style: name() {
        (r"^(?:function\s+)?([\w-]+)\s*\(\)\s*\{?", "function"),
        # C-style: type name(...) ending the line with ")", "," or "{"
        (
            r"^(?!(?:if|for|while|switch|return|else|do|case|typedef|goto)\b)"
            r"[A-Za-z_][\w\s\*&:<>,]*?[\s\*&]+\**([A-Za-z_]\w*)\s*\([^;]*[),{]\s*$",
            "function",
        ),
    ]

    def __init__(self, config: Optional[ChunkingConfig] = None):
        self.config = config or ChunkingConfig()
        self.patterns = [(re.compile(p), kind) for p, kind in self.DECLARATION_PATTERNS]

    def _match(self, line: str):
        for pattern, kind in self.patterns:
            match = pattern.match(line)
            if match:
                return kind, match.group(1)
        return None

    def _chunk_type(self, kind: str, name: str, line: str) -> str:
        if kind == "class":
            return classify_class(name)
        if kind == "module":
            return "module"
        if kind == "variable":
            value = line.split("=", 1)[1].strip()
            if "=>" in value or value.startswith(("function", "async")):
                return classify_variable(name, "function")
            if value.startswith("{"):
                return classify_variable(name, "object")
            return classify_variable(name)
        return classify_function(name)

    def find_candidates(self, lines: Sequence[str]) -> List[Candidate]:
        """Open a candidate at every column-0 declaration outside a braced region."""
        candidates: List[Candidate] = []
        scanner = BraceScanner(line_comments=("//",), string_quotes="\"`")

        for line_no, line in enumerate(lines, start=1):
            at_top = scanner.depth <= 0 and not scanner.in_block_comment
            found = self._match(line) if at_top and line[:1].strip() else None
            if found:
                kind, name = found
                if candidates:
                    candidates[-1].end_line = line_no - 1
                candidates.append(
                    Candidate(
                        start_line=line_no,
                        end_line=len(lines),
                        name=name,
                        chunk_type=self._chunk_type(kind, name, line),
                        signature=line.strip().rstrip("{").strip(),
                    )
                )
            scanner.feed(line)

        return candidates

    def whole_file_chunk(
        self,
        file_path: str,
        content: str,
        language: str,
        name: Optional[str] = None,
        imports: Optional[List[str]] = None,
    ) -> Chunk:
        """One chunk spanning the entire file, content kept verbatim."""
        lines = split_lines(content)
        name = name or Path(file_path).stem
        hints = []
        if self.config.extract_domain_hints:
            hints = infer_domain_hints(name, None, [], content)

        return Chunk(
            id=f"{file_path}:1-{len(lines)}",
            file_path=file_path,
            start_line=1,
            end_line=len(lines),
            content=content,
            language=language,
            chunk_type="file",
            name=name,
            imports=imports or None,
            domain_hints=hints,
        )


_chunker = FallbackChunker()

# Prose and data formats have no declarations; they stay whole-file chunks
MARKUP_LANGUAGES = frozenset({"markdown", "html", "xml", "json", "yaml", "toml", "css"})


@guarded
def extract(file_path: str, content: str, language: str) -> DriverResult:
    """Generic regex cascade for languages without a dedicated driver."""
    if language in MARKUP_LANGUAGES:
        logger.debug(f"Skipping declaration scan for {language} file {file_path}")
        return ParseOk(candidates=[])
    candidates = _chunker.find_candidates(split_lines(content))
    logger.debug(f"Fallback scan found {len(candidates)} candidates in {file_path}")
    return ParseOk(candidates=candidates)
