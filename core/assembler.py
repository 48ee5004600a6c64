"""
Turns a driver's raw candidates into chunks.

Leading comments are folded into the construct they describe, gaps between
top-level constructs are covered, and nested members are kept only inside
containers large enough to be worth splitting.
"""

import re
from typing import Dict, List, Optional, Sequence

from core.chunk_types import Candidate, Chunk, ChunkingConfig
from core.domain_hints import infer_domain_hints
from core.language_registry import LanguageConfig, get_language_registry
from core.scanning import is_blank, slice_lines, split_lines
from utils.logging import get_logger

logger = get_logger(__name__)

GAP_NAME = "module-level"

COMMENT_MARKER = re.compile(r"^(?://\*|/\*\*?|\*/|\*>|\*|//+|#+|--+)\s?")


def comment_text(line: str) -> str:
    """A comment line without its comment markers."""
    # Fixed-format COBOL: sequence area then indicator column
    if len(line) > 6 and line[:6].strip(" 0123456789") == "" and line[6] in "*/":
        return line[7:72].strip()
    text = COMMENT_MARKER.sub("", line.strip(), count=1)
    if text.endswith("*/"):
        text = text[:-2]
    return text.strip()


class ChunkAssembler:
    """Builds the ordered pre-merge chunk list for one file."""

    def __init__(self, config: Optional[ChunkingConfig] = None):
        self.config = config or ChunkingConfig()

    def assemble(
        self,
        file_path: str,
        content: str,
        language: str,
        candidates: Sequence[Candidate],
    ) -> List[Chunk]:
        lines = split_lines(content)
        language_config = get_language_registry().get_config(language)
        arena = list(candidates)

        self._normalise(arena, len(lines))
        if not self.config.include_imports:
            for candidate in arena:
                if candidate.chunk_type == "import-block":
                    candidate.discarded = True
        self._discard_orphans(arena)

        if self.config.include_documentation:
            self._capture_documentation(arena, lines, language_config)
        else:
            for candidate in arena:
                candidate.documentation = None

        arena = self._cover(arena, lines)
        self._clamp_nested(arena)
        kept = self._select_nested(arena, lines)

        chunks = [self._build(arena[i], file_path, language, lines) for i in kept]
        logger.debug(f"Assembled {len(chunks)} chunks for {file_path}")
        return chunks

    # -- helpers -----------------------------------------------------------

    def _depth(self, arena: Sequence[Candidate], index: int) -> int:
        depth = 0
        parent = arena[index].parent
        while parent is not None:
            depth += 1
            parent = arena[parent].parent
        return depth

    def _order(self, arena: Sequence[Candidate]) -> List[int]:
        alive = [i for i, c in enumerate(arena) if not c.discarded]
        return sorted(alive, key=lambda i: (arena[i].start_line, self._depth(arena, i), i))

    def _normalise(self, arena: List[Candidate], line_count: int):
        for candidate in arena:
            candidate.start_line = max(1, candidate.start_line)
            candidate.end_line = min(line_count, candidate.end_line)
            if candidate.start_line > candidate.end_line:
                candidate.discarded = True
            candidate.header_line = min(max(candidate.header_line, candidate.start_line), candidate.end_line)

    def _discard_orphans(self, arena: List[Candidate]):
        for index in sorted(range(len(arena)), key=lambda i: self._depth(arena, i)):
            parent = arena[index].parent
            if parent is not None and arena[parent].discarded:
                arena[index].discarded = True

    def _content(self, candidate: Candidate, lines: Sequence[str]) -> str:
        return slice_lines(lines, candidate.start_line, candidate.end_line)

    # -- documentation -----------------------------------------------------

    def _capture_documentation(self, arena: List[Candidate], lines: Sequence[str], language_config: LanguageConfig):
        previous_sibling: Dict[Optional[int], int] = {}
        for index in self._order(arena):
            candidate = arena[index]
            floor = 0
            if candidate.parent is not None:
                floor = arena[candidate.parent].header_line
            sibling = previous_sibling.get(candidate.parent)
            if sibling is not None:
                floor = max(floor, arena[sibling].header_line)
            previous_sibling[candidate.parent] = index

            run_start = candidate.start_line
            while run_start - 1 > floor and language_config.line_is_comment(lines[run_start - 2]):
                run_start -= 1
            if run_start == candidate.start_line:
                continue

            text = "\n".join(comment_text(lines[n - 1]) for n in range(run_start, candidate.start_line))
            candidate.documentation = text.strip() or candidate.documentation
            candidate.start_line = run_start
            if sibling is not None and arena[sibling].end_line >= run_start:
                arena[sibling].end_line = run_start - 1

    # -- coverage ----------------------------------------------------------

    def _cover(self, arena: List[Candidate], lines: Sequence[str]) -> List[Candidate]:
        """Fill gaps between top-level candidates so every line is covered once."""
        line_count = len(lines)
        tops = [i for i in self._order(arena) if arena[i].parent is None]
        cursor = 1
        previous: Optional[Candidate] = None

        def gap(start: int, end: int, following: Optional[Candidate]) -> Optional[Candidate]:
            if all(is_blank(lines[n - 1]) for n in range(start, end + 1)):
                if previous is not None:
                    previous.end_line = end
                elif following is not None:
                    following.start_line = start
                return None
            filler = Candidate(start_line=start, end_line=end, name=GAP_NAME, chunk_type="unknown")
            arena.append(filler)
            return filler

        for index in tops:
            candidate = arena[index]
            if candidate.end_line < cursor:
                candidate.discarded = True
                continue
            if candidate.start_line < cursor:
                candidate.start_line = cursor
                candidate.header_line = max(candidate.header_line, cursor)
            if candidate.start_line > cursor:
                gap(cursor, candidate.start_line - 1, candidate)
            previous = candidate
            cursor = candidate.end_line + 1

        if cursor <= line_count:
            gap(cursor, line_count, None)

        self._discard_orphans(arena)
        return arena

    def _clamp_nested(self, arena: List[Candidate]):
        for index in sorted(range(len(arena)), key=lambda i: self._depth(arena, i)):
            candidate = arena[index]
            if candidate.parent is None or candidate.discarded:
                continue
            parent = arena[candidate.parent]
            candidate.start_line = max(candidate.start_line, parent.start_line)
            candidate.end_line = min(candidate.end_line, parent.end_line)
            if candidate.start_line > candidate.end_line:
                candidate.discarded = True
        self._discard_orphans(arena)

    # -- nesting -----------------------------------------------------------

    def _qualifies(self, container: Candidate, lines: Sequence[str]) -> bool:
        if container.chunk_type == "module":
            return True
        if container.chunk_type not in self.config.container_types:
            return False
        threshold = self.config.max_chunk_size * self.config.container_split_ratio
        return len(self._content(container, lines)) > threshold

    def _select_nested(self, arena: List[Candidate], lines: Sequence[str]) -> List[int]:
        kept = set()
        for index in sorted(self._order(arena), key=lambda i: self._depth(arena, i)):
            candidate = arena[index]
            if candidate.parent is None:
                kept.add(index)
                continue
            if not self.config.chunk_nested_constructs or candidate.parent not in kept:
                continue
            if not self._qualifies(arena[candidate.parent], lines):
                continue
            if len(self._content(candidate, lines)) >= self.config.min_chunk_size:
                kept.add(index)
        return [i for i in self._order(arena) if i in kept]

    # -- chunk construction -----------------------------------------------

    def _build(self, candidate: Candidate, file_path: str, language: str, lines: Sequence[str]) -> Chunk:
        content = self._content(candidate, lines)
        context_path = None
        if self.config.preserve_hierarchy and candidate.context:
            context_path = " > ".join(candidate.context)

        hints = []
        if self.config.extract_domain_hints:
            hints = infer_domain_hints(candidate.name, candidate.documentation, candidate.decorators, content)

        return Chunk(
            id=f"{file_path}:{candidate.start_line}-{candidate.end_line}",
            file_path=file_path,
            start_line=candidate.start_line,
            end_line=candidate.end_line,
            content=content,
            language=language,
            chunk_type=candidate.chunk_type,
            name=candidate.name,
            parent_name=candidate.parent_name,
            context_path=context_path,
            documentation=candidate.documentation,
            signature=candidate.signature,
            exports=candidate.exports or None,
            imports=candidate.imports or None,
            decorators=candidate.decorators or None,
            type_info=candidate.type_info,
            domain_hints=hints,
            is_public_api=candidate.is_public_api,
        )
