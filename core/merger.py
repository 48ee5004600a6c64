"""
Merges runs of small sibling chunks into chunks worth embedding on their own.
"""

from typing import List, Optional, Sequence

from core.chunk_types import Chunk, ChunkingConfig
from core.domain_hints import pool_domain_hints
from core.scanning import slice_lines, split_lines
from utils.logging import get_logger

logger = get_logger(__name__)

STANDALONE_TYPES = {"import-block", "file"}


def _union(values: Sequence[Optional[List[str]]]) -> Optional[List[str]]:
    merged: List[str] = []
    for items in values:
        for item in items or ():
            if item not in merged:
                merged.append(item)
    return merged or None


def _compatible(a: Chunk, b: Chunk) -> bool:
    return (
        a.parent_name == b.parent_name
        and a.chunk_type not in STANDALONE_TYPES
        and b.chunk_type not in STANDALONE_TYPES
    )


class ChunkMerger:
    """Combines adjacent undersized siblings, keeping coverage and order."""

    def __init__(self, config: Optional[ChunkingConfig] = None):
        self.config = config or ChunkingConfig()

    @property
    def target_size(self) -> int:
        return 2 * self.config.min_chunk_size

    def merge(self, chunks: Sequence[Chunk], content: str) -> List[Chunk]:
        """Merge ``chunks`` (ordered, pre-merge) of the file whose source is ``content``."""
        lines = split_lines(content)
        output: List[Chunk] = []
        # Indices into ``output`` of chunks built from several inputs that are
        # still under the minimum size
        pending_small: List[int] = []
        buffer: List[Chunk] = []

        def flush():
            if not buffer:
                return
            if len(buffer) == 1:
                output.append(buffer[0])
            else:
                merged = self._combine(buffer, lines, primary=None)
                output.append(merged)
                if len(merged.content) < self.config.min_chunk_size:
                    pending_small.append(len(output) - 1)
            buffer.clear()

        for chunk in chunks:
            if buffer and buffer[-1].parent_name != chunk.parent_name:
                flush()

            standalone = (
                chunk.chunk_type in STANDALONE_TYPES
                or len(chunk.content) >= self.target_size
            )
            if standalone:
                flush()
                output.append(chunk)
                continue

            buffer.append(chunk)
            if sum(len(c.content) for c in buffer) >= self.target_size:
                flush()

        flush()
        merged = self._absorb_small(output, pending_small, lines)
        if len(merged) != len(chunks):
            logger.debug(f"Merged {len(chunks)} chunks into {len(merged)}")
        return merged

    def _absorb_small(self, output: List[Chunk], pending_small: List[int], lines) -> List[Chunk]:
        """Fold undersized merged chunks into a compatible neighbour."""
        result = list(output)
        for index in reversed(pending_small):
            small = result[index]
            target = None
            if index > 0 and _compatible(result[index - 1], small):
                target = index - 1
            elif index + 1 < len(result) and _compatible(result[index + 1], small):
                target = index + 1
            if target is None:
                continue

            pair = sorted([result[target], small], key=lambda c: c.start_line)
            result[target] = self._combine(pair, lines, primary=result[target])
            del result[index]
        return result

    def _combine(self, group: Sequence[Chunk], lines, primary: Optional[Chunk]) -> Chunk:
        first = group[0]
        start_line = min(c.start_line for c in group)
        end_line = max(c.end_line for c in group)

        types = {c.chunk_type for c in group}
        if primary is not None:
            chunk_type = primary.chunk_type
        elif len(types) == 1:
            chunk_type = first.chunk_type
        else:
            chunk_type = "file"

        names = []
        for chunk in group:
            for name in chunk.name.split(", "):
                if name not in names:
                    names.append(name)

        return Chunk(
            id=f"{first.file_path}:{start_line}-{end_line}",
            file_path=first.file_path,
            start_line=start_line,
            end_line=end_line,
            content=slice_lines(lines, start_line, end_line),
            language=first.language,
            chunk_type=chunk_type,
            name=", ".join(names),
            parent_name=first.parent_name,
            context_path=first.context_path,
            documentation=first.documentation,
            signature=primary.signature if primary is not None else None,
            exports=_union([c.exports for c in group]),
            imports=_union([c.imports for c in group]),
            decorators=_union([c.decorators for c in group]),
            type_info=primary.type_info if primary is not None else None,
            domain_hints=pool_domain_hints([c.domain_hints for c in group]),
            is_public_api=any(c.is_public_api for c in group),
        )
