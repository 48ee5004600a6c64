from typing import Callable, Dict, List, Optional
from pathlib import Path

from core import (
    brace_driver,
    fallback_chunker,
    fixed_column_driver,
    indentation_driver,
    job_step_driver,
    statement_block_driver,
    structured_driver,
)
from core.assembler import ChunkAssembler
from core.chunk_types import Chunk, ChunkingConfig, DriverResult, ParseFailed
from core.fallback_chunker import FallbackChunker
from core.language_registry import (
    BRACE,
    FIXED_COLUMN,
    GENERIC,
    INDENTATION,
    JOB_STEP,
    STATEMENT_BLOCK,
    STRUCTURED,
    get_language_registry,
)
from core.merger import ChunkMerger
from utils.gitignore import GitignoreParser
from utils.logging import get_logger

logger = get_logger(__name__)

Driver = Callable[[str, str, str], DriverResult]

DRIVERS: Dict[str, Driver] = {
    STRUCTURED: structured_driver.extract,
    INDENTATION: indentation_driver.extract,
    BRACE: brace_driver.extract,
    FIXED_COLUMN: fixed_column_driver.extract,
    JOB_STEP: job_step_driver.extract,
    STATEMENT_BLOCK: statement_block_driver.extract,
    GENERIC: fallback_chunker.extract,
}

BINARY_EXTENSIONS = {
    ".exe", ".dll", ".so", ".dylib", ".bin", ".obj", ".o", ".class", ".jar",
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".ico", ".svg", ".webp",
    ".mp3", ".mp4", ".avi", ".mov", ".wav", ".flac",
    ".zip", ".tar", ".gz", ".rar", ".7z",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
}

MAX_FILE_SIZE = 1024 * 1024


class SemanticChunker:
    """Split source files into semantic chunks with a driver per language family."""

    def __init__(self, config: Optional[ChunkingConfig] = None):
        self.config = config or ChunkingConfig()
        self.registry = get_language_registry()
        self.assembler = ChunkAssembler(self.config)
        self.merger = ChunkMerger(self.config)
        self.fallback = FallbackChunker(self.config)
        self.gitignore_parser = None

    def chunk_file(self, file_path: str, repo_root_path: str) -> List[Chunk]:
        """Read and chunk ``file_path`` (relative to ``repo_root_path``)."""
        full_path = Path(repo_root_path) / file_path
        with open(full_path, "r", encoding="utf-8") as f:
            content = f.read()
        return self.chunk_content(file_path, content)

    def chunk_content(self, file_path: str, content: str) -> List[Chunk]:
        """Chunk in-memory source text; ``file_path`` is used for detection and ids."""
        if not content.strip():
            return []

        language = self.registry.get_language_for_file(file_path)
        family = self.registry.get_family(language)
        result = DRIVERS[family](file_path, content, language)

        if isinstance(result, ParseFailed):
            logger.debug(f"Whole-file chunk for {file_path}: {result.reason}")
            return [self.fallback.whole_file_chunk(file_path, content, language)]

        whole_file = self.fallback.whole_file_chunk(
            file_path, content, language, name=result.file_name, imports=result.imports
        )
        if not result.candidates:
            logger.debug(f"No constructs found in {file_path}, using whole-file chunk")
            return [whole_file]

        chunks = self.assembler.assemble(file_path, content, language, result.candidates)
        semantic = [c for c in chunks if c.chunk_type != "unknown"]
        if not semantic:
            return [whole_file]
        if family == STRUCTURED and len(semantic) <= 1 and len(content) < self.config.max_chunk_size:
            logger.debug(f"{file_path} is small, using whole-file chunk")
            return [whole_file]

        return self.merger.merge(chunks, content)

    def chunk_repository(self, repo_path: str) -> List[Chunk]:
        """Extract chunks from every text file in a repository."""
        chunks = []
        repo_path = Path(repo_path)

        self.gitignore_parser = GitignoreParser(str(repo_path))
        logger.debug(
            f"Loaded {len(self.gitignore_parser.get_patterns())} .gitignore patterns"
        )

        for file_path in sorted(repo_path.rglob("*")):
            if not file_path.is_file():
                continue

            if self.gitignore_parser.should_ignore(file_path):
                logger.debug(f"Skipping file due to .gitignore: {file_path}")
                continue

            if not self.is_supported_file(str(file_path)) or self._should_skip(file_path):
                continue

            relative_path = file_path.relative_to(repo_path).as_posix()
            try:
                chunks.extend(self.chunk_file(relative_path, str(repo_path)))
            except UnicodeDecodeError:
                logger.debug(f"Skipping binary file: {file_path}")
                continue
            except OSError as e:
                logger.warning(f"Error reading file {file_path}: {e}")
                continue

        return chunks

    def get_supported_languages(self) -> List[str]:
        """Get list of supported languages."""
        return self.registry.get_supported_languages()

    def get_supported_extensions(self) -> List[str]:
        """Get list of supported file extensions."""
        return self.registry.get_supported_extensions()

    def is_supported_file(self, file_path: str) -> bool:
        """Any text file is supported; known binary extensions are not."""
        return Path(file_path).suffix.lower() not in BINARY_EXTENSIONS

    def _should_skip(self, file_path: Path) -> bool:
        """Additional safety checks for files that should be skipped."""
        # Skip very large files (> 1MB) to avoid processing issues
        try:
            if file_path.stat().st_size > MAX_FILE_SIZE:
                logger.debug(f"Skipping large file: {file_path}")
                return True
        except OSError:
            return True

        # Skip binary files by checking for null bytes in first 1024 bytes
        try:
            with open(file_path, "rb") as f:
                if b"\x00" in f.read(1024):
                    logger.debug(f"Skipping binary file: {file_path}")
                    return True
        except OSError:
            return True

        return False


def chunk_file(
    file_path: str,
    repo_root_path: str,
    config: Optional[ChunkingConfig] = None,
) -> List[Chunk]:
    """Chunk one file of a repository."""
    return SemanticChunker(config).chunk_file(file_path, repo_root_path)


def generate_domain_context(chunk: Chunk) -> str:
    """One-line summary used to enrich a chunk before embedding."""
    parts = []
    if chunk.chunk_type not in ("unknown", "file"):
        parts.append(f"[{chunk.chunk_type.upper()}]")
    parts.append(chunk.name)

    if chunk.parent_name:
        parts.append(f"in {chunk.parent_name}")

    domains = [
        hint.category.replace("-", " ", 1)
        for hint in chunk.domain_hints
        if hint.confidence > 0.3
    ]
    if domains:
        parts.append(f"({', '.join(domains)})")

    if chunk.signature:
        parts.append(f"- {chunk.signature}")

    return " ".join(parts)
