"""
Common data types for semantic code chunking.
"""

from typing import Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field


CHUNK_TYPES: Tuple[str, ...] = (
    "file",
    "module",
    "class",
    "interface",
    "type",
    "enum",
    "function",
    "method",
    "constructor",
    "property",
    "constant",
    "import-block",
    "export-block",
    "config",
    "test",
    "hook",
    "component",
    "middleware",
    "handler",
    "model",
    "service",
    "repository",
    "controller",
    "util",
    "unknown",
)

# Chunk types a large construct may be split into children for.
CONTAINER_TYPES: Tuple[str, ...] = ("class", "service", "controller", "component", "model")


class DomainHint(BaseModel):
    """An inferred business-domain tag for a span of code."""

    model_config = ConfigDict(frozen=True)

    category: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: str
    keywords: List[str] = Field(default_factory=list)


class TypeInfo(BaseModel):
    """Parameter, return and heritage types of a construct."""

    model_config = ConfigDict(frozen=True)

    parameters: Optional[List[Dict[str, str]]] = None
    return_type: Optional[str] = None
    generics: Optional[List[str]] = None
    extends: Optional[List[str]] = None
    implements: Optional[List[str]] = None


class Chunk(BaseModel):
    """Semantic code chunk with line range, classification and domain metadata."""

    model_config = ConfigDict(frozen=True)

    id: str
    file_path: str
    start_line: int
    end_line: int
    content: str
    language: str
    chunk_type: str
    name: str
    parent_name: Optional[str] = None
    context_path: Optional[str] = None
    documentation: Optional[str] = None
    signature: Optional[str] = None
    exports: Optional[List[str]] = None
    imports: Optional[List[str]] = None
    decorators: Optional[List[str]] = None
    type_info: Optional[TypeInfo] = None
    domain_hints: List[DomainHint] = Field(default_factory=list, max_length=3)
    is_public_api: bool = False

    def to_json(self) -> str:
        """Convert to JSON string, leaving out unset optional fields."""
        return self.model_dump_json(exclude_none=True)


@dataclass
class ChunkingConfig:
    """Configuration for semantic chunking.

    ``min_chunk_size`` must not exceed ``max_chunk_size``; this is not validated.
    """

    max_chunk_size: int = 3000  # chars
    min_chunk_size: int = 100  # chars
    include_imports: bool = True
    include_documentation: bool = True
    extract_domain_hints: bool = True
    preserve_hierarchy: bool = True
    chunk_nested_constructs: bool = True
    container_split_ratio: float = 0.7
    container_types: Tuple[str, ...] = CONTAINER_TYPES


@dataclass
class Candidate:
    """Raw construct recognised by a driver, before assembly.

    ``parent`` is an index into the same driver pass's candidate list.
    """

    start_line: int
    end_line: int
    name: str
    chunk_type: str
    header_line: int = 0
    parent: Optional[int] = None
    parent_name: Optional[str] = None
    context: List[str] = field(default_factory=list)
    documentation: Optional[str] = None
    signature: Optional[str] = None
    exports: List[str] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)
    decorators: List[str] = field(default_factory=list)
    type_info: Optional[TypeInfo] = None
    is_public_api: bool = False
    discarded: bool = False

    def __post_init__(self):
        if not self.header_line:
            self.header_line = self.start_line


@dataclass(frozen=True)
class ParseOk:
    """Successful driver pass.

    ``file_name`` and ``imports`` describe the file as a whole and are used
    when it ends up as a single whole-file chunk.
    """

    candidates: List[Candidate]
    file_name: Optional[str] = None
    imports: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ParseFailed:
    """Driver pass that could not make sense of the file."""

    reason: str


DriverResult = Union[ParseOk, ParseFailed]


class ParseError(Exception):
    """Raised inside a driver when the source cannot be scanned reliably."""
