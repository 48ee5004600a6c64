"""
Language registry: maps file names to language tags and driver families.
Loads Tree-sitter parsers for the languages parsed with a full syntax tree.
"""

import importlib
from typing import Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from pathlib import Path

from tree_sitter import Language, Parser
from utils.logging import get_logger

logger = get_logger(__name__)

C_STYLE_COMMENTS = ("//", "/*", "*")
HASH_COMMENTS = ("#",)

# Driver families
STRUCTURED = "structured"
INDENTATION = "indentation"
BRACE = "brace"
FIXED_COLUMN = "fixed-column"
JOB_STEP = "job-step"
STATEMENT_BLOCK = "statement-block"
GENERIC = "generic"


@dataclass
class LanguageConfig:
    """Configuration for a language."""

    name: str
    extensions: List[str]
    family: str = GENERIC
    comment_prefixes: Tuple[str, ...] = ()
    tree_sitter_module: Optional[str] = None
    is_comment: Optional[Callable[[str], bool]] = field(default=None, repr=False)

    def line_is_comment(self, line: str) -> bool:
        """Whether a whole source line is a comment in this language."""
        if self.is_comment is not None:
            return self.is_comment(line)
        stripped = line.strip()
        return bool(stripped) and stripped.startswith(self.comment_prefixes)


def _cobol_comment(line: str) -> bool:
    # Indicator area is column 7 when the sequence area is present
    if len(line) > 6 and line[:6].strip(" 0123456789") == "" and line[6] in "*/":
        return True
    return line.strip().startswith("*>")


def _jcl_comment(line: str) -> bool:
    return line.startswith("//*")


BUILTIN_LANGUAGES: Tuple[LanguageConfig, ...] = (
    LanguageConfig("typescript", [".ts", ".mts", ".cts"], STRUCTURED, C_STYLE_COMMENTS, "tree_sitter_typescript"),
    LanguageConfig("tsx", [".tsx"], STRUCTURED, C_STYLE_COMMENTS, "tree_sitter_typescript"),
    LanguageConfig("javascript", [".js", ".mjs", ".cjs"], STRUCTURED, C_STYLE_COMMENTS, "tree_sitter_javascript"),
    LanguageConfig("jsx", [".jsx"], STRUCTURED, C_STYLE_COMMENTS, "tree_sitter_javascript"),
    LanguageConfig("python", [".py", ".pyi", ".pyw", ".pyx"], INDENTATION, HASH_COMMENTS),
    LanguageConfig("csharp", [".cs"], BRACE, C_STYLE_COMMENTS),
    LanguageConfig("java", [".java"], BRACE, C_STYLE_COMMENTS),
    LanguageConfig("kotlin", [".kt", ".kts"], BRACE, C_STYLE_COMMENTS),
    LanguageConfig("scala", [".scala", ".sc"], BRACE, C_STYLE_COMMENTS),
    LanguageConfig("go", [".go"], BRACE, C_STYLE_COMMENTS),
    LanguageConfig("rust", [".rs"], BRACE, C_STYLE_COMMENTS),
    LanguageConfig("swift", [".swift"], BRACE, C_STYLE_COMMENTS),
    LanguageConfig("php", [".php"], BRACE, C_STYLE_COMMENTS + HASH_COMMENTS),
    LanguageConfig("c", [".c", ".h"], GENERIC, C_STYLE_COMMENTS),
    LanguageConfig("cpp", [".cpp", ".cc", ".cxx", ".hpp", ".hh", ".hxx"], GENERIC, C_STYLE_COMMENTS),
    LanguageConfig("ruby", [".rb"], GENERIC, HASH_COMMENTS),
    LanguageConfig("lua", [".lua"], GENERIC, ("--",)),
    LanguageConfig("perl", [".pl", ".pm"], GENERIC, HASH_COMMENTS),
    LanguageConfig("r", [".r"], GENERIC, HASH_COMMENTS),
    LanguageConfig("shell", [".sh", ".bash", ".zsh"], GENERIC, HASH_COMMENTS),
    LanguageConfig("vue", [".vue"], GENERIC, C_STYLE_COMMENTS),
    LanguageConfig("svelte", [".svelte"], GENERIC, C_STYLE_COMMENTS),
    LanguageConfig("cobol", [".cbl", ".cob", ".cobol", ".cpy", ".copy"], FIXED_COLUMN, is_comment=_cobol_comment),
    LanguageConfig("jcl", [".jcl", ".prc", ".proc"], JOB_STEP, is_comment=_jcl_comment),
    LanguageConfig("sql", [".sql"], STATEMENT_BLOCK, ("--", "/*", "*")),
    LanguageConfig("pli", [".pli", ".pl1"], GENERIC, ("/*", "*")),
    LanguageConfig("asm", [".asm", ".s"], GENERIC, ("*", ";")),
    LanguageConfig("bms", [".bms"], GENERIC, ("*",)),
    LanguageConfig("html", [".html", ".htm"], GENERIC),
    LanguageConfig("css", [".css", ".scss", ".less"], GENERIC, ("/*", "*")),
    LanguageConfig("markdown", [".md", ".markdown"], GENERIC),
    LanguageConfig("json", [".json"], GENERIC),
    LanguageConfig("yaml", [".yaml", ".yml"], GENERIC, HASH_COMMENTS),
    LanguageConfig("toml", [".toml"], GENERIC, HASH_COMMENTS),
    LanguageConfig("xml", [".xml"], GENERIC),
    LanguageConfig("dockerfile", [".dockerfile"], GENERIC, HASH_COMMENTS),
    LanguageConfig("makefile", [".mk"], GENERIC, HASH_COMMENTS),
)

SPECIAL_FILE_NAMES = {
    "dockerfile": "dockerfile",
    "makefile": "makefile",
    "gnumakefile": "makefile",
}

UNKNOWN = LanguageConfig("unknown", [], GENERIC, C_STYLE_COMMENTS + HASH_COMMENTS)


class LanguageRegistry:
    """Registry for language detection and Tree-sitter parsers."""

    def __init__(self):
        self.languages: Dict[str, LanguageConfig] = {}
        self.parsers: Dict[str, Parser] = {}
        self.extension_map: Dict[str, str] = {}
        self._attempted: Dict[str, bool] = {}

        for config in BUILTIN_LANGUAGES:
            self.languages[config.name] = config
            for ext in config.extensions:
                self.extension_map[ext] = config.name

    def _try_load_language(self, config: LanguageConfig) -> bool:
        """Try to load a Tree-sitter parser for a language."""
        try:
            module = importlib.import_module(config.tree_sitter_module)

            # Grammar packages expose either `language` or `language_<name>`
            language_func = None
            if hasattr(module, f"language_{config.name}"):
                language_func = getattr(module, f"language_{config.name}")
            elif hasattr(module, "language"):
                language_func = module.language
            elif hasattr(module, f"{config.name}_language"):
                language_func = getattr(module, f"{config.name}_language")

            if language_func is None:
                logger.warning(f"Could not find language function in {config.tree_sitter_module}")
                return False

            language = Language(language_func())
            self.parsers[config.name] = Parser(language)
            logger.debug(f"Loaded {config.name} parser")
            return True

        except ImportError:
            logger.debug(f"Tree-sitter parser for {config.name} not available")
            return False
        except Exception as e:
            logger.warning(f"Failed to load {config.name} parser: {e}")
            return False

    def get_language_for_file(self, file_path: str) -> str:
        """Get the language tag for a file, `unknown` when not recognised."""
        path = Path(file_path)

        special = SPECIAL_FILE_NAMES.get(path.name.lower())
        if special:
            return special

        return self.extension_map.get(path.suffix.lower(), UNKNOWN.name)

    def get_parser(self, language: str) -> Optional[Parser]:
        """Get the Tree-sitter parser for a language, loading it on first use."""
        if language not in self._attempted:
            config = self.languages.get(language)
            loaded = bool(config and config.tree_sitter_module) and self._try_load_language(config)
            self._attempted[language] = loaded
        return self.parsers.get(language)

    def get_config(self, language: str) -> LanguageConfig:
        """Get the configuration for a language."""
        return self.languages.get(language, UNKNOWN)

    def get_family(self, language: str) -> str:
        """Driver family for a language; structured languages without a parser drop to generic."""
        family = self.get_config(language).family
        if family == STRUCTURED and self.get_parser(language) is None:
            return GENERIC
        return family

    def get_supported_languages(self) -> List[str]:
        """Get list of supported languages."""
        return list(self.languages.keys())

    def get_supported_extensions(self) -> List[str]:
        """Get list of supported file extensions."""
        return list(self.extension_map.keys())

    def is_supported(self, language_or_extension: str) -> bool:
        """Check if a language or file extension is supported."""
        return (language_or_extension in self.languages or
                language_or_extension in self.extension_map)


# Global registry instance
_registry = None


def get_language_registry() -> LanguageRegistry:
    """Get the global language registry instance."""
    global _registry
    if _registry is None:
        _registry = LanguageRegistry()
    return _registry


def detect_language(file_path: str) -> str:
    """Language tag for a file path."""
    return get_language_registry().get_language_for_file(file_path)
