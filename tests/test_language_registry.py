from core.language_registry import (
    BRACE,
    FIXED_COLUMN,
    GENERIC,
    INDENTATION,
    JOB_STEP,
    STATEMENT_BLOCK,
    STRUCTURED,
    UNKNOWN,
    detect_language,
    get_language_registry,
)


def test_language_detection():
    """Test language detection from file extension."""
    assert detect_language("test.py") == "python"
    assert detect_language("test.js") == "javascript"
    assert detect_language("test.ts") == "typescript"
    assert detect_language("test.tsx") == "tsx"
    assert detect_language("src/Main.JAVA") == "java"
    assert detect_language("PAYROLL.cbl") == "cobol"
    assert detect_language("copybooks/CUSTREC.cpy") == "cobol"
    assert detect_language("jobs/nightly.jcl") == "jcl"
    assert detect_language("schema.sql") == "sql"


def test_special_file_names():
    """Test files recognised by name rather than extension."""
    assert detect_language("Dockerfile") == "dockerfile"
    assert detect_language("build/Makefile") == "makefile"


def test_unknown_extension():
    """Test that unrecognised files map to unknown."""
    registry = get_language_registry()

    assert detect_language("notes.xyz") == "unknown"
    assert registry.get_config("unknown") is UNKNOWN
    assert registry.get_config("klingon") is UNKNOWN
    assert registry.get_family("unknown") == GENERIC


def test_language_families():
    """Test each language routes to its driver family."""
    registry = get_language_registry()

    assert registry.get_family("python") == INDENTATION
    assert registry.get_family("csharp") == BRACE
    assert registry.get_family("go") == BRACE
    assert registry.get_family("cobol") == FIXED_COLUMN
    assert registry.get_family("jcl") == JOB_STEP
    assert registry.get_family("sql") == STATEMENT_BLOCK
    assert registry.get_family("ruby") == GENERIC


def test_tree_sitter_parsers_load():
    """Test Tree-sitter parsers for the structured family."""
    registry = get_language_registry()

    assert registry.get_parser("typescript") is not None
    assert registry.get_parser("javascript") is not None
    assert registry.get_family("typescript") == STRUCTURED
    assert registry.get_parser("python") is None


def test_comment_detection():
    """Test per-language whole-line comment detection."""
    registry = get_language_registry()
    cobol = registry.get_config("cobol")
    jcl = registry.get_config("jcl")
    python = registry.get_config("python")

    assert cobol.line_is_comment("000100* CUSTOMER MASTER UPDATE")
    assert cobol.line_is_comment("       *> free-format note")
    assert not cobol.line_is_comment("       MOVE A TO B.")
    assert jcl.line_is_comment("//* NIGHTLY RUN")
    assert not jcl.line_is_comment("//STEP1 EXEC PGM=IEFBR14")
    assert python.line_is_comment("    # helper")
    assert not python.line_is_comment("")


def test_is_supported():
    """Test support lookups by language and by extension."""
    registry = get_language_registry()

    assert registry.is_supported("python")
    assert registry.is_supported(".rs")
    assert not registry.is_supported(".xyz")
    assert len(registry.get_supported_extensions()) >= 30
