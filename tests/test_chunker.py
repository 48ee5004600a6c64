from core.chunk_types import Chunk, ChunkingConfig, DomainHint
from core.chunker import SemanticChunker, chunk_file, generate_domain_context
from core.scanning import slice_lines, split_lines


SETTINGS_MODULE = '''import os
import sys

MAX_RETRIES = 3


def load_settings(path):
    """Read settings from disk."""
    with open(path) as f:
        return f.read()


class SettingsStore:
    def __init__(self, path):
        self.path = path

    def get(self, key):
        return os.environ.get(key)
'''


def _procedure_division() -> str:
    lines = [
        "       PROCEDURE DIVISION.",
        "       1000-INIT-PROGRAM.",
        "           OPEN INPUT CUSTOMER-FILE",
        "           OPEN OUTPUT REPORT-FILE",
        "           MOVE ZEROES TO WS-RECORD-COUNT",
        "           MOVE 'N' TO WS-END-OF-FILE",
        "           PERFORM 2000-READ-CUSTOMER",
        "           DISPLAY 'CUSTOMER REPORT STARTED'.",
        "       2000-READ-CUSTOMER.",
        "           READ CUSTOMER-FILE",
        "               AT END",
        "                   MOVE 'Y' TO WS-END-OF-FILE",
        "               NOT AT END",
        "                   ADD 1 TO WS-RECORD-COUNT",
        "                   PERFORM 3000-PRINT-DETAIL",
        "           END-READ.",
        "       9000-TERMINATE.",
        "           CLOSE CUSTOMER-FILE",
        "           CLOSE REPORT-FILE",
        "           DISPLAY 'RECORDS READ: ' WS-RECORD-COUNT",
        "           DISPLAY 'CUSTOMER REPORT COMPLETE'",
        "           MOVE ZERO TO RETURN-CODE",
        "           STOP RUN.",
    ]
    return "\n".join(lines) + "\n"


def test_chunk_python_function():
    """Test Python function chunking."""
    chunker = SemanticChunker()

    code = '''def hello_world():
    """Say hello to the world."""
    print("Hello, World!")
    return "greeting"
'''

    chunks = chunker.chunk_content("test.py", code)

    assert len(chunks) == 1
    assert chunks[0].chunk_type == "function"
    assert chunks[0].name == "hello_world"
    assert chunks[0].language == "python"
    assert chunks[0].documentation == "Say hello to the world."
    assert chunks[0].id == "test.py:1-4"
    assert "def hello_world():" in chunks[0].content


def test_large_class_is_split_into_members():
    """Members of a container above the split threshold get their own chunks."""
    config = ChunkingConfig(max_chunk_size=400, min_chunk_size=50)
    chunker = SemanticChunker(config)

    code = '''class ReportBuilder:
    def add_section(self, title, body):
        entry = {"title": title, "body": body, "position": len(self.sections)}
        self.sections.append(entry)
        return self

    def build(self):
        rendered = [section["title"] + ": " + section["body"] for section in self.sections]
        self.last_render = " | ".join(rendered)
        return self.last_render

    def clear(self):
        self.sections = []
        self.last_render = None
        self.metadata = {"cleared": True, "previous_count": 0}
        return self
'''

    chunks = chunker.chunk_content("report.py", code)

    assert [c.name for c in chunks] == ["ReportBuilder", "add_section", "build", "clear"]
    assert chunks[0].chunk_type == "class"
    for member in chunks[1:]:
        assert member.chunk_type == "method"
        assert member.parent_name == "ReportBuilder"
        assert member.context_path == "ReportBuilder"


def test_small_class_keeps_members_inside():
    """A container below the split threshold stays a single chunk."""
    chunker = SemanticChunker()

    code = '''class Counter:
    def __init__(self):
        self.value = 0

    def increment(self):
        self.value += 1
'''

    chunks = chunker.chunk_content("counter.py", code)

    assert len(chunks) == 1
    assert chunks[0].name == "Counter"
    assert chunks[0].exports == ["__init__", "increment"]


def test_typescript_class_with_large_method():
    """A large TypeScript class yields the class and its method."""
    body = "\n".join(f"    const value{i} = input * {i} + offset;" for i in range(80))
    code = (
        "export class Foo {\n"
        "  bar(input: number, offset: number): number {\n"
        f"{body}\n"
        "    return input;\n"
        "  }\n"
        "}\n"
    )

    chunks = SemanticChunker().chunk_content("src/foo.ts", code)

    assert len(chunks) == 2
    assert chunks[0].name == "Foo"
    assert chunks[0].chunk_type == "class"
    assert chunks[0].is_public_api
    assert chunks[1].name == "bar"
    assert chunks[1].chunk_type == "method"
    assert chunks[1].parent_name == "Foo"
    assert chunks[1].context_path == "Foo"
    assert chunks[1].signature == "bar(input: number, offset: number): number"


def test_small_typescript_file_is_one_chunk():
    """A trivially small structured file becomes a whole-file chunk."""
    code = "export function add(a: number, b: number): number {\n  return a + b;\n}\n"

    chunks = SemanticChunker().chunk_content("src/math.ts", code)

    assert len(chunks) == 1
    assert chunks[0].chunk_type == "file"
    assert chunks[0].name == "math"
    assert chunks[0].content == code


def test_unbalanced_braces_fall_back_to_whole_file():
    """Brace-family files that cannot be scanned become one whole-file chunk."""
    code = "public class Broken {\n    void run() {\n        work();\n    }\n"

    chunks = SemanticChunker().chunk_content("src/Broken.java", code)

    assert len(chunks) == 1
    assert chunks[0].chunk_type == "file"
    assert chunks[0].name == "Broken"
    assert chunks[0].start_line == 1
    assert chunks[0].end_line == 4


def test_stray_opening_brace_falls_back_to_whole_file():
    """An extra brace after the last construct still makes the file unbalanced."""
    code = "public class A {\n    void run() {\n    }\n}\n{\n    work();\n    more();\n"

    chunks = SemanticChunker().chunk_content("A.java", code)

    assert [(c.chunk_type, c.start_line, c.end_line) for c in chunks] == [("file", 1, 7)]


def test_whitespace_only_file_has_no_chunks():
    """Test that blank files produce nothing."""
    chunker = SemanticChunker()

    assert chunker.chunk_content("empty.py", "") == []
    assert chunker.chunk_content("blank.py", "   \n\n\t\n") == []


def test_cobol_paragraphs():
    """Test COBOL paragraph chunking and classification."""
    chunks = SemanticChunker().chunk_content("CUSTRPT.cbl", _procedure_division())

    paragraphs = [c for c in chunks if c.parent_name == "PROCEDURE DIVISION"]

    assert [c.name for c in paragraphs] == ["1000-INIT-PROGRAM", "2000-READ-CUSTOMER", "9000-TERMINATE"]
    assert [c.chunk_type for c in paragraphs] == ["constructor", "repository", "function"]
    for paragraph in paragraphs:
        assert paragraph.context_path.startswith("PROCEDURE DIVISION > ")
    assert paragraphs[1].context_path == "PROCEDURE DIVISION > 2000-READ-CUSTOMER"


def test_top_level_chunks_cover_file():
    """Top-level chunks cover every line exactly once, in order."""
    chunks = SemanticChunker().chunk_content("settings.py", SETTINGS_MODULE)
    top = [c for c in chunks if c.parent_name is None]

    assert top[0].start_line == 1
    for previous, current in zip(top, top[1:]):
        assert current.start_line == previous.end_line + 1
    assert top[-1].end_line == len(split_lines(SETTINGS_MODULE))


def test_chunk_content_is_verbatim():
    """Each chunk's content is the exact source of its line range."""
    lines = split_lines(SETTINGS_MODULE)

    for chunk in SemanticChunker().chunk_content("settings.py", SETTINGS_MODULE):
        assert chunk.content == slice_lines(lines, chunk.start_line, chunk.end_line)
        assert chunk.id == f"settings.py:{chunk.start_line}-{chunk.end_line}"


def test_chunking_is_deterministic():
    """Identical input and config produce identical chunks."""
    first = SemanticChunker().chunk_content("settings.py", SETTINGS_MODULE)
    second = SemanticChunker().chunk_content("settings.py", SETTINGS_MODULE)

    assert [c.model_dump() for c in first] == [c.model_dump() for c in second]


def test_import_block_can_be_disabled():
    """No import-block chunk is produced when imports are excluded."""
    with_imports = SemanticChunker().chunk_content("settings.py", SETTINGS_MODULE)
    without = SemanticChunker(ChunkingConfig(include_imports=False)).chunk_content(
        "settings.py", SETTINGS_MODULE
    )

    assert any(c.chunk_type == "import-block" for c in with_imports)
    assert not any(c.chunk_type == "import-block" for c in without)


def test_chunk_file_reads_relative_path(tmp_path):
    """Test chunking a file on disk relative to the repository root."""
    package = tmp_path / "pkg"
    package.mkdir()
    (package / "settings.py").write_text(SETTINGS_MODULE, encoding="utf-8")

    chunks = chunk_file("pkg/settings.py", str(tmp_path))

    assert chunks
    assert all(c.file_path == "pkg/settings.py" for c in chunks)
    assert chunks[0].id.startswith("pkg/settings.py:")


def test_chunk_repository_respects_gitignore(tmp_path):
    """Test repository walk skips ignored and binary files."""
    (tmp_path / ".gitignore").write_text("build/\n*.log\n", encoding="utf-8")
    (tmp_path / "app.py").write_text(SETTINGS_MODULE, encoding="utf-8")
    (tmp_path / "debug.log").write_text("started\n", encoding="utf-8")
    (tmp_path / "build").mkdir()
    (tmp_path / "build" / "generated.py").write_text("x = 1\n", encoding="utf-8")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "lib.js").write_text("var a = 1;\n", encoding="utf-8")
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00")
    (tmp_path / "data.txt").write_bytes(b"abc\x00def")

    chunks = SemanticChunker().chunk_repository(str(tmp_path))
    paths = {c.file_path for c in chunks}

    assert "app.py" in paths
    assert "debug.log" not in paths
    assert "build/generated.py" not in paths
    assert "node_modules/lib.js" not in paths
    assert "logo.png" not in paths
    assert "data.txt" not in paths


def test_generate_domain_context():
    """Test the one-line enrichment string."""
    chunk = Chunk(
        id="billing.ts:1-20",
        file_path="billing.ts",
        start_line=1,
        end_line=20,
        content="class PaymentService {}",
        language="typescript",
        chunk_type="service",
        name="PaymentService",
        signature="class PaymentService",
        domain_hints=[
            DomainHint(category="payment", confidence=0.9, source="name", keywords=["payment"]),
            DomainHint(category="user-management", confidence=0.5, source="content", keywords=["user"]),
            DomainHint(category="logging", confidence=0.2, source="content", keywords=["log"]),
        ],
    )

    context = generate_domain_context(chunk)

    assert context == "[SERVICE] PaymentService (payment, user management) - class PaymentService"


def test_generate_domain_context_for_nested_chunk():
    """Parent names appear and whole-file chunks carry no type tag."""
    method = Chunk(
        id="a.py:3-5",
        file_path="a.py",
        start_line=3,
        end_line=5,
        content="def run(self): pass",
        language="python",
        chunk_type="method",
        name="run",
        parent_name="Job",
    )
    whole = Chunk(
        id="a.py:1-5",
        file_path="a.py",
        start_line=1,
        end_line=5,
        content="x",
        language="python",
        chunk_type="file",
        name="a",
    )

    assert generate_domain_context(method) == "[METHOD] run in Job"
    assert generate_domain_context(whole) == "a"


def test_supported_file_checks():
    """Test file support and language listing."""
    chunker = SemanticChunker()

    assert chunker.is_supported_file("src/app.py")
    assert chunker.is_supported_file("Makefile")
    assert not chunker.is_supported_file("assets/logo.PNG")
    assert "cobol" in chunker.get_supported_languages()
    assert ".jcl" in chunker.get_supported_extensions()
