from core.assembler import GAP_NAME, ChunkAssembler, comment_text
from core.chunk_types import Candidate, ChunkingConfig


def test_comment_text():
    """Test comment markers are stripped across languages."""
    assert comment_text("    // hello") == "hello"
    assert comment_text("/** Docs */") == "Docs"
    assert comment_text(" * continued") == "continued"
    assert comment_text("# note") == "note"
    assert comment_text("-- sql note") == "sql note"
    assert comment_text("000100* PARA NOTE") == "PARA NOTE"


def test_leading_comments_become_documentation():
    """Test a comment run above a construct moves into it."""
    content = "# Loads the config.\n# Falls back to defaults.\ndef load():\n    return {}\n\nx = 1\n"
    candidates = [Candidate(start_line=3, end_line=4, name="load", chunk_type="function")]

    chunks = ChunkAssembler().assemble("conf.py", content, "python", candidates)

    assert [(c.name, c.start_line, c.end_line) for c in chunks] == [
        ("load", 1, 4),
        (GAP_NAME, 5, 6),
    ]
    assert chunks[0].documentation == "Loads the config.\nFalls back to defaults."
    assert chunks[0].content.startswith("# Loads the config.")
    assert chunks[1].chunk_type == "unknown"


def test_documentation_can_be_disabled():
    """Test comments stay in the gap when documentation is off."""
    content = "# Loads the config.\ndef load():\n    return {}\n"
    candidates = [
        Candidate(start_line=2, end_line=3, name="load", chunk_type="function", documentation="Docstring")
    ]

    chunks = ChunkAssembler(ChunkingConfig(include_documentation=False)).assemble(
        "conf.py", content, "python", candidates
    )

    assert [(c.name, c.start_line) for c in chunks] == [(GAP_NAME, 1), ("load", 2)]
    assert chunks[1].documentation is None


def test_documentation_shrinks_previous_sibling():
    """Test a comment absorbed by the previous construct is handed to the next one."""
    content = "def a():\n    return 1\n# describes b\ndef b():\n    return 2\n"
    candidates = [
        Candidate(start_line=1, end_line=3, name="a", chunk_type="function"),
        Candidate(start_line=4, end_line=5, name="b", chunk_type="function"),
    ]

    chunks = ChunkAssembler().assemble("ab.py", content, "python", candidates)

    assert [(c.name, c.start_line, c.end_line) for c in chunks] == [("a", 1, 2), ("b", 3, 5)]
    assert chunks[1].documentation == "describes b"


def test_blank_gaps_are_absorbed():
    """Test blank lines join a neighbour instead of forming gap chunks."""
    content = "\n\ndef f():\n    pass\n\n\ndef g():\n    pass\n\n"
    candidates = [
        Candidate(start_line=3, end_line=4, name="f", chunk_type="function"),
        Candidate(start_line=7, end_line=8, name="g", chunk_type="function"),
    ]

    chunks = ChunkAssembler().assemble("fg.py", content, "python", candidates)

    assert [(c.name, c.start_line, c.end_line) for c in chunks] == [("f", 1, 6), ("g", 7, 9)]
    assert chunks[0].id == "fg.py:1-6"


def test_import_blocks_can_be_dropped():
    """Test import-block candidates are removed and their lines covered."""
    content = "import os\n\ndef main():\n    pass\n"
    candidates = [
        Candidate(start_line=1, end_line=1, name="imports", chunk_type="import-block", imports=["os"]),
        Candidate(start_line=3, end_line=4, name="main", chunk_type="function"),
    ]

    chunks = ChunkAssembler(ChunkingConfig(include_imports=False)).assemble(
        "main.py", content, "python", candidates
    )

    assert [(c.name, c.chunk_type) for c in chunks] == [(GAP_NAME, "unknown"), ("main", "function")]


def _class_with_member():
    lines = ["class Box:"] + [f"    value_{i} = {i}" for i in range(10)] + [
        "    def open(self):",
        "        return self.value_1",
    ]
    content = "\n".join(lines) + "\n"
    candidates = [
        Candidate(start_line=1, end_line=13, name="Box", chunk_type="class", exports=["open"]),
        Candidate(
            start_line=12,
            end_line=13,
            name="open",
            chunk_type="method",
            parent=0,
            parent_name="Box",
            context=["Box"],
        ),
    ]
    return content, candidates


def test_nested_members_need_a_large_container():
    """Test members of a small container are not emitted."""
    content, candidates = _class_with_member()

    chunks = ChunkAssembler().assemble("box.py", content, "python", candidates)

    assert [c.name for c in chunks] == ["Box"]
    assert chunks[0].exports == ["open"]


def test_nested_members_of_large_container():
    """Test members of a container over the split threshold are emitted."""
    content, candidates = _class_with_member()
    config = ChunkingConfig(max_chunk_size=100, min_chunk_size=20)

    chunks = ChunkAssembler(config).assemble("box.py", content, "python", candidates)

    assert [c.name for c in chunks] == ["Box", "open"]
    assert chunks[1].context_path == "Box"
    assert chunks[1].parent_name == "Box"


def test_hierarchy_and_hints_can_be_disabled():
    """Test context paths and domain hints are optional."""
    content, candidates = _class_with_member()
    config = ChunkingConfig(
        max_chunk_size=100,
        min_chunk_size=20,
        preserve_hierarchy=False,
        extract_domain_hints=False,
    )

    chunks = ChunkAssembler(config).assemble("box.py", content, "python", candidates)

    assert chunks[1].context_path is None
    assert all(c.domain_hints == [] for c in chunks)


def test_out_of_range_candidates_are_clamped():
    """Test candidate ranges are clipped to the file."""
    content = "def f():\n    pass\n"
    candidates = [Candidate(start_line=1, end_line=40, name="f", chunk_type="function")]

    chunks = ChunkAssembler().assemble("f.py", content, "python", candidates)

    assert (chunks[0].start_line, chunks[0].end_line) == (1, 2)
