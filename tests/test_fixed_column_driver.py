from core.chunk_types import ParseOk
from core.fixed_column_driver import extract, normalize_line


DATA_DIVISION = "\n".join([
    "       IDENTIFICATION DIVISION.",
    "       PROGRAM-ID. CUSTUPD.",
    "       DATA DIVISION.",
    "       FILE SECTION.",
    "       FD  CUSTOMER-FILE.",
    "       01  CUSTOMER-RECORD.",
    "           05  CUST-ID          PIC X(10).",
    "       WORKING-STORAGE SECTION.",
    "       01  WS-COUNTERS.",
    "           05  WS-COUNT         PIC 9(5).",
    "       77  WS-FLAG              PIC X.",
    "           COPY CUSTCOPY.",
]) + "\n"


def _by_name(result):
    return {c.name: c for c in result.candidates}


def test_normalize_fixed_format():
    """Test sequence and indicator areas are stripped."""
    line = normalize_line("000100 IDENTIFICATION DIVISION.".ljust(72) + "CUSTUPD1")

    assert line.text == "IDENTIFICATION DIVISION."
    assert line.in_area_a
    assert not line.is_comment


def test_normalize_comments():
    """Test fixed and free-format comments."""
    assert normalize_line("000200* CUSTOMER UPDATE").is_comment
    assert normalize_line("      / PAGE BREAK").is_comment
    assert normalize_line("       *> inline note").is_comment
    assert normalize_line("PROCEDURE DIVISION. *> trailing").text == "PROCEDURE DIVISION."


def test_area_b_is_not_area_a():
    """Test statements indented into area B."""
    assert not normalize_line("           MOVE A TO B.").in_area_a


def test_data_division_records():
    """Test file descriptions and level 01/77 items."""
    result = extract("CUSTUPD.cbl", DATA_DIVISION, "cobol")

    assert isinstance(result, ParseOk)
    assert result.file_name == "CUSTUPD"
    assert [c.name for c in result.candidates] == [
        "IDENTIFICATION DIVISION",
        "DATA DIVISION",
        "FILE",
        "CUSTOMER-FILE",
        "WORKING-STORAGE",
        "WS-COUNTERS",
        "WS-FLAG",
    ]

    candidates = _by_name(result)
    fd = candidates["CUSTOMER-FILE"]
    assert fd.chunk_type == "model"
    assert (fd.start_line, fd.end_line) == (5, 7)
    assert fd.context == ["DATA DIVISION", "FILE", "CUSTOMER-FILE"]
    assert fd.parent_name == "FILE"

    assert candidates["WS-COUNTERS"].chunk_type == "model"
    assert candidates["WS-FLAG"].chunk_type == "property"
    assert candidates["FILE"].chunk_type == "module"


def test_copy_statements_become_imports():
    """Test COPY targets attach to the enclosing chunk and the file."""
    result = extract("CUSTUPD.cbl", DATA_DIVISION, "cobol")

    assert _by_name(result)["WS-FLAG"].imports == ["CUSTCOPY"]
    assert result.imports == ["CUSTCOPY"]


def test_procedure_sections_and_paragraphs():
    """Test sections nest paragraphs in the context chain."""
    code = "\n".join([
        "       PROCEDURE DIVISION.",
        "       MAIN-LOGIC SECTION.",
        "       1000-VALIDATE-INPUT.",
        "           IF WS-COUNT > 0",
        "               PERFORM 2000-WRITE-REPORT",
        "           END-IF.",
        "       EXIT.",
        "       2000-WRITE-REPORT.",
        "           EXEC SQL INCLUDE SQLCA END-EXEC.",
        "           WRITE REPORT-LINE.",
    ]) + "\n"

    result = extract("RPT.cbl", code, "cobol")
    candidates = _by_name(result)

    assert "EXIT" not in candidates
    assert candidates["MAIN-LOGIC"].chunk_type == "handler"
    validate = candidates["1000-VALIDATE-INPUT"]
    assert validate.chunk_type == "function"
    assert validate.parent_name == "MAIN-LOGIC"
    assert validate.context == ["PROCEDURE DIVISION", "MAIN-LOGIC", "1000-VALIDATE-INPUT"]
    assert (validate.start_line, validate.end_line) == (3, 7)

    write = candidates["2000-WRITE-REPORT"]
    assert write.chunk_type == "repository"
    assert write.imports == ["SQLCA"]
    assert write.end_line == 10


def test_copybook_is_one_import_block():
    """Test copybooks are kept whole."""
    code = "       01  CUSTOMER-REC.\n           05  CUST-ID  PIC X(10).\n"

    result = extract("copy/custrec.cpy", code, "cobol")

    assert len(result.candidates) == 1
    assert result.candidates[0].chunk_type == "import-block"
    assert result.candidates[0].name == "CUSTREC"
    assert result.candidates[0].end_line == 2
    assert result.file_name == "CUSTREC"
