"""
Job-step driver for JCL.

A JOB or PROC statement opens a chunk that absorbs the EXEC steps after it.
Steps outside any job or procedure become chunks of their own.
"""

import re
from typing import List, Optional

from core.chunk_types import Candidate, DriverResult, ParseOk
from core.scanning import guarded, split_lines
from utils.logging import get_logger

logger = get_logger(__name__)

JOB_PATTERN = re.compile(r"^//(\w[\w#@$]*)\s+JOB\b")
PROC_PATTERN = re.compile(r"^//(\w[\w#@$]*)\s+PROC\b")
PEND_PATTERN = re.compile(r"^//[\w#@$]*\s+PEND\b")
EXEC_PATTERN = re.compile(r"^//(\w[\w#@$]*)?\s+EXEC\s+(?:(PGM|PROC)=)?([\w#@$.]+)")


@guarded
def extract(file_path: str, content: str, language: str) -> DriverResult:
    """Recognise jobs, in-stream procedures and job steps."""
    lines = split_lines(content)
    candidates: List[Candidate] = []
    imports: List[str] = []
    job_name: Optional[str] = None
    # Index of the JOB/PROC chunk steps are folded into
    owner: Optional[int] = None

    def close(line_no: int):
        if candidates and candidates[-1].end_line >= line_no:
            candidates[-1].end_line = max(candidates[-1].start_line, line_no - 1)

    for line_no, line in enumerate(lines, start=1):
        if line.startswith("//*"):
            continue

        job = JOB_PATTERN.match(line)
        proc = PROC_PATTERN.match(line)
        if job or proc:
            close(line_no)
            name = (job or proc).group(1)
            if job and job_name is None:
                job_name = name
            candidates.append(
                Candidate(
                    start_line=line_no,
                    end_line=len(lines),
                    name=name,
                    chunk_type="handler" if job else "function",
                    context=[name],
                    signature=line.strip(),
                    is_public_api=bool(job),
                )
            )
            owner = len(candidates) - 1
            continue

        if PEND_PATTERN.match(line) and owner is not None:
            candidates[owner].end_line = line_no
            owner = None
            continue

        step = EXEC_PATTERN.match(line)
        if not step:
            continue

        target = step.group(3)
        if target not in imports:
            imports.append(target)

        if owner is not None:
            if target not in candidates[owner].imports:
                candidates[owner].imports.append(target)
            continue

        close(line_no)
        name = step.group(1) or target
        candidates.append(
            Candidate(
                start_line=line_no,
                end_line=len(lines),
                name=name,
                chunk_type="function",
                context=[name],
                signature=line.strip(),
                imports=[target],
            )
        )

    logger.debug(f"JCL scan found {len(candidates)} candidates in {file_path}")
    return ParseOk(candidates=candidates, file_name=job_name, imports=imports)
