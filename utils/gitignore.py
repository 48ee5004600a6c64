"""
.gitignore handling for repository walks, using pathspec.
"""

import pathspec
from pathlib import Path
from typing import List
from utils.logging import get_logger

logger = get_logger(__name__)

# Always skipped, whatever the repository's own rules say
DEFAULT_PATTERNS = [
    ".git/",
    "__pycache__/",
    "node_modules/",
    ".venv/",
    "*.pyc",
]


class GitignoreParser:
    """Matches repository paths against every .gitignore in the tree."""

    def __init__(self, repo_path: str):
        self.repo_path = Path(repo_path).resolve()
        self.spec = self._load_gitignore_spec()

    def _read_patterns(self, gitignore: Path) -> List[str]:
        """Patterns of one .gitignore, re-rooted at the repository root."""
        prefix = gitignore.parent.relative_to(self.repo_path).as_posix()
        patterns = []
        try:
            with open(gitignore, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except OSError as e:
            logger.warning(f"Error reading {gitignore}: {e}")
            return patterns

        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if prefix == ".":
                patterns.append(line)
                continue
            negated = line.startswith("!")
            body = line[1:] if negated else line
            if "/" in body.rstrip("/"):
                body = f"{prefix}/{body.lstrip('/')}"
            else:
                body = f"{prefix}/**/{body}"
            patterns.append(f"!{body}" if negated else body)

        logger.debug(f"Loaded {len(patterns)} patterns from {gitignore}")
        return patterns

    def _load_gitignore_spec(self) -> pathspec.PathSpec:
        patterns = list(DEFAULT_PATTERNS)
        root_gitignore = self.repo_path / ".gitignore"
        if root_gitignore.exists():
            patterns.extend(self._read_patterns(root_gitignore))

        for nested in sorted(self.repo_path.rglob("*/.gitignore")):
            if ".git" in nested.relative_to(self.repo_path).parts:
                continue
            patterns.extend(self._read_patterns(nested))

        return pathspec.PathSpec.from_lines("gitwildmatch", patterns)

    def should_ignore(self, file_path: Path) -> bool:
        """Check if a file should be ignored."""
        abs_path = file_path if file_path.is_absolute() else (self.repo_path / file_path)
        try:
            rel_path = abs_path.resolve().relative_to(self.repo_path)
        except ValueError:
            # File is outside repo, don't ignore
            return False
        return self.spec.match_file(rel_path.as_posix())

    def get_patterns(self) -> List[str]:
        """Get the loaded patterns (for debugging)."""
        return [str(pattern.pattern) for pattern in self.spec.patterns]
