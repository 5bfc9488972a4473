"""
Fitting a scanned project into a size budget.

When the raw text of a project is too large, long files are truncated
and the result is filled in priority order (manifests, readmes and entry
points first) until the budget runs out.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

logger = logging.getLogger(__name__)

ACTIVATION_THRESHOLD = 500_000
TRUNCATE_CAP = 5_000
DEFAULT_MAX_SIZE_KB = 400
DEFAULT_SCORE = 20

TRUNCATION_NOTE = (
    "\n\n# ... (file truncated - showing first {shown} of {total} characters)\n"
    "# Use 'cortxt file {path}' for the complete content"
)

FileList = List[Tuple[str, str]]


@dataclass(frozen=True)
class PriorityRule:
    """Score files whose basename (``kind="name"``) or extension (``kind="ext"``) matches."""

    kind: str
    value: str
    score: int

    def applies(self, basename: str) -> bool:
        if self.kind == "name":
            return basename == self.value
        return posixpath.splitext(basename)[1].lower() == self.value


PRIORITY_RULES: Tuple[PriorityRule, ...] = (
    # manifests
    PriorityRule("name", "package.json", 100),
    PriorityRule("name", "pyproject.toml", 100),
    PriorityRule("name", "Cargo.toml", 100),
    PriorityRule("name", "go.mod", 100),
    # readmes
    PriorityRule("name", "README.md", 90),
    PriorityRule("name", "README.rst", 90),
    PriorityRule("name", "README", 90),
    # entry points
    PriorityRule("name", "index.js", 80),
    PriorityRule("name", "main.js", 80),
    PriorityRule("name", "app.js", 80),
    PriorityRule("name", "main.py", 80),
    PriorityRule("name", "app.py", 80),
    PriorityRule("name", "__main__.py", 80),
    PriorityRule("name", "server.js", 75),
    # extensions
    PriorityRule("ext", ".js", 70),
    PriorityRule("ext", ".ts", 70),
    PriorityRule("ext", ".jsx", 65),
    PriorityRule("ext", ".tsx", 65),
    PriorityRule("ext", ".vue", 60),
    PriorityRule("ext", ".py", 60),
    PriorityRule("ext", ".go", 55),
    PriorityRule("ext", ".rs", 55),
    PriorityRule("ext", ".md", 50),
    PriorityRule("ext", ".json", 30),
    PriorityRule("ext", ".yaml", 25),
    PriorityRule("ext", ".yml", 25),
)


@dataclass(frozen=True)
class PriorityTable:
    """Rules are tried top to bottom; the first that applies wins."""

    rules: Tuple[PriorityRule, ...] = PRIORITY_RULES
    default: int = DEFAULT_SCORE

    def score(self, path: str) -> int:
        name = posixpath.basename(path)
        for rule in self.rules:
            if rule.applies(name):
                return rule.score
        return self.default


PRIORITY_TABLE = PriorityTable()


@dataclass(frozen=True)
class Budget:
    max_total_bytes: int
    truncate_cap: int = TRUNCATE_CAP

    @classmethod
    def from_kb(cls, max_size_kb: int, truncate_cap: int = TRUNCATE_CAP) -> "Budget":
        return cls(max_total_bytes=max_size_kb * 1024, truncate_cap=truncate_cap)


def total_size(files: Iterable[Tuple[str, str]]) -> int:
    return sum(len(content) for _, content in files)


def truncate_content(content: str, path: str, cap: int = TRUNCATE_CAP) -> str:
    """
    Shorten *content* to at most *cap* characters, note included.

    The kept text ends just before a newline when one is available so
    no line is cut in half.
    """
    if len(content) <= cap:
        return content

    reserve = len(TRUNCATION_NOTE.format(shown=cap, total=len(content), path=path))
    room = cap - reserve
    if room <= 0:
        return content[:cap]

    head = content[:room]
    cut = head.rfind("\n")
    body = head[:cut] if cut > 0 else head
    return body + TRUNCATION_NOTE.format(shown=len(body), total=len(content), path=path)


def prioritize(
    files: Sequence[Tuple[str, str]],
    budget: Budget,
    table: PriorityTable = PRIORITY_TABLE,
) -> FileList:
    """
    Truncate, rank and fill *budget* with *files*.

    Selection stops at the first file that would overflow, so the result
    is always a prefix of the ranked list. If the very first candidate is
    already too big it is kept on its own so the output is never empty.
    """
    truncated = [(path, truncate_content(content, path, budget.truncate_cap)) for path, content in files]
    ranked = sorted(truncated, key=lambda pair: table.score(pair[0]), reverse=True)

    selected: FileList = []
    running = 0
    for path, content in ranked:
        if running + len(content) <= budget.max_total_bytes:
            selected.append((path, content))
            running += len(content)
        elif not selected:
            logger.debug("%s alone exceeds the budget; keeping it anyway", path)
            selected.append((path, content))
            break
        else:
            logger.debug("Budget reached at %s (%d characters)", path, len(content))
            break
        if running >= budget.max_total_bytes:
            break
    return selected


def select_files(
    files: Iterable[Tuple[str, str]],
    budget: Budget,
    force_include_all: bool = False,
    activation_threshold: int = ACTIVATION_THRESHOLD,
    table: PriorityTable = PRIORITY_TABLE,
) -> FileList:
    """Return *files* as-is when small enough (or forced), else a reduced copy."""
    files = list(files)
    if force_include_all or total_size(files) <= activation_threshold:
        return files
    logger.info(
        "Project text is %d characters; fitting it into %d",
        total_size(files),
        budget.max_total_bytes,
    )
    return prioritize(files, budget, table)
