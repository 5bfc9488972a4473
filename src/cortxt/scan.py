"""
Project scanning for cortxt.

:func:`scan_project` walks a directory depth-first and records an
:class:`EntryOutcome` for every entry it looks at, keeping the decoded
text of the files that make it through the ignore, size and binary checks.
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .errors import InvalidRootError
from .ignore import IgnoreConfig, should_ignore

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 1024 * 1024

BINARY_EXTENSIONS = frozenset({
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".svg", ".ico", ".webp",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".zip", ".tar", ".gz", ".rar", ".7z",
    ".exe", ".dll", ".so", ".dylib",
    ".mp3", ".mp4", ".avi", ".mov", ".wmv", ".flv",
    ".ttf", ".otf", ".woff", ".woff2",
    ".class", ".jar", ".war",
    ".o", ".obj", ".lib", ".a",
    ".node", ".pyc", ".pyo",
})


class EntryOutcome(enum.Enum):
    INCLUDED = "included"
    SKIPPED_BINARY = "binary"
    SKIPPED_OVERSIZED = "oversized"
    SKIPPED_UNREADABLE = "unreadable"
    SKIPPED_IGNORED = "ignored"

    @property
    def skipped(self) -> bool:
        return self is not EntryOutcome.INCLUDED


@dataclass
class FileRecord:
    rel_path: str
    abs_path: Path
    size: int
    outcome: EntryOutcome
    content: Optional[str] = None

    @property
    def binary(self) -> bool:
        return self.outcome is EntryOutcome.SKIPPED_BINARY


@dataclass
class ScanResult:
    """Text of every included file keyed by relative path, in walk order."""

    files: Dict[str, str] = field(default_factory=dict)
    skipped: int = 0
    outcomes: Dict[str, EntryOutcome] = field(default_factory=dict)

    def record(self, rel_path: str, outcome: EntryOutcome, content: Optional[str] = None) -> None:
        self.outcomes[rel_path] = outcome
        if outcome is EntryOutcome.INCLUDED:
            self.files[rel_path] = content if content is not None else ""
        else:
            self.skipped += 1

    def count(self, outcome: EntryOutcome) -> int:
        return sum(1 for o in self.outcomes.values() if o is outcome)

    def items(self) -> List[Tuple[str, str]]:
        return list(self.files.items())

    @property
    def total_size(self) -> int:
        return sum(len(text) for text in self.files.values())


# Binary detection
def is_binary_extension(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in BINARY_EXTENSIONS


def _is_binary(data: bytes) -> bool:
    return b"\0" in data


def decode_text(data: bytes) -> Optional[str]:
    """Return *data* as text, or ``None`` when it should count as binary."""
    if _is_binary(data):
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def classify_file(
    path: Path,
    rel_path: str,
    include_all: bool = False,
    max_file_size: int = MAX_FILE_SIZE,
) -> FileRecord:
    """Apply the size, binary and readability checks to one regular file."""
    try:
        size = path.stat().st_size
    except OSError as e:
        logger.warning("Skipping %s: %s", rel_path, e)
        return FileRecord(rel_path, path, 0, EntryOutcome.SKIPPED_UNREADABLE)

    if size > max_file_size and not include_all:
        logger.debug("Skipping oversized %s (%d bytes)", rel_path, size)
        return FileRecord(rel_path, path, size, EntryOutcome.SKIPPED_OVERSIZED)

    if is_binary_extension(path.name):
        logger.debug("Skipping binary %s", rel_path)
        return FileRecord(rel_path, path, size, EntryOutcome.SKIPPED_BINARY)

    try:
        raw = path.read_bytes()
    except OSError as e:
        logger.warning("Skipping %s: %s", rel_path, e)
        return FileRecord(rel_path, path, size, EntryOutcome.SKIPPED_UNREADABLE)

    text = decode_text(raw)
    if text is None:
        logger.debug("Skipping undecodable %s", rel_path)
        return FileRecord(rel_path, path, size, EntryOutcome.SKIPPED_BINARY)
    return FileRecord(rel_path, path, size, EntryOutcome.INCLUDED, text)


# Walker
def resolve_root(root: Union[str, Path]) -> Path:
    try:
        resolved = Path(root).resolve()
    except (OSError, RuntimeError) as e:
        raise InvalidRootError(f"Could not resolve root path '{root}': {e}")
    if not resolved.exists():
        raise InvalidRootError(f"Directory not found: {resolved}")
    if not resolved.is_dir():
        raise InvalidRootError(f"Root path '{resolved}' is not a directory")
    return resolved


def scan_project(
    root: Union[str, Path],
    config: Optional[IgnoreConfig] = None,
    include_all: bool = False,
    max_file_size: int = MAX_FILE_SIZE,
) -> ScanResult:
    """
    Walk *root* and collect every eligible text file.

    Per-entry failures are recorded as skips; only a missing or unlistable
    root raises :class:`InvalidRootError`.
    """
    root = resolve_root(root)
    if config is None:
        config = IgnoreConfig.load(root)
    result = ScanResult()
    _walk(root, root, config, include_all, max_file_size, result)
    return result


def _walk(
    directory: Path,
    root: Path,
    config: IgnoreConfig,
    include_all: bool,
    max_file_size: int,
    result: ScanResult,
) -> None:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        if directory == root:
            raise InvalidRootError(f"Could not scan directory '{root}': {e}")
        rel_dir = directory.relative_to(root).as_posix()
        logger.warning("Cannot read directory %s: %s", rel_dir, e)
        result.record(rel_dir, EntryOutcome.SKIPPED_UNREADABLE)
        return

    for entry in entries:
        full_path = Path(entry.path)
        rel_path = full_path.relative_to(root).as_posix()

        try:
            if entry.is_dir(follow_symlinks=False):
                kind = "dir"
            elif entry.is_file():
                kind = "file"
            elif entry.is_symlink():
                kind = "link"
            else:
                kind = "other"
        except OSError as e:
            logger.warning("Skipping %s: %s", rel_path, e)
            result.record(rel_path, EntryOutcome.SKIPPED_UNREADABLE)
            continue

        if should_ignore(full_path, entry.name, root, config, is_dir=kind == "dir"):
            result.record(rel_path, EntryOutcome.SKIPPED_IGNORED)
            continue

        if kind == "dir":
            _walk(full_path, root, config, include_all, max_file_size, result)
        elif kind == "file":
            rec = classify_file(full_path, rel_path, include_all, max_file_size)
            result.record(rec.rel_path, rec.outcome, rec.content)
        elif kind == "link" and not full_path.exists():
            logger.warning("Skipping %s: dangling symlink", rel_path)
            result.record(rel_path, EntryOutcome.SKIPPED_UNREADABLE)
        else:
            # symlinked directories and special files
            logger.debug("Not following %s", rel_path)
            result.record(rel_path, EntryOutcome.SKIPPED_IGNORED)


# Tree view
def build_tree(
    root: Union[str, Path],
    config: Optional[IgnoreConfig] = None,
    max_depth: int = 3,
) -> Dict[str, Optional[dict]]:
    """
    Nested dict of the non-ignored entries under *root*, *max_depth* levels deep.

    Directories map to their children (empty once the depth limit is
    reached), files map to ``None``.
    """
    root = resolve_root(root)
    if config is None:
        config = IgnoreConfig.load(root)
    return _tree(root, root, config, max_depth, 0)


def _tree(
    directory: Path,
    root: Path,
    config: IgnoreConfig,
    max_depth: int,
    depth: int,
) -> Dict[str, Optional[dict]]:
    node: Dict[str, Optional[dict]] = {}
    if depth >= max_depth:
        return node
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.warning("Cannot read directory %s: %s", directory, e)
        return node

    for entry in entries:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if should_ignore(Path(entry.path), entry.name, root, config, is_dir=is_dir):
            continue
        node[entry.name] = _tree(Path(entry.path), root, config, max_depth, depth + 1) if is_dir else None
    return node
