"""
Ignore rules for cortxt.

Patterns come from the project's ``.cortxtignore`` file when it exists,
otherwise from :data:`DEFAULT_PATTERNS`. A short safety net of
directories and lockfiles is excluded on top of whichever set is active,
and a project's ``.gitignore`` can optionally be honoured as well.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import pathspec

from .errors import ConfigFileError

logger = logging.getLogger(__name__)

IGNORE_FILE_NAME = ".cortxtignore"

DEFAULT_PATTERNS: Tuple[str, ...] = (
    "node_modules",
    ".git",
    "dist",
    "build",
    ".cache",
    "coverage",
    ".nyc_output",
    "*.log",
    ".DS_Store",
    "Thumbs.db",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    ".env*",
    "*.tmp",
    "*.temp",
)

# Always excluded, whatever the rule file says
SAFETY_NET_DIRS = frozenset({"node_modules", ".git", "dist", "build"})
SAFETY_NET_FILES = frozenset({"package-lock.json", "yarn.lock"})

IGNORE_FILE_HEADER = (
    "# Cortxt ignore patterns\n"
    "# Files and directories listed here are skipped by cortxt commands.\n"
    "# One pattern per line; '*' and '?' are wildcards.\n"
    "# Lines starting with # are comments.\n"
    "\n"
)

_WILDCARDS = ("*", "?")

PathLike = Union[str, "os.PathLike[str]"]


@lru_cache(maxsize=512)
def _glob_regex(pattern: str) -> "re.Pattern[str]":
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.DOTALL)


@dataclass(frozen=True)
class IgnoreRule:
    """A single ignore pattern; globbed when it contains ``*`` or ``?``."""

    pattern: str

    @property
    def kind(self) -> str:
        return "glob" if any(ch in self.pattern for ch in _WILDCARDS) else "literal"

    def matches(self, name: str, rel_path: str, abs_path: str) -> bool:
        if self.kind == "glob":
            rx = _glob_regex(self.pattern)
            return any(rx.fullmatch(s) is not None for s in (name, rel_path, abs_path))
        return (
            name == self.pattern
            or self.pattern in rel_path
            or self.pattern in abs_path
        )


def _to_rules(patterns: Iterable[str]) -> Tuple[IgnoreRule, ...]:
    return tuple(IgnoreRule(p) for p in patterns)


def parse_patterns(lines: Iterable[str]) -> List[str]:
    """Strip *lines*, dropping blanks and ``#`` comments."""
    return [
        ln.strip()
        for ln in lines
        if ln.strip() and not ln.lstrip().startswith("#")
    ]


# Ignore-file utilities
def read_ignore_file(path: Path) -> List[str]:
    if not path.exists():
        raise ConfigFileError(f"Ignore file '{path}' does not exist")
    if not path.is_file():
        raise ConfigFileError(f"'{path}' is not a file")
    try:
        with path.open("r", encoding="utf-8") as fh:
            return parse_patterns(fh)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigFileError(f"Could not read ignore file '{path}': {e}")


def load_custom_patterns(root: Path) -> Optional[List[str]]:
    """
    Return the patterns of ``root/.cortxtignore``.

    ``None`` means the defaults apply: the file is missing, unreadable
    or holds no patterns at all.
    """
    path = root / IGNORE_FILE_NAME
    if not path.is_file():
        return None
    try:
        patterns = read_ignore_file(path)
    except ConfigFileError as e:
        logger.debug("Falling back to default ignore patterns: %s", e)
        return None
    return patterns or None


def load_gitignore(root: Path) -> "pathspec.PathSpec":
    gitignore_path = root / ".gitignore"
    if not gitignore_path.is_file():
        return pathspec.PathSpec.from_lines("gitwildmatch", [])
    try:
        with gitignore_path.open("r", encoding="utf-8") as fh:
            return pathspec.PathSpec.from_lines("gitwildmatch", fh)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read %s: %s", gitignore_path, e)
        return pathspec.PathSpec.from_lines("gitwildmatch", [])


@dataclass(frozen=True)
class IgnoreConfig:
    """
    The rule set a scan runs with.

    Built once per invocation and handed to the walker; ``custom`` tells
    whether the rules came from a ``.cortxtignore`` file.
    """

    rules: Tuple[IgnoreRule, ...]
    custom: bool = False
    gitignore: Optional["pathspec.PathSpec"] = None

    @classmethod
    def default(cls) -> "IgnoreConfig":
        return cls(rules=_to_rules(DEFAULT_PATTERNS))

    @classmethod
    def from_patterns(
        cls,
        patterns: Iterable[str],
        gitignore: Optional["pathspec.PathSpec"] = None,
    ) -> "IgnoreConfig":
        return cls(rules=_to_rules(patterns), custom=True, gitignore=gitignore)

    @classmethod
    def load(
        cls,
        root: Path,
        use_gitignore: bool = False,
        extra_file: Optional[Path] = None,
    ) -> "IgnoreConfig":
        """
        Build the config for *root*.

        *extra_file* patterns are appended to the active rules; unlike
        ``.cortxtignore`` a broken extra file is an error.
        """
        custom = load_custom_patterns(root)
        patterns = list(custom) if custom is not None else list(DEFAULT_PATTERNS)
        if extra_file is not None:
            patterns.extend(read_ignore_file(extra_file))
        gitignore = load_gitignore(root) if use_gitignore else None
        return cls(
            rules=_to_rules(patterns),
            custom=custom is not None,
            gitignore=gitignore,
        )

    @property
    def patterns(self) -> List[str]:
        return [r.pattern for r in self.rules]


def _in_safety_net(name: str, rel_path: str) -> bool:
    if name in SAFETY_NET_FILES:
        return True
    return any(part in SAFETY_NET_DIRS for part in rel_path.split("/"))


def should_ignore(
    full_path: PathLike,
    name: str,
    root: PathLike,
    config: IgnoreConfig,
    is_dir: bool = False,
) -> bool:
    """Return True when the entry at *full_path* must be left out."""
    abs_path = os.fspath(full_path).replace("\\", "/")
    rel_path = os.path.relpath(os.fspath(full_path), os.fspath(root)).replace("\\", "/")

    if _in_safety_net(name, rel_path):
        return True
    if any(rule.matches(name, rel_path, abs_path) for rule in config.rules):
        return True
    if config.gitignore is not None:
        candidate = rel_path + "/" if is_dir else rel_path
        if config.gitignore.match_file(candidate):
            return True
    return False


# Ignore-file editing
def write_ignore_file(path: Path, patterns: Iterable[str]) -> None:
    body = "\n".join(patterns)
    try:
        path.write_text(IGNORE_FILE_HEADER + body + "\n", encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(f"Could not write ignore file '{path}': {e}")


def list_patterns(root: Path) -> Tuple[List[str], bool]:
    """Return the active patterns and whether they come from ``.cortxtignore``."""
    custom = load_custom_patterns(root)
    if custom is None:
        return list(DEFAULT_PATTERNS), False
    return custom, True


def add_pattern(root: Path, pattern: str) -> bool:
    """
    Append *pattern* to ``.cortxtignore``; False if it is already listed.

    A missing file is created seeded with the default patterns so adding
    one rule does not silently drop the rest.
    """
    pattern = pattern.strip()
    if not pattern:
        raise ConfigFileError("Ignore pattern must not be empty")
    path = root / IGNORE_FILE_NAME
    patterns = read_ignore_file(path) if path.is_file() else list(DEFAULT_PATTERNS)
    if pattern in patterns:
        return False
    patterns.append(pattern)
    write_ignore_file(path, patterns)
    return True


def remove_pattern(root: Path, pattern: str) -> bool:
    """Drop *pattern* from ``.cortxtignore``; False if there was nothing to drop."""
    path = root / IGNORE_FILE_NAME
    if not path.is_file():
        return False
    patterns = read_ignore_file(path)
    kept = [p for p in patterns if p != pattern.strip()]
    if len(kept) == len(patterns):
        return False
    write_ignore_file(path, kept)
    return True


def reset_patterns(root: Path) -> List[str]:
    patterns = list(DEFAULT_PATTERNS)
    write_ignore_file(root / IGNORE_FILE_NAME, patterns)
    return patterns
