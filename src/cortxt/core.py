"""
Core logic for cortxt.

Ties the scanner, the budgeter and the renderers together. The CLI only
talks to the functions in this module.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .budget import (
    ACTIVATION_THRESHOLD,
    DEFAULT_MAX_SIZE_KB,
    TRUNCATE_CAP,
    Budget,
    select_files,
    total_size,
)
from .errors import ConfigFileError, FileReadError, OutputError
from .ignore import IgnoreConfig
from .render import (
    ProjectStats,
    compute_stats,
    render_context,
    render_deps,
    render_file,
    render_tree,
)
from .scan import MAX_FILE_SIZE, ScanResult, build_tree, decode_text, resolve_root, scan_project

logger = logging.getLogger(__name__)


@dataclass
class ContextOptions:
    force_include_all: bool = False
    max_size_kb: int = DEFAULT_MAX_SIZE_KB
    activation_threshold: int = ACTIVATION_THRESHOLD
    truncate_cap: int = TRUNCATE_CAP
    max_file_size: int = MAX_FILE_SIZE

    @property
    def budget(self) -> Budget:
        return Budget.from_kb(self.max_size_kb, self.truncate_cap)


@dataclass
class ContextResult:
    """Outcome of one :func:`build_context` run."""

    root: Path
    scan: ScanResult
    selected: List[Tuple[str, str]] = field(default_factory=list)
    text: str = ""

    @property
    def empty(self) -> bool:
        return not self.scan.files

    @property
    def original_count(self) -> int:
        return len(self.scan.files)

    @property
    def original_size(self) -> int:
        return self.scan.total_size

    @property
    def final_count(self) -> int:
        return len(self.selected)

    @property
    def final_size(self) -> int:
        return total_size(self.selected)

    @property
    def reduced(self) -> bool:
        return self.final_count != self.original_count or self.final_size != self.original_size


def build_context(
    root: Union[str, Path],
    options: Optional[ContextOptions] = None,
    config: Optional[IgnoreConfig] = None,
) -> ContextResult:
    """Scan *root*, fit it into the budget and render the context blob."""
    options = options or ContextOptions()
    root = resolve_root(root)
    if config is None:
        config = IgnoreConfig.load(root)

    scan = scan_project(
        root,
        config,
        include_all=options.force_include_all,
        max_file_size=options.max_file_size,
    )
    if not scan.files:
        logger.info("No files to process under %s", root)
        return ContextResult(root=root, scan=scan)

    selected = select_files(
        scan.items(),
        options.budget,
        force_include_all=options.force_include_all,
        activation_threshold=options.activation_threshold,
    )
    return ContextResult(root=root, scan=scan, selected=selected, text=render_context(selected))


# Single files
def read_file(root: Union[str, Path], file_path: Union[str, Path]) -> str:
    """Read one file as text, relative to *root* unless absolute."""
    path = Path(root) / file_path
    if not path.exists():
        raise FileReadError(f"File '{file_path}' not found")
    if path.is_dir():
        raise FileReadError(f"'{file_path}' is a directory, not a file")
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise FileReadError(f"Could not read '{file_path}': {e}")
    text = decode_text(raw)
    if text is None:
        raise FileReadError(f"'{file_path}' is not a text file")
    return text


def extract_files(
    root: Union[str, Path],
    file_paths: List[str],
    line_numbers: bool = False,
) -> Tuple[List[Tuple[str, str]], Dict[str, str]]:
    """
    Render each of *file_paths*.

    Returns the ``(path, section)`` pairs that worked and a mapping of
    failed paths to their error message.
    """
    rendered: List[Tuple[str, str]] = []
    failed: Dict[str, str] = {}
    for rel in file_paths:
        try:
            content = read_file(root, rel)
        except FileReadError as e:
            logger.warning("%s", e)
            failed[rel] = str(e)
            continue
        rendered.append((rel, render_file(rel, content, line_numbers=line_numbers)))
    return rendered, failed


# Tree, stats, deps
def project_tree(
    root: Union[str, Path],
    max_depth: int = 3,
    config: Optional[IgnoreConfig] = None,
) -> str:
    root = resolve_root(root)
    return render_tree(build_tree(root, config, max_depth), root.name or str(root))


def project_stats(root: Union[str, Path], config: Optional[IgnoreConfig] = None) -> ProjectStats:
    return compute_stats(scan_project(root, config).items())


def load_dependencies(
    root: Union[str, Path],
    prod_only: bool = False,
    dev_only: bool = False,
) -> Dict[str, Dict[str, str]]:
    pkg_path = Path(root) / "package.json"
    if not pkg_path.is_file():
        raise ConfigFileError(f"No package.json found in '{root}'")
    try:
        pkg = json.loads(pkg_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigFileError(f"Could not read '{pkg_path}': {e}")
    if not isinstance(pkg, dict):
        raise ConfigFileError(f"'{pkg_path}' does not hold a JSON object")

    deps: Dict[str, Dict[str, str]] = {}
    if not dev_only:
        deps["dependencies"] = pkg.get("dependencies") or {}
    if not prod_only:
        deps["devDependencies"] = pkg.get("devDependencies") or {}
    return deps


def dependencies_text(root: Union[str, Path], prod_only: bool = False, dev_only: bool = False) -> str:
    return render_deps(load_dependencies(root, prod_only=prod_only, dev_only=dev_only))


# Output
def write_output(text: str, out_path: Path) -> Path:
    try:
        out_path = out_path.resolve()
    except (OSError, RuntimeError) as e:
        raise OutputError(f"Could not resolve output path '{out_path}': {e}")

    if not out_path.parent.exists():
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(f"Could not create directory '{out_path.parent}': {e}")

    try:
        with out_path.open("w", encoding="utf-8", newline="\n") as out_fh:
            out_fh.write(text)
            if not text.endswith("\n"):
                out_fh.write("\n")
    except OSError as e:
        raise OutputError(f"Could not write to output file '{out_path}': {e}")
    return out_path
