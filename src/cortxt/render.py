"""
Text rendering for cortxt output.

Everything here is pure formatting: callers hand in already-selected
files, tree nodes or statistics and get a string back.
"""

from __future__ import annotations

import json
import posixpath
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

_LANG_MAP: Dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".jsx": "jsx",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".css": "css",
    ".scss": "scss",
    ".html": "html",
    ".md": "markdown",
    ".sh": "bash",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".vue": "vue",
}


def _lang_from_ext(path: str) -> str:
    return _LANG_MAP.get(posixpath.splitext(path)[1].lower(), "")


def format_bytes(size: float) -> str:
    if size < 1024:
        return f"{int(size)} B"
    for unit in ("KB", "MB", "GB"):
        size /= 1024
        if size < 1024 or unit == "GB":
            break
    return f"{size:.1f} {unit}"


# Context blob
def render_section(path: str, content: str, title: Optional[str] = None) -> str:
    lang = _lang_from_ext(path)
    fence = f"```{lang}" if lang else "```"
    return f"### {title or path}\n{fence}\n{content}\n```"


def render_context(files: Sequence[Tuple[str, str]]) -> str:
    """Render ``(path, content)`` pairs as headed code blocks, in order."""
    return "\n\n".join(render_section(path, content) for path, content in files)


def number_lines(content: str) -> str:
    return "\n".join(
        f"{idx:>3}: {line}" for idx, line in enumerate(content.split("\n"), start=1)
    )


def render_file(path: str, content: str, line_numbers: bool = False) -> str:
    if line_numbers:
        return render_section(path, number_lines(content), f"{path} (with line numbers)")
    return render_section(path, content)


# project-tree renderer
def render_tree(tree: Mapping[str, Optional[dict]], root_name: str) -> str:
    """
    Return an ASCII tree for nested *tree* nodes.

    Directories map to child dicts, files to ``None``. Directories are
    listed before files, each group alphabetically.
    """
    lines: List[str] = [f"{root_name}/"]

    def _walk(node: Mapping[str, Optional[dict]], prefix: str = "") -> None:
        items = sorted(node.items(), key=lambda kv: (kv[1] is None, kv[0]))  # dirs first
        for idx, (name, child) in enumerate(items):
            last = idx == len(items) - 1
            connector = "└── " if last else "├── "
            lines.append(f"{prefix}{connector}{name}{'/' if child is not None else ''}")
            if child:
                _walk(child, prefix + ("    " if last else "│   "))

    _walk(tree)
    return "\n".join(lines)


# Statistics
@dataclass
class ProjectStats:
    total_files: int = 0
    total_size: int = 0
    total_lines: int = 0
    extensions: List[Tuple[str, int]] = field(default_factory=list)
    largest: List[Tuple[str, int]] = field(default_factory=list)


def compute_stats(files: Sequence[Tuple[str, str]], top_ext: int = 8, top_files: int = 5) -> ProjectStats:
    exts = Counter(posixpath.splitext(path)[1] or "no extension" for path, _ in files)
    sizes = sorted(((path, len(content)) for path, content in files), key=lambda kv: kv[1], reverse=True)
    return ProjectStats(
        total_files=len(files),
        total_size=sum(len(content) for _, content in files),
        total_lines=sum(len(content.split("\n")) for _, content in files),
        extensions=exts.most_common(top_ext),
        largest=sizes[:top_files],
    )


def render_stats(stats: ProjectStats) -> str:
    lines = [
        "Project Statistics",
        "=" * 20,
        f"Total files:   {stats.total_files}",
        f"Total size:    {format_bytes(stats.total_size)}",
        f"Lines of code: {stats.total_lines:,}",
        "",
        "File types:",
    ]
    for ext, count in stats.extensions:
        pct = count / stats.total_files * 100 if stats.total_files else 0.0
        lines.append(f"  {ext:<12} {count:>3} files ({pct:.1f}%)")
    lines.append("")
    lines.append(f"Top {len(stats.largest)} largest files:")
    for path, size in stats.largest:
        lines.append(f"  {path:<30} {format_bytes(size)}")
    return "\n".join(lines)


def render_deps(deps: Mapping[str, Mapping[str, str]]) -> str:
    body = json.dumps(deps, indent=2)
    return f"### package.json dependencies\n```json\n{body}\n```"
