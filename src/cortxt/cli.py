"""
CLI entrypoint for cortxt.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, just_fix_windows_console

from . import __version__
from .budget import DEFAULT_MAX_SIZE_KB
from .core import (
    ContextOptions,
    build_context,
    dependencies_text,
    extract_files,
    project_stats,
    project_tree,
    write_output,
)
from .errors import CortxtError, InvalidRootError
from .ignore import (
    IGNORE_FILE_NAME,
    IgnoreConfig,
    add_pattern,
    list_patterns,
    remove_pattern,
    reset_patterns,
)
from .render import compute_stats, format_bytes, render_stats
from .scan import resolve_root

logger = logging.getLogger(__name__)

PREFIX = "[cortxt]"
COMMANDS = ("context", "file", "tree", "stats", "deps", "ignore")

EXIT_ERROR = 1
EXIT_INVALID_ROOT = 2


def _color_enabled() -> bool:
    return sys.stderr.isatty()


def _status(msg: str, color: str = "") -> None:
    if color and _color_enabled():
        msg = color + msg + Style.RESET_ALL
    print(msg, file=sys.stderr)


class _ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: Style.DIM,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        msg = f"{PREFIX} {super().format(record)}"
        color = self.COLORS.get(record.levelno, "")
        if color and _color_enabled():
            return color + msg + Style.RESET_ALL
        return msg


def _configure_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_ColorFormatter("%(message)s"))
    root_logger = logging.getLogger("cortxt")
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="cortxt",
        description="Share project context or file code with an AI assistant.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--root", type=Path, default=Path("."), help="Project root dir")
    common.add_argument(
        "--out",
        type=Path,
        help="Write output to this file instead of stdout",
    )
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    sub = p.add_subparsers(dest="command")

    ctx = sub.add_parser("context", parents=[common], help="Extract the full project (all files & code)")
    ctx.add_argument("--force", action="store_true", help="Include every file, skip size limits")
    ctx.add_argument(
        "--max-size",
        type=int,
        default=DEFAULT_MAX_SIZE_KB,
        help=f"Output size limit in KB for large projects (default {DEFAULT_MAX_SIZE_KB})",
    )
    ctx.add_argument("-s", "--stats", action="store_true", help="Show project statistics")
    ctx.add_argument("--gitignore", action="store_true", help="Also honour the project's .gitignore")
    ctx.add_argument(
        "--config",
        type=Path,
        help="Path to a file with extra ignore patterns (one per line)",
    )
    ctx.set_defaults(handler=_run_context)

    fp = sub.add_parser("file", parents=[common], help="Extract single files' code")
    fp.add_argument("paths", nargs="+", help="Files to extract, relative to --root")
    fp.add_argument("-l", "--lines", action="store_true", help="Include line numbers")
    fp.set_defaults(handler=_run_file)

    tp = sub.add_parser("tree", parents=[common], help="Show project folder structure")
    tp.add_argument("-d", "--depth", type=int, default=3, help="Maximum depth to show (default 3)")
    tp.set_defaults(handler=_run_tree)

    sp = sub.add_parser("stats", parents=[common], help="Show project statistics (files, lines, size)")
    sp.set_defaults(handler=_run_stats)

    dp = sub.add_parser("deps", parents=[common], help="Extract dependencies from package.json")
    only = dp.add_mutually_exclusive_group()
    only.add_argument("--prod-only", action="store_true", help="Only dependencies")
    only.add_argument("--dev-only", action="store_true", help="Only devDependencies")
    dp.set_defaults(handler=_run_deps)

    ip = sub.add_parser("ignore", parents=[common], help=f"Manage {IGNORE_FILE_NAME} patterns")
    action = ip.add_mutually_exclusive_group()
    action.add_argument("--add", metavar="PATTERN", help="Add an ignore pattern")
    action.add_argument("--remove", metavar="PATTERN", help="Remove an ignore pattern")
    action.add_argument("--reset", action="store_true", help="Reset to the default patterns")
    action.add_argument("--list", action="store_true", help="List current patterns (default)")
    ip.set_defaults(handler=_run_ignore)
    return p


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or (args[0] not in COMMANDS and args[0] not in ("-h", "--help", "--version")):
        args.insert(0, "context")
    return _build_parser().parse_args(args)


def _emit(text: str, out: Optional[Path]) -> None:
    if out is None:
        print(text)
        return
    written = write_output(text, out)
    _status(f"Wrote {written}", Fore.GREEN)


def _run_context(ns: argparse.Namespace) -> None:
    root = resolve_root(ns.root)
    config = IgnoreConfig.load(
        root,
        use_gitignore=ns.gitignore,
        extra_file=ns.config.resolve() if ns.config else None,
    )
    logger.debug("Scanning %s", root)

    options = ContextOptions(force_include_all=ns.force, max_size_kb=ns.max_size)
    result = build_context(root, options, config)

    if result.empty:
        _status("No files found to process", Fore.YELLOW)
        _status("Not in a project folder? Navigate to your code directory first")
        return

    if result.reduced:
        _status(
            f"Processed {result.final_count} priority files ({format_bytes(result.final_size)})",
            Fore.GREEN,
        )
        _status(f"Original: {result.original_count} files ({format_bytes(result.original_size)})")
    else:
        _status(
            f"Processed {result.final_count} files ({format_bytes(result.final_size)})",
            Fore.GREEN,
        )
    if result.scan.skipped:
        _status(f"Skipped {result.scan.skipped} ignored/binary/large files")
    if ns.stats:
        _status(render_stats(compute_stats(result.selected)))
    if ns.verbose:
        _status(f"~{round(result.final_size / 4)} tokens")

    _emit(result.text, ns.out)

    if result.reduced:
        _status("Smart filtering applied - use --force to include all files", Fore.CYAN)


def _run_file(ns: argparse.Namespace) -> None:
    root = resolve_root(ns.root)
    rendered, failed = extract_files(root, ns.paths, line_numbers=ns.lines)
    for path, msg in failed.items():
        _status(f"Error reading {path}: {msg}", Fore.RED)
    if not rendered:
        _status("No files were successfully processed", Fore.RED)
        sys.exit(EXIT_ERROR)

    _emit("\n\n".join(section for _, section in rendered), ns.out)
    _status(f"Successfully processed {len(rendered)} file(s)", Fore.GREEN)


def _run_tree(ns: argparse.Namespace) -> None:
    root = resolve_root(ns.root)
    _emit(project_tree(root, max_depth=ns.depth, config=IgnoreConfig.load(root)), ns.out)


def _run_stats(ns: argparse.Namespace) -> None:
    root = resolve_root(ns.root)
    _emit(render_stats(project_stats(root, IgnoreConfig.load(root))), ns.out)


def _run_deps(ns: argparse.Namespace) -> None:
    root = resolve_root(ns.root)
    _emit(dependencies_text(root, prod_only=ns.prod_only, dev_only=ns.dev_only), ns.out)


def _run_ignore(ns: argparse.Namespace) -> None:
    root = resolve_root(ns.root)
    if ns.add:
        if add_pattern(root, ns.add):
            _status(f'Added "{ns.add}" to {IGNORE_FILE_NAME}', Fore.GREEN)
        else:
            _status(f'Pattern "{ns.add}" already exists in ignore list', Fore.YELLOW)
        return
    if ns.remove:
        if remove_pattern(root, ns.remove):
            _status(f'Removed "{ns.remove}" from {IGNORE_FILE_NAME}', Fore.GREEN)
        else:
            _status(f'Pattern "{ns.remove}" not found in {IGNORE_FILE_NAME}', Fore.YELLOW)
        return
    if ns.reset:
        reset_patterns(root)
        _status("Reset ignore patterns to default", Fore.GREEN)

    patterns, custom = list_patterns(root)
    if not custom:
        _status(f"Using default ignore patterns (no {IGNORE_FILE_NAME} found)")
    _emit("\n".join(f"{idx:>2}. {pattern}" for idx, pattern in enumerate(patterns, start=1)), ns.out)


def main(argv: Optional[List[str]] = None) -> None:
    just_fix_windows_console()
    try:
        ns = _parse_args(argv)
        _configure_logging(ns.verbose)
        ns.handler(ns)
    except InvalidRootError as e:
        _status(f"Error: {e}", Fore.RED)
        sys.exit(EXIT_INVALID_ROOT)
    except CortxtError as e:
        _status(f"Error: {e}", Fore.RED)
        sys.exit(EXIT_ERROR)
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(EXIT_ERROR)


if __name__ == "__main__":
    main()
