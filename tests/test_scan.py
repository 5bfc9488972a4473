import logging
import os
from pathlib import Path

import pytest

from cortxt.errors import InvalidRootError
from cortxt.ignore import IgnoreConfig
from cortxt.scan import (
    EntryOutcome,
    build_tree,
    classify_file,
    decode_text,
    is_binary_extension,
    scan_project,
)


def test_scan_collects_text_files_depth_first(make_project):
    root = make_project({
        "b.txt": "bee",
        "a/inner.py": "print('hi')\n",
        "a/z.md": "# z",
        "c.js": "let c = 1;",
    })
    result = scan_project(root, IgnoreConfig.default())

    assert list(result.files) == ["a/inner.py", "a/z.md", "b.txt", "c.js"]
    assert result.files["a/inner.py"] == "print('hi')\n"
    assert result.skipped == 0
    assert result.total_size == len("bee") + len("print('hi')\n") + len("# z") + len("let c = 1;")


def test_ignored_entries_count_as_skipped(make_project):
    root = make_project({
        "node_modules/react/index.js": "module.exports = {};",
        "app.log": "boot\n",
        "src/main.py": "x = 1\n",
    })
    result = scan_project(root, IgnoreConfig.default())

    assert list(result.files) == ["src/main.py"]
    assert result.outcomes["node_modules"] is EntryOutcome.SKIPPED_IGNORED
    assert result.outcomes["app.log"] is EntryOutcome.SKIPPED_IGNORED
    # the ignored directory is not descended into
    assert "node_modules/react/index.js" not in result.outcomes
    assert result.skipped == 2


def test_binary_extension_is_skipped(make_project):
    root = make_project({"logo.png": "not really an image", "ok.txt": "fine"})
    result = scan_project(root, IgnoreConfig.default())

    assert result.outcomes["logo.png"] is EntryOutcome.SKIPPED_BINARY
    assert list(result.files) == ["ok.txt"]
    assert result.skipped == 1


def test_undecodable_and_nul_content_is_binary(make_project):
    root = make_project({
        "latin1.txt": "caf\xe9".encode("latin-1"),
        "blob.dat": b"abc\x00def",
        "utf8.txt": "café".encode("utf-8"),
    })
    result = scan_project(root, IgnoreConfig.default())

    assert result.outcomes["latin1.txt"] is EntryOutcome.SKIPPED_BINARY
    assert result.outcomes["blob.dat"] is EntryOutcome.SKIPPED_BINARY
    assert result.files == {"utf8.txt": "café"}
    assert result.count(EntryOutcome.SKIPPED_BINARY) == 2
    assert result.count(EntryOutcome.INCLUDED) == 1
    assert result.skipped == 2


def test_oversized_file_skipped_unless_forced(make_project):
    root = make_project({"big.txt": "x" * 64, "small.txt": "ok"})

    limited = scan_project(root, IgnoreConfig.default(), max_file_size=32)
    assert limited.outcomes["big.txt"] is EntryOutcome.SKIPPED_OVERSIZED
    assert limited.skipped == 1

    forced = scan_project(root, IgnoreConfig.default(), include_all=True, max_file_size=32)
    assert forced.files["big.txt"] == "x" * 64
    assert forced.skipped == 0


def test_unreadable_file_is_skipped_with_warning(make_project, monkeypatch, caplog):
    root = make_project({"locked.txt": "secret", "open.txt": "hello"})
    real_read_bytes = Path.read_bytes

    def fake_read_bytes(self):
        if self.name == "locked.txt":
            raise PermissionError("Permission denied")
        return real_read_bytes(self)

    monkeypatch.setattr(Path, "read_bytes", fake_read_bytes)
    with caplog.at_level(logging.WARNING, logger="cortxt"):
        result = scan_project(root, IgnoreConfig.default())

    assert result.outcomes["locked.txt"] is EntryOutcome.SKIPPED_UNREADABLE
    assert result.files == {"open.txt": "hello"}
    assert result.skipped == 1
    assert any("locked.txt" in rec.getMessage() for rec in caplog.records)


def test_unlistable_subdirectory_is_skipped(make_project, monkeypatch, caplog):
    root = make_project({"locked/a.txt": "hidden", "open/b.txt": "visible"})
    real_scandir = os.scandir

    def fake_scandir(path="."):
        if os.fspath(path).endswith("locked"):
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", fake_scandir)
    with caplog.at_level(logging.WARNING, logger="cortxt"):
        result = scan_project(root, IgnoreConfig.default())

    assert result.outcomes["locked"] is EntryOutcome.SKIPPED_UNREADABLE
    assert result.files == {"open/b.txt": "visible"}
    assert result.skipped == 1
    assert result.count(EntryOutcome.SKIPPED_UNREADABLE) == 1
    assert any(
        rec.levelno == logging.WARNING and "locked" in rec.getMessage()
        for rec in caplog.records
    )


def test_file_vanishing_before_stat(make_project, monkeypatch, caplog):
    root = make_project({"gone.txt": "soon deleted", "kept.txt": "stays"})
    real_stat = Path.stat

    def fake_stat(self, *args, **kwargs):
        if self.name == "gone.txt":
            raise FileNotFoundError(2, "No such file or directory", str(self))
        return real_stat(self, *args, **kwargs)

    monkeypatch.setattr(Path, "stat", fake_stat)
    with caplog.at_level(logging.WARNING, logger="cortxt"):
        result = scan_project(root, IgnoreConfig.default())

    assert result.outcomes["gone.txt"] is EntryOutcome.SKIPPED_UNREADABLE
    assert result.files == {"kept.txt": "stays"}
    assert result.skipped == 1
    assert any(
        rec.levelno == logging.WARNING and "gone.txt" in rec.getMessage()
        for rec in caplog.records
    )


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="FIFOs unsupported")
def test_fifo_is_recorded_as_ignored(make_project):
    root = make_project({"real.txt": "here"})
    try:
        os.mkfifo(root / "pipe")
    except OSError:
        pytest.skip("cannot create FIFOs here")

    result = scan_project(root, IgnoreConfig.default())
    assert result.outcomes["pipe"] is EntryOutcome.SKIPPED_IGNORED
    assert result.files == {"real.txt": "here"}
    assert result.skipped == 1


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_dangling_symlink_is_unreadable(make_project):
    root = make_project({"real.txt": "here"})
    try:
        os.symlink(root / "gone.txt", root / "link.txt")
    except OSError:
        pytest.skip("cannot create symlinks here")

    result = scan_project(root, IgnoreConfig.default())
    assert result.outcomes["link.txt"] is EntryOutcome.SKIPPED_UNREADABLE
    assert result.files == {"real.txt": "here"}


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlinked_directory_not_followed(make_project):
    root = make_project({"src/a.py": "a = 1\n"})
    try:
        os.symlink(root / "src", root / "loop", target_is_directory=True)
    except OSError:
        pytest.skip("cannot create symlinks here")

    result = scan_project(root, IgnoreConfig.default())
    assert list(result.files) == ["src/a.py"]
    assert result.outcomes["loop"] is EntryOutcome.SKIPPED_IGNORED
    assert "loop/a.py" not in result.outcomes
    assert result.skipped == 1


def test_scan_is_idempotent(make_project):
    root = make_project({
        "README.md": "# hi\n",
        "pkg/mod.py": "def f():\n    pass\n",
        "pkg/data.bin.png": "x",
        "yarn.lock": "lock",
    })
    first = scan_project(root, IgnoreConfig.default())
    second = scan_project(root, IgnoreConfig.default())

    assert first.files == second.files
    assert list(first.files) == list(second.files)
    assert first.skipped == second.skipped == 2


def test_custom_ignore_file_is_used_by_default(make_project):
    root = make_project({".cortxtignore": "*.md\n", "README.md": "# r", "app.log": "log"})
    result = scan_project(root)

    assert result.outcomes["README.md"] is EntryOutcome.SKIPPED_IGNORED
    # *.log came from the defaults, which the custom file replaced
    assert result.files["app.log"] == "log"


def test_missing_root_is_fatal(tmp_path):
    with pytest.raises(InvalidRootError):
        scan_project(tmp_path / "does-not-exist")


def test_file_root_is_fatal(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")
    with pytest.raises(InvalidRootError):
        scan_project(target)


def test_classify_file_outcomes(tmp_path):
    text = tmp_path / "a.py"
    text.write_text("a = 1\n", encoding="utf-8")
    image = tmp_path / "b.JPG"
    image.write_bytes(b"\xff\xd8\xff")

    rec = classify_file(text, "a.py")
    assert rec.outcome is EntryOutcome.INCLUDED
    assert rec.content == "a = 1\n"
    assert rec.size == 6
    assert not rec.binary

    rec = classify_file(image, "b.JPG")
    assert rec.binary
    assert rec.content is None


def test_binary_helpers():
    assert is_binary_extension("font.WOFF2")
    assert not is_binary_extension("main.rs")
    assert decode_text(b"plain") == "plain"
    assert decode_text(b"\x00") is None
    assert decode_text(b"\xc3\x28") is None


def test_tree_respects_depth_and_ignores(make_project):
    root = make_project({
        "src/pkg/deep/x.py": "",
        "src/main.py": "",
        "node_modules/dep/index.js": "",
        "README.md": "",
    })
    tree = build_tree(root, IgnoreConfig.default(), max_depth=2)

    assert tree == {
        "README.md": None,
        "src": {"main.py": None, "pkg": {}},
    }
