import json

import pytest

from cortxt import __version__
from cortxt.cli import EXIT_ERROR, EXIT_INVALID_ROOT, main
from cortxt.ignore import IGNORE_FILE_NAME


def test_context_is_default_command(make_project, capsys):
    root = make_project({"main.py": "print('hi')\n"})
    main(["--root", str(root)])
    captured = capsys.readouterr()

    assert "### main.py\n```python\nprint('hi')\n" in captured.out
    assert "Processed 1 files" in captured.err


def test_context_writes_out_file(make_project, tmp_path, capsys):
    root = make_project({"a.txt": "alpha"})
    out = tmp_path / "ctx.md"
    main(["context", "--root", str(root), "--out", str(out)])

    assert "### a.txt" in out.read_text(encoding="utf-8")
    assert capsys.readouterr().out == ""


def test_context_reports_reduction(make_project, capsys):
    big = ("z" * 79 + "\n") * 4000
    root = make_project({"a.txt": big, "b.txt": big})
    main(["--root", str(root), "--max-size", "4"])
    err = capsys.readouterr().err

    assert "priority files" in err
    assert "Original: 2 files" in err
    assert "--force" in err


def test_empty_project_message(make_project, capsys):
    root = make_project({"pic.png": "x"})
    main(["--root", str(root)])
    captured = capsys.readouterr()

    assert "No files found to process" in captured.err
    assert captured.out == ""


def test_missing_root_exits_with_distinct_code(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--root", str(tmp_path / "absent")])
    assert exc.value.code == EXIT_INVALID_ROOT
    assert "Directory not found" in capsys.readouterr().err


def test_bad_config_file_exits_with_error(make_project, tmp_path):
    root = make_project({"a.txt": "a"})
    with pytest.raises(SystemExit) as exc:
        main(["--root", str(root), "--config", str(tmp_path / "missing.txt")])
    assert exc.value.code == EXIT_ERROR


def test_file_command_with_line_numbers(make_project, capsys):
    root = make_project({"src/app.js": "const a = 1;\nconst b = 2;"})
    main(["file", "src/app.js", "--lines", "--root", str(root)])
    out = capsys.readouterr().out

    assert "### src/app.js (with line numbers)" in out
    assert "  2: const b = 2;" in out


def test_file_command_fails_when_nothing_read(make_project, capsys):
    root = make_project({"a.txt": "a"})
    with pytest.raises(SystemExit) as exc:
        main(["file", "nope.txt", "--root", str(root)])
    assert exc.value.code == EXIT_ERROR
    assert "nope.txt" in capsys.readouterr().err


def test_tree_command(make_project, capsys):
    root = make_project({"src/a.py": "", "node_modules/x/index.js": ""})
    main(["tree", "--root", str(root)])
    out = capsys.readouterr().out

    assert "src/" in out
    assert "node_modules" not in out


def test_stats_command(make_project, capsys):
    root = make_project({"a.py": "1\n2\n", "b.md": "# b"})
    main(["stats", "--root", str(root)])
    out = capsys.readouterr().out

    assert "Total files:   2" in out
    assert ".py" in out


def test_deps_command(make_project, capsys):
    root = make_project({"package.json": json.dumps({"dependencies": {"chalk": "^5"}})})
    main(["deps", "--prod-only", "--root", str(root)])
    out = capsys.readouterr().out

    assert '"chalk": "^5"' in out
    assert "devDependencies" not in out


def test_ignore_add_list_remove(make_project, capsys):
    root = make_project({})
    main(["ignore", "--add", "*.csv", "--root", str(root)])
    assert (root / IGNORE_FILE_NAME).is_file()

    main(["ignore", "--root", str(root)])
    out = capsys.readouterr().out
    assert "*.csv" in out
    assert " 1. node_modules" in out

    main(["ignore", "--remove", "*.csv", "--root", str(root)])
    main(["ignore", "--list", "--root", str(root)])
    assert "*.csv" not in capsys.readouterr().out


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out
