import logging
from pathlib import Path
from typing import Dict, Union

import pytest


def write_tree(root: Path, files: Dict[str, Union[str, bytes]]) -> Path:
    """Create *files* (relative path -> content) under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_project(tmp_path):
    def _make(files: Dict[str, Union[str, bytes]]) -> Path:
        project = tmp_path / "project"
        project.mkdir(exist_ok=True)
        return write_tree(project, files)

    return _make


@pytest.fixture(autouse=True)
def _reset_cortxt_logger():
    yield
    logger = logging.getLogger("cortxt")
    logger.handlers[:] = []
    logger.setLevel(logging.NOTSET)
