"""Shared fixtures for treefs tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import pytest


def _snapshot(root: Path) -> dict[str, object]:
    """Map each relative path below ``root`` to its content, link target or "<dir>"."""
    result: dict[str, object] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        for name in dirnames + filenames:
            path = base / name
            rel = str(path.relative_to(root))
            if path.is_symlink():
                result[rel] = f"-> {os.readlink(path)}"
            elif path.is_dir():
                result[rel] = "<dir>"
            else:
                result[rel] = path.read_bytes()
    return result


@pytest.fixture
def snapshot() -> Callable[[Path], dict[str, object]]:
    return _snapshot


@pytest.fixture
def src_tree(tmp_path: Path) -> Path:
    """Create src/{x.txt, sub/y.txt}."""
    src = tmp_path / "src"
    (src / "sub").mkdir(parents=True)
    (src / "x.txt").write_text("hello x\n")
    (src / "sub" / "y.txt").write_text("hello y\n")
    return src


@pytest.fixture
def lib_tree(tmp_path: Path) -> Path:
    """A wider tree with nested directories, an empty directory and a symlink."""
    lib = tmp_path / "lib"
    (lib / "pkg" / "inner").mkdir(parents=True)
    (lib / "empty").mkdir()
    (lib / "a.py").write_text("print('a')\n")
    (lib / "b.bin").write_bytes(bytes(range(256)) * 1024)
    (lib / "pkg" / "__init__.py").write_text("")
    (lib / "pkg" / "inner" / "deep.txt").write_text("deep\n")
    os.symlink("a.py", lib / "link-to-a")
    return lib
