"""Existence checks, stat and disk usage."""

from __future__ import annotations

import os

from ..dispatch import Step
from ..errors import ErrorKind, FsError
from ..primitives import lstat_path, stat_path
from ..types import Metadata, WalkOrder
from ..walker import TreeWalker

_ABSENT = (ErrorKind.NOT_FOUND, ErrorKind.NOT_A_DIRECTORY)


def stat_step(path: str | os.PathLike[str], exact: bool = False, follow: bool = True) -> Step[Metadata]:
    target = os.fspath(path)
    st = yield (stat_path(target) if follow else lstat_path(target))
    return Metadata.from_stat_result(st, exact)


def stat_try_step(path: str | os.PathLike[str], exact: bool = False, follow: bool = True) -> Step[Metadata | None]:
    """Like ``stat_step`` but returns None when nothing is at ``path``."""
    try:
        return (yield from stat_step(path, exact, follow))
    except FsError as err:
        if err.kind not in _ABSENT:
            raise
        return None


def exists_step(path: str | os.PathLike[str]) -> Step[bool]:
    return (yield from stat_try_step(path)) is not None


def du_step(path: str | os.PathLike[str]) -> Step[int]:
    """Sum the sizes of every non-directory entry below ``path``.

    Symlinks count with their own size and are not followed. A missing
    path has a usage of 0.
    """
    walker = TreeWalker(path, WalkOrder.PRE, ignore_missing=True)
    total = 0
    while True:
        entry = yield from walker.next_entry()
        if entry is None:
            return total
        if not entry.is_dir:
            total += entry.size
