"""Blocking API: every call holds the calling thread until it completes."""

from __future__ import annotations

import os
from typing import Iterator

from .dispatch import CancelToken, run_sync
from .engine import (
    copy_step,
    du_step,
    exists_step,
    mkdirp_step,
    move_step,
    read_file_step,
    remove_step,
    stat_step,
    stat_try_step,
    write_file_step,
)
from .engine.copy import EntryFilter
from .handle import Handle
from .infrastructure.config import DEFAULT_DIR_MODE, DEFAULT_FILE_MODE, CopyConfig
from .types import CopyFlags, Metadata, TreeEntry, WalkOrder
from .walker import TreeWalker

PathLike = str | os.PathLike[str]


def open(
    path: PathLike, flags: str | int = "r", mode: int = DEFAULT_FILE_MODE, *, token: CancelToken | None = None
) -> Handle:
    return Handle.open(path, flags, mode, token)


def copy(
    source: PathLike,
    destination: PathLike,
    flags: CopyFlags | int = CopyFlags.NONE,
    filter: EntryFilter | None = None,
    *,
    config: CopyConfig | None = None,
    token: CancelToken | None = None,
) -> int:
    """Recursively copy ``source`` to ``destination``; returns the entry count."""
    return run_sync(copy_step(source, destination, flags, filter, config), token)


def remove(path: PathLike, *, token: CancelToken | None = None) -> int:
    """Recursively remove ``path``; returns how many entries were deleted (0 if absent)."""
    return run_sync(remove_step(path), token)


def mkdirp(path: PathLike, mode: int = DEFAULT_DIR_MODE, *, token: CancelToken | None = None) -> None:
    run_sync(mkdirp_step(path, mode), token)


def move(source: PathLike, destination: PathLike, *, token: CancelToken | None = None) -> None:
    run_sync(move_step(source, destination), token)


def walk(
    root: PathLike,
    order: WalkOrder = WalkOrder.PRE,
    *,
    include_root: bool = True,
    ignore_missing: bool = False,
) -> Iterator[TreeEntry]:
    """Lazily yield the entries below ``root``; one listing or stat per step."""
    walker = TreeWalker(root, order, include_root=include_root, ignore_missing=ignore_missing)
    while True:
        entry = run_sync(walker.next_entry())
        if entry is None:
            return
        yield entry


def exists(path: PathLike) -> bool:
    return run_sync(exists_step(path))


def stat(path: PathLike, exact: bool = False) -> Metadata:
    return run_sync(stat_step(path, exact))


def lstat(path: PathLike, exact: bool = False) -> Metadata:
    return run_sync(stat_step(path, exact, follow=False))


def stat_try(path: PathLike, exact: bool = False) -> Metadata | None:
    return run_sync(stat_try_step(path, exact))


def lstat_try(path: PathLike, exact: bool = False) -> Metadata | None:
    return run_sync(stat_try_step(path, exact, follow=False))


def du(path: PathLike) -> int:
    return run_sync(du_step(path))


def read_file(path: PathLike) -> bytes:
    return run_sync(read_file_step(path))


def write_file(path: PathLike, data: bytes | str, flags: str | int = "w", mode: int = DEFAULT_FILE_MODE) -> int:
    return run_sync(write_file_step(path, data, flags, mode))
