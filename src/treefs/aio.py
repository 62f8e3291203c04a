"""Asyncio API: every primitive call suspends the task instead of the thread.

Mirrors ``treefs.blocking`` name for name. Long operations accept a
``CancelToken``; cancelling the awaiting task works as well.
"""

from __future__ import annotations

import os
from concurrent.futures import Executor
from typing import AsyncIterator

from .dispatch import CancelToken, run_async
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
from .handle import AsyncHandle
from .infrastructure.config import DEFAULT_DIR_MODE, DEFAULT_FILE_MODE, CopyConfig
from .types import CopyFlags, Metadata, TreeEntry, WalkOrder
from .walker import TreeWalker

PathLike = str | os.PathLike[str]


async def open(
    path: PathLike,
    flags: str | int = "r",
    mode: int = DEFAULT_FILE_MODE,
    *,
    token: CancelToken | None = None,
    executor: Executor | None = None,
) -> AsyncHandle:
    return await AsyncHandle.open(path, flags, mode, token, executor)


async def copy(
    source: PathLike,
    destination: PathLike,
    flags: CopyFlags | int = CopyFlags.NONE,
    filter: EntryFilter | None = None,
    *,
    config: CopyConfig | None = None,
    token: CancelToken | None = None,
    executor: Executor | None = None,
) -> int:
    return await run_async(copy_step(source, destination, flags, filter, config), token, executor)


async def remove(path: PathLike, *, token: CancelToken | None = None, executor: Executor | None = None) -> int:
    return await run_async(remove_step(path), token, executor)


async def mkdirp(
    path: PathLike, mode: int = DEFAULT_DIR_MODE, *, token: CancelToken | None = None, executor: Executor | None = None
) -> None:
    await run_async(mkdirp_step(path, mode), token, executor)


async def move(
    source: PathLike, destination: PathLike, *, token: CancelToken | None = None, executor: Executor | None = None
) -> None:
    await run_async(move_step(source, destination), token, executor)


async def walk(
    root: PathLike,
    order: WalkOrder = WalkOrder.PRE,
    *,
    include_root: bool = True,
    ignore_missing: bool = False,
    executor: Executor | None = None,
) -> AsyncIterator[TreeEntry]:
    walker = TreeWalker(root, order, include_root=include_root, ignore_missing=ignore_missing)
    while True:
        entry = await run_async(walker.next_entry(), executor=executor)
        if entry is None:
            return
        yield entry


async def exists(path: PathLike, *, executor: Executor | None = None) -> bool:
    return await run_async(exists_step(path), executor=executor)


async def stat(path: PathLike, exact: bool = False, *, executor: Executor | None = None) -> Metadata:
    return await run_async(stat_step(path, exact), executor=executor)


async def lstat(path: PathLike, exact: bool = False, *, executor: Executor | None = None) -> Metadata:
    return await run_async(stat_step(path, exact, follow=False), executor=executor)


async def stat_try(
    path: PathLike, exact: bool = False, *, executor: Executor | None = None
) -> Metadata | None:
    return await run_async(stat_try_step(path, exact), executor=executor)


async def lstat_try(
    path: PathLike, exact: bool = False, *, executor: Executor | None = None
) -> Metadata | None:
    return await run_async(stat_try_step(path, exact, follow=False), executor=executor)


async def du(path: PathLike, *, executor: Executor | None = None) -> int:
    return await run_async(du_step(path), executor=executor)


async def read_file(path: PathLike, *, executor: Executor | None = None) -> bytes:
    return await run_async(read_file_step(path), executor=executor)


async def write_file(
    path: PathLike,
    data: bytes | str,
    flags: str | int = "w",
    mode: int = DEFAULT_FILE_MODE,
    *,
    executor: Executor | None = None,
) -> int:
    return await run_async(write_file_step(path, data, flags, mode), executor=executor)
