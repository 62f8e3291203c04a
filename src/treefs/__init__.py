"""Dual-mode filesystem layer with recursive copy, remove and mkdir-parents.

The names exported here are the blocking API; ``treefs.aio`` provides the
same operations as coroutines.
"""

from __future__ import annotations

from . import aio
from .batch import aexecute_plan, execute_plan, load_plan
from .blocking import (
    copy,
    du,
    exists,
    lstat,
    lstat_try,
    mkdirp,
    move,
    open,
    read_file,
    remove,
    stat,
    stat_try,
    walk,
    write_file,
)
from .dispatch import CancelToken
from .errors import ErrorKind, FsError
from .handle import AsyncHandle, Handle, parse_flags
from .infrastructure.config import CopyConfig
from .types import (
    CopyFlags,
    EntryKind,
    HandleState,
    Metadata,
    OperationResult,
    TreeEntry,
    TreeOperation,
    WalkOrder,
)
from .walker import TreeWalker

EXCL = CopyFlags.EXCL
FICLONE = CopyFlags.FICLONE
FICLONE_FORCE = CopyFlags.FICLONE_FORCE
DEREFERENCE = CopyFlags.DEREFERENCE

__all__ = [
    # blocking api
    "copy",
    "du",
    "exists",
    "lstat",
    "lstat_try",
    "mkdirp",
    "move",
    "open",
    "read_file",
    "remove",
    "stat",
    "stat_try",
    "walk",
    "write_file",
    # asyncio api
    "aio",
    # batch
    "aexecute_plan",
    "execute_plan",
    "load_plan",
    # handles
    "AsyncHandle",
    "Handle",
    "parse_flags",
    # errors
    "ErrorKind",
    "FsError",
    # dispatch
    "CancelToken",
    # config
    "CopyConfig",
    # types
    "CopyFlags",
    "EntryKind",
    "HandleState",
    "Metadata",
    "OperationResult",
    "TreeEntry",
    "TreeOperation",
    "TreeWalker",
    "WalkOrder",
    # flag shortcuts
    "DEREFERENCE",
    "EXCL",
    "FICLONE",
    "FICLONE_FORCE",
]
