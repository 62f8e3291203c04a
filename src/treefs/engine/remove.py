"""Recursive removal."""

from __future__ import annotations

import os

from ..dispatch import Step
from ..errors import ErrorKind, FsError
from ..infrastructure.logger import logger
from ..primitives import remove_directory, remove_file
from ..types import WalkOrder
from ..walker import TreeWalker


def remove_step(path: str | os.PathLike[str]) -> Step[int]:
    """Remove ``path`` and everything below it.

    Entries are deleted in post-order so a directory is only removed after
    its children. Anything already gone, the root included, counts as
    removed by someone else: it is skipped rather than reported. Returns
    the number of entries this call deleted.
    """
    root = os.path.abspath(os.fspath(path))
    walker = TreeWalker(root, WalkOrder.POST, ignore_missing=True)
    count = 0
    while True:
        entry = yield from walker.next_entry()
        if entry is None:
            break
        try:
            yield (remove_directory(entry.path) if entry.is_dir else remove_file(entry.path))
        except FsError as err:
            if err.kind is not ErrorKind.NOT_FOUND:
                raise
            logger.debug("Entry vanished before removal", path=entry.path)
            continue
        count += 1

    logger.debug("Remove finished", path=root, count=count)
    return count
