"""Lazy depth-first tree traversal over an explicit stack."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterator

from .dispatch import Step
from .errors import ErrorKind, FsError
from .infrastructure.logger import logger
from .primitives import list_directory, lstat_path, stat_path
from .types import EntryKind, TreeEntry, WalkOrder


@dataclass
class _Frame:
    entry: TreeEntry
    names: Iterator[str]


class TreeWalker:
    """Walks the tree below ``root`` one entry per ``next_entry()`` step.

    Pre-order yields a directory before its children, post-order after
    them. A directory is listed only when the walk first needs its
    children, so ``prune()`` right after a directory is returned skips its
    subtree without listing it. Symlinks are reported as entries and never
    followed. Children are visited in sorted name order.

    A walker is single-use: once ``next_entry()`` returns None it keeps
    returning None.
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        order: WalkOrder = WalkOrder.PRE,
        *,
        include_root: bool = True,
        ignore_missing: bool = False,
        dereference_root: bool = False,
        root_entry: TreeEntry | None = None,
    ) -> None:
        self.root = os.path.abspath(os.fspath(root))
        self.order = WalkOrder(order)
        self.include_root = include_root
        self.ignore_missing = ignore_missing
        self.dereference_root = dereference_root
        self._root_entry = root_entry
        self._started = False
        self._stack: list[_Frame] = []
        self._expand: TreeEntry | None = None
        self._last: TreeEntry | None = None

    def prune(self) -> None:
        """Do not descend into the directory returned by the last step."""
        if self.order is not WalkOrder.PRE:
            raise ValueError("prune() requires a pre-order walk")
        if self._expand is not None and self._expand is self._last:
            self._expand = None

    def next_entry(self) -> Step[TreeEntry | None]:
        if not self._started:
            self._started = True
            root = self._root_entry
            if root is None:
                root = yield from self._stat_entry(self.root, "", 0, follow=self.dereference_root)
            if root is None:
                return None
            if not root.is_dir:
                return self._emit(root) if self.include_root else None
            if self.order is WalkOrder.PRE:
                self._expand = root
                if self.include_root:
                    return self._emit(root)
            else:
                yield from self._push(root)

        while True:
            if self._expand is not None:
                directory, self._expand = self._expand, None
                yield from self._push(directory)

            if not self._stack:
                return None

            frame = self._stack[-1]
            name = next(frame.names, None)
            if name is None:
                self._stack.pop()
                if self.order is WalkOrder.POST and (frame.entry.depth > 0 or self.include_root):
                    return self._emit(frame.entry)
                continue

            parent = frame.entry
            entry = yield from self._stat_entry(
                os.path.join(parent.path, name),
                os.path.join(parent.relative, name) if parent.relative else name,
                parent.depth + 1,
            )
            if entry is None:
                continue
            if entry.is_dir:
                if self.order is WalkOrder.PRE:
                    self._expand = entry
                    return self._emit(entry)
                yield from self._push(entry)
                continue
            return self._emit(entry)

    def _emit(self, entry: TreeEntry) -> TreeEntry:
        self._last = entry
        return entry

    def _stat_entry(self, path: str, relative: str, depth: int, follow: bool = False) -> Step[TreeEntry | None]:
        try:
            st = yield (stat_path(path) if follow else lstat_path(path))
        except FsError as err:
            if self.ignore_missing and err.kind is ErrorKind.NOT_FOUND:
                logger.debug("Entry vanished during walk", path=path)
                return None
            raise
        return TreeEntry(
            path=path,
            relative=relative,
            kind=EntryKind.from_mode(st.st_mode),
            size=st.st_size,
            mode=st.st_mode,
            depth=depth,
        )

    def _push(self, directory: TreeEntry) -> Step[None]:
        try:
            names = yield list_directory(directory.path)
        except FsError as err:
            if self.ignore_missing and err.kind is ErrorKind.NOT_FOUND:
                logger.debug("Directory vanished during walk", path=directory.path)
                return
            raise
        self._stack.append(_Frame(directory, iter(names)))
