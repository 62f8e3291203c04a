"""Recursive copy."""

from __future__ import annotations

import errno
import os
import stat as stat_mod
from typing import Callable

from ..dispatch import Step
from ..errors import ErrorKind, FsError, self_copy
from ..infrastructure.config import CopyConfig
from ..infrastructure.logger import logger
from ..primitives import (
    chmod_fd,
    clone_fd,
    close_fd,
    create_directory,
    create_symlink,
    lstat_path,
    open_fd,
    read_at,
    read_symlink_target,
    real_path,
    remove_file,
    stat_path,
    write_at,
)
from ..types import CopyFlags, EntryKind, TreeEntry, WalkOrder
from ..walker import TreeWalker

EntryFilter = Callable[[TreeEntry], bool]

# ioctl(FICLONE) failures that mean "no clone here", not "copy failed"
_CLONE_UNSUPPORTED = frozenset(
    {errno.EOPNOTSUPP, errno.ENOTSUP, errno.EXDEV, errno.EINVAL, errno.ENOTTY, errno.ENOSYS}
)


def copy_step(
    source: str | os.PathLike[str],
    destination: str | os.PathLike[str],
    flags: CopyFlags | int = CopyFlags.NONE,
    filter: EntryFilter | None = None,
    config: CopyConfig | None = None,
) -> Step[int]:
    """Copy ``source`` to ``destination``.

    A directory source is mirrored entry by entry in pre-order; anything
    else is copied as a single entry. Returns the number of entries copied
    below the source root (1 for a single file). Stops at the first error
    without removing what was already copied.
    """
    src = os.path.abspath(os.fspath(source))
    dst = os.path.abspath(os.fspath(destination))
    flags = CopyFlags(flags)
    config = config or CopyConfig()
    follow = bool(flags & CopyFlags.DEREFERENCE)

    st = yield (stat_path(src) if follow else lstat_path(src))
    root = TreeEntry(
        path=src,
        relative="",
        kind=EntryKind.from_mode(st.st_mode),
        size=st.st_size,
        mode=st.st_mode,
        depth=0,
    )
    logger.debug("Copy started", source=src, destination=dst, flags=int(flags))

    if not root.is_dir:
        if filter is not None and not filter(root):
            return 0
        if root.kind is EntryKind.FILE:
            yield from _check_same_file(st, src, dst, bool(flags & CopyFlags.EXCL))
        copied = yield from _copy_entry(root, dst, flags, config)
        return 1 if copied else 0

    yield from _prepare_root(root, dst, flags)

    walker = TreeWalker(src, WalkOrder.PRE, include_root=False, root_entry=root)
    count = 0
    while True:
        entry = yield from walker.next_entry()
        if entry is None:
            break
        if filter is not None and not filter(entry):
            if entry.is_dir:
                walker.prune()
            continue
        if (yield from _copy_entry(entry, os.path.join(dst, entry.relative), flags, config)):
            count += 1

    logger.debug("Copy finished", source=src, destination=dst, count=count)
    return count


def _contains(parent: str, child: str) -> bool:
    return child == parent or child.startswith(parent.rstrip(os.sep) + os.sep)


def _stat_or_none(path: str) -> Step[os.stat_result | None]:
    try:
        return (yield stat_path(path))
    except FsError as err:
        if err.kind is not ErrorKind.NOT_FOUND:
            raise
        return None


def _check_same_file(src_st: os.stat_result, src: str, dst: str, excl: bool) -> Step[None]:
    dst_st = yield from _stat_or_none(dst)
    if dst_st is None:
        return
    if excl:
        raise FsError(ErrorKind.ALREADY_EXISTS, errno=errno.EEXIST, syscall="open", path=dst)
    if os.path.samestat(src_st, dst_st):
        raise self_copy(src, dst)


def _prepare_root(root: TreeEntry, dst: str, flags: CopyFlags) -> Step[None]:
    excl = bool(flags & CopyFlags.EXCL)
    dst_st = yield from _stat_or_none(dst)
    if dst_st is not None:
        if excl:
            raise FsError(ErrorKind.ALREADY_EXISTS, errno=errno.EEXIST, syscall="mkdir", path=dst)
        if not stat_mod.S_ISDIR(dst_st.st_mode):
            raise FsError(ErrorKind.NOT_A_DIRECTORY, errno=errno.ENOTDIR, syscall="mkdir", path=dst)

    real_src = yield real_path(root.path)
    real_dst = yield real_path(dst)
    if _contains(real_src, real_dst) or _contains(real_dst, real_src):
        raise self_copy(root.path, dst)

    if dst_st is None:
        yield from _make_dir(dst, _dir_mode(root.mode), excl)


def _dir_mode(mode: int) -> int:
    # The owner must be able to fill the copy even if the source is read-only.
    return stat_mod.S_IMODE(mode) | stat_mod.S_IRWXU


def _make_dir(path: str, mode: int, excl: bool) -> Step[None]:
    try:
        yield create_directory(path, mode)
        return
    except FsError as err:
        if err.kind is not ErrorKind.ALREADY_EXISTS or excl:
            raise
    st = yield stat_path(path)
    if not stat_mod.S_ISDIR(st.st_mode):
        raise FsError(ErrorKind.NOT_A_DIRECTORY, errno=errno.ENOTDIR, syscall="mkdir", path=path)


def _copy_entry(entry: TreeEntry, target: str, flags: CopyFlags, config: CopyConfig) -> Step[bool]:
    excl = bool(flags & CopyFlags.EXCL)

    if entry.kind is EntryKind.DIRECTORY:
        yield from _make_dir(target, _dir_mode(entry.mode), excl)
        return True

    if entry.kind is EntryKind.SYMLINK:
        if flags & CopyFlags.DEREFERENCE:
            linked = yield from _stat_or_none(entry.path)
            if linked is not None and stat_mod.S_ISREG(linked.st_mode):
                yield from _copy_file(entry.path, target, stat_mod.S_IMODE(linked.st_mode), flags, config)
                return True
        yield from _copy_symlink(entry.path, target, excl)
        return True

    if entry.kind is EntryKind.FILE:
        yield from _copy_file(entry.path, target, stat_mod.S_IMODE(entry.mode), flags, config)
        return True

    logger.debug("Skipping special file", path=entry.path)
    return False


def _copy_symlink(path: str, target: str, excl: bool) -> Step[None]:
    link = yield read_symlink_target(path)
    try:
        yield create_symlink(link, target)
        return
    except FsError as err:
        if err.kind is not ErrorKind.ALREADY_EXISTS or excl:
            raise
    st = yield lstat_path(target)
    if stat_mod.S_ISDIR(st.st_mode):
        raise FsError(ErrorKind.IS_A_DIRECTORY, errno=errno.EISDIR, syscall="symlink", path=target)
    yield remove_file(target)
    yield create_symlink(link, target)


def _copy_file(path: str, target: str, perm: int, flags: CopyFlags, config: CopyConfig) -> Step[None]:
    open_flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
    if flags & CopyFlags.EXCL:
        open_flags |= os.O_EXCL

    src_fd = yield open_fd(path, os.O_RDONLY, 0)
    try:
        dst_fd = yield open_fd(target, open_flags, perm)
        try:
            # an existing destination keeps its old bits through open
            yield chmod_fd(dst_fd, perm, target)
            yield from _transfer(src_fd, dst_fd, path, target, flags, config)
        finally:
            yield close_fd(dst_fd, target)
    finally:
        yield close_fd(src_fd, path)


def _transfer(src_fd: int, dst_fd: int, path: str, target: str, flags: CopyFlags, config: CopyConfig) -> Step[None]:
    force = bool(flags & CopyFlags.FICLONE_FORCE)
    if force or flags & CopyFlags.FICLONE or config.clone:
        try:
            yield clone_fd(src_fd, dst_fd, path, target)
            return
        except FsError as err:
            if force or err.errno not in _CLONE_UNSUPPORTED:
                raise
            logger.debug("Clone unsupported, copying contents", path=path, code=err.code)

    view = memoryview(bytearray(config.chunk_size))
    position = 0
    while True:
        read = yield read_at(src_fd, view, position, path)
        if read == 0:
            break
        written = 0
        while written < read:
            written += yield write_at(dst_fd, view[written:read], position + written, target)
        position += read
