"""Single-syscall primitives, expressed as ``Call`` requests.

Engines never touch ``os`` directly. They yield a ``Call`` describing one
primitive and receive its result back from whichever driver runs them
(see ``treefs.dispatch``). ``Call.invoke`` is the only place a platform
``OSError`` is translated into ``FsError``.
"""

from __future__ import annotations

import errno
import os
import sys
from dataclasses import dataclass
from typing import Any, Callable

from .errors import translate_os_error

if sys.platform.startswith("linux"):
    import fcntl

    # _IOW(0x94, 9, int); exposed as fcntl.FICLONE from Python 3.12
    FICLONE: int | None = getattr(fcntl, "FICLONE", 0x40049409)
else:
    FICLONE = None

OPEN_EXTRA_FLAGS: int = getattr(os, "O_CLOEXEC", 0) | getattr(os, "O_BINARY", 0)


@dataclass(frozen=True)
class Call:
    """One pending primitive call.

    ``path``/``dest`` are only used to attribute a failure. ``cleanup``
    marks calls that release resources; drivers always execute those, even
    once an operation has been cancelled.
    """

    syscall: str
    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    path: str | None = None
    dest: str | None = None
    cleanup: bool = False

    def invoke(self) -> Any:
        try:
            return self.fn(*self.args)
        except OSError as exc:
            raise translate_os_error(exc, self.syscall, self.path, self.dest) from exc


def _read_into(fd: int, view: memoryview, position: int | None) -> int:
    if position is None:
        return os.readv(fd, [view])
    data = os.pread(fd, len(view), position)
    view[: len(data)] = data
    return len(data)


def _write_from(fd: int, view: memoryview, position: int | None) -> int:
    if position is None:
        return os.write(fd, view)
    return os.pwrite(fd, view, position)


def _list_sorted(path: str) -> list[str]:
    return sorted(os.listdir(path))


def _clone(src_fd: int, dst_fd: int) -> None:
    if FICLONE is None:
        raise OSError(errno.EOPNOTSUPP, os.strerror(errno.EOPNOTSUPP))
    fcntl.ioctl(dst_fd, FICLONE, src_fd)


def open_fd(path: str, flags: int, mode: int) -> Call:
    return Call("open", os.open, (path, flags | OPEN_EXTRA_FLAGS, mode), path=path)


def close_fd(fd: int, path: str | None = None) -> Call:
    return Call("close", os.close, (fd,), path=path, cleanup=True)


def read_at(fd: int, view: memoryview, position: int | None, path: str | None = None) -> Call:
    return Call("read", _read_into, (fd, view, position), path=path)


def write_at(fd: int, view: memoryview, position: int | None, path: str | None = None) -> Call:
    return Call("write", _write_from, (fd, view, position), path=path)


def fstat_fd(fd: int, path: str | None = None) -> Call:
    return Call("fstat", os.fstat, (fd,), path=path)


def truncate_fd(fd: int, length: int, path: str | None = None) -> Call:
    return Call("ftruncate", os.ftruncate, (fd, length), path=path)


def chmod_fd(fd: int, mode: int, path: str | None = None) -> Call:
    return Call("fchmod", os.fchmod, (fd, mode), path=path)


def sync_fd(fd: int, path: str | None = None) -> Call:
    return Call("fsync", os.fsync, (fd,), path=path)


def clone_fd(src_fd: int, dst_fd: int, path: str | None = None, dest: str | None = None) -> Call:
    return Call("ioctl_ficlone", _clone, (src_fd, dst_fd), path=path, dest=dest)


def stat_path(path: str) -> Call:
    return Call("stat", os.stat, (path,), path=path)


def lstat_path(path: str) -> Call:
    return Call("lstat", os.lstat, (path,), path=path)


def list_directory(path: str) -> Call:
    return Call("scandir", _list_sorted, (path,), path=path)


def create_directory(path: str, mode: int) -> Call:
    return Call("mkdir", os.mkdir, (path, mode), path=path)


def remove_file(path: str) -> Call:
    return Call("unlink", os.unlink, (path,), path=path)


def remove_directory(path: str) -> Call:
    return Call("rmdir", os.rmdir, (path,), path=path)


def create_symlink(target: str, path: str) -> Call:
    return Call("symlink", os.symlink, (target, path), path=path)


def read_symlink_target(path: str) -> Call:
    return Call("readlink", os.readlink, (path,), path=path)


def rename_path(source: str, destination: str) -> Call:
    return Call("rename", os.rename, (source, destination), path=source, dest=destination)


def real_path(path: str) -> Call:
    return Call("realpath", os.path.realpath, (path,), path=path)
