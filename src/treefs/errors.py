"""Error taxonomy shared by every treefs operation.

Platform errors are translated into ``FsError`` at the point of the
primitive call, so the exception that aborts a tree operation always names
the syscall and the exact path that failed.
"""

from __future__ import annotations

import errno as _errno
import os
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    PERMISSION_DENIED = "permission_denied"
    NOT_A_DIRECTORY = "not_a_directory"
    IS_A_DIRECTORY = "is_a_directory"
    NOT_EMPTY = "not_empty"
    INVALID_STATE = "invalid_state"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


_KIND_BY_ERRNO: dict[int, ErrorKind] = {
    _errno.ENOENT: ErrorKind.NOT_FOUND,
    _errno.EEXIST: ErrorKind.ALREADY_EXISTS,
    _errno.EACCES: ErrorKind.PERMISSION_DENIED,
    _errno.EPERM: ErrorKind.PERMISSION_DENIED,
    _errno.EROFS: ErrorKind.PERMISSION_DENIED,
    _errno.ENOTDIR: ErrorKind.NOT_A_DIRECTORY,
    _errno.EISDIR: ErrorKind.IS_A_DIRECTORY,
    _errno.ENOTEMPTY: ErrorKind.NOT_EMPTY,
}

_DESCRIPTIONS: dict[str, str] = {
    "EBADF": "file already closed",
    "ECANCELED": "operation cancelled",
}


class FsError(Exception):
    """A failed filesystem operation.

    ``kind`` is the taxonomy bucket, ``errno``/``code`` preserve the
    platform error for diagnostics, ``path`` is the entry that triggered
    the failure.
    """

    def __init__(
        self,
        kind: ErrorKind,
        *,
        errno: int | None = None,
        code: str | None = None,
        syscall: str | None = None,
        path: str | None = None,
        dest: str | None = None,
        message: str | None = None,
    ) -> None:
        self.kind = kind
        self.errno = errno
        self.code = code or (_errno.errorcode.get(errno, "UNKNOWN") if errno is not None else "UNKNOWN")
        self.syscall = syscall
        self.path = path
        self.dest = dest
        self.description = message or _DESCRIPTIONS.get(self.code) or (
            os.strerror(errno).lower() if errno is not None else kind.value.replace("_", " ")
        )
        super().__init__(self._format())

    def _format(self) -> str:
        text = f"{self.code}: {self.description}"
        if self.syscall:
            text += f", {self.syscall}"
            if self.path is not None:
                text += f" '{self.path}'"
            if self.dest is not None:
                text += f" -> '{self.dest}'"
        elif self.path is not None:
            text += f" '{self.path}'"
        return text


def kind_for_errno(err: int | None) -> ErrorKind:
    if err is None:
        return ErrorKind.UNKNOWN
    return _KIND_BY_ERRNO.get(err, ErrorKind.UNKNOWN)


def translate_os_error(exc: OSError, syscall: str, path: str | None = None, dest: str | None = None) -> FsError:
    """Map an OSError raised by ``syscall`` on ``path`` into the taxonomy."""
    if path is None and exc.filename is not None:
        path = os.fsdecode(exc.filename)
    return FsError(kind_for_errno(exc.errno), errno=exc.errno, syscall=syscall, path=path, dest=dest)


def invalid_state(syscall: str, path: str | None = None) -> FsError:
    """The error raised when an operation targets a closed Handle."""
    return FsError(ErrorKind.INVALID_STATE, errno=_errno.EBADF, syscall=syscall, path=path)


def cancelled(path: str | None = None) -> FsError:
    return FsError(ErrorKind.CANCELLED, errno=_errno.ECANCELED, path=path)


def self_copy(source: str, destination: str) -> FsError:
    """The error raised when a directory would be copied into itself."""
    return FsError(
        ErrorKind.PERMISSION_DENIED,
        errno=_errno.EPERM,
        syscall="copy",
        path=source,
        dest=destination,
        message="cannot copy a directory into itself",
    )
