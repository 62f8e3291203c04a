"""Directory creation with missing ancestors."""

from __future__ import annotations

import errno
import os
import stat as stat_mod

from ..dispatch import Step
from ..errors import ErrorKind, FsError
from ..infrastructure.config import DEFAULT_DIR_MODE
from ..infrastructure.logger import logger
from ..primitives import create_directory, stat_path


def _ancestors(path: str) -> list[str]:
    """Return ``path`` and its ancestors, filesystem root first."""
    segments = [path]
    while True:
        parent = os.path.dirname(segments[-1])
        if parent == segments[-1]:
            break
        segments.append(parent)
    segments.reverse()
    return segments


def mkdirp_step(path: str | os.PathLike[str], mode: int = DEFAULT_DIR_MODE) -> Step[None]:
    """Create ``path`` as a directory, creating missing ancestors with ``mode``.

    Succeeds without changes when the directory already exists, including
    when another process creates any segment concurrently.
    """
    target = os.path.abspath(os.fspath(path))

    try:
        st = yield stat_path(target)
    except FsError as err:
        if err.kind not in (ErrorKind.NOT_FOUND, ErrorKind.NOT_A_DIRECTORY):
            raise
    else:
        if stat_mod.S_ISDIR(st.st_mode):
            return
        raise FsError(ErrorKind.ALREADY_EXISTS, errno=errno.EEXIST, syscall="mkdir", path=target)

    for segment in _ancestors(target):
        try:
            st = yield stat_path(segment)
        except FsError as err:
            if err.kind is not ErrorKind.NOT_FOUND:
                raise
            try:
                yield create_directory(segment, mode)
                continue
            except FsError as mkdir_err:
                if mkdir_err.kind is not ErrorKind.ALREADY_EXISTS:
                    raise
            logger.debug("Directory created concurrently", path=segment)
            st = yield stat_path(segment)

        if not stat_mod.S_ISDIR(st.st_mode):
            if segment == target:
                raise FsError(ErrorKind.ALREADY_EXISTS, errno=errno.EEXIST, syscall="mkdir", path=segment)
            raise FsError(ErrorKind.NOT_A_DIRECTORY, errno=errno.ENOTDIR, syscall="mkdir", path=segment)
