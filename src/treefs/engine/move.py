"""Rename with a cross-device fallback."""

from __future__ import annotations

import errno
import os

from ..dispatch import Step
from ..errors import FsError
from ..infrastructure.logger import logger
from ..primitives import rename_path
from .copy import copy_step
from .remove import remove_step


def move_step(source: str | os.PathLike[str], destination: str | os.PathLike[str]) -> Step[None]:
    """Rename ``source`` to ``destination``; across devices, copy then remove."""
    src = os.path.abspath(os.fspath(source))
    dst = os.path.abspath(os.fspath(destination))
    try:
        yield rename_path(src, dst)
        return
    except FsError as err:
        if err.errno != errno.EXDEV:
            raise
    logger.debug("Cross-device move, copying", source=src, destination=dst)
    yield from copy_step(src, dst)
    yield from remove_step(src)
