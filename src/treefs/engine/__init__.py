"""Tree operations written once as steps and run by either driver."""

from __future__ import annotations

from .copy import copy_step
from .files import read_file_step, write_file_step
from .mkdirp import mkdirp_step
from .move import move_step
from .query import du_step, exists_step, stat_step, stat_try_step
from .remove import remove_step

__all__ = [
    "copy_step",
    "du_step",
    "exists_step",
    "mkdirp_step",
    "move_step",
    "read_file_step",
    "remove_step",
    "stat_step",
    "stat_try_step",
    "write_file_step",
]
