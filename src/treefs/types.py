"""treefs domain types."""

from __future__ import annotations

import os
import stat as stat_mod
from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ErrorKind
from .infrastructure.config import parse_mode


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"

    @classmethod
    def from_mode(cls, mode: int) -> EntryKind:
        if stat_mod.S_ISDIR(mode):
            return cls.DIRECTORY
        if stat_mod.S_ISREG(mode):
            return cls.FILE
        if stat_mod.S_ISLNK(mode):
            return cls.SYMLINK
        return cls.OTHER


class WalkOrder(str, Enum):
    PRE = "pre"
    POST = "post"


class HandleState(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class CopyFlags(IntFlag):
    """Flags accepted by ``copy``. No flags means overwrite-if-possible."""

    NONE = 0
    EXCL = 1
    FICLONE = 2
    FICLONE_FORCE = 4
    DEREFERENCE = 8


@dataclass(frozen=True)
class Metadata:
    """Result of a stat call.

    Time fields are float seconds, or integer nanoseconds when the stat was
    requested with ``exact=True``.
    """

    mode: int
    ino: int
    dev: int
    nlink: int
    uid: int
    gid: int
    size: int
    atime: float | int
    mtime: float | int
    ctime: float | int
    birthtime: float | int | None = None
    exact: bool = False

    @classmethod
    def from_stat_result(cls, st: os.stat_result, exact: bool = False) -> Metadata:
        birth_s = getattr(st, "st_birthtime", None)
        birth_ns = getattr(st, "st_birthtime_ns", None)
        if exact:
            birthtime = birth_ns if birth_ns is not None else (int(birth_s * 1e9) if birth_s is not None else None)
            return cls(
                mode=st.st_mode,
                ino=st.st_ino,
                dev=st.st_dev,
                nlink=st.st_nlink,
                uid=st.st_uid,
                gid=st.st_gid,
                size=st.st_size,
                atime=st.st_atime_ns,
                mtime=st.st_mtime_ns,
                ctime=st.st_ctime_ns,
                birthtime=birthtime,
                exact=True,
            )
        return cls(
            mode=st.st_mode,
            ino=st.st_ino,
            dev=st.st_dev,
            nlink=st.st_nlink,
            uid=st.st_uid,
            gid=st.st_gid,
            size=st.st_size,
            atime=st.st_atime,
            mtime=st.st_mtime,
            ctime=st.st_ctime,
            birthtime=birth_s,
        )

    @property
    def kind(self) -> EntryKind:
        return EntryKind.from_mode(self.mode)

    def is_file(self) -> bool:
        return stat_mod.S_ISREG(self.mode)

    def is_dir(self) -> bool:
        return stat_mod.S_ISDIR(self.mode)

    def is_symlink(self) -> bool:
        return stat_mod.S_ISLNK(self.mode)


@dataclass(frozen=True)
class TreeEntry:
    """One entry produced by a tree walk."""

    path: str
    relative: str
    kind: EntryKind
    size: int
    mode: int
    depth: int

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def name(self) -> str:
        return os.path.basename(self.path)


class TreeOperation(BaseModel):
    """One step of a batch plan."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["copy", "remove", "mkdirp", "move"]
    path: str | None = None
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None
    flags: list[Literal["excl", "ficlone", "ficlone_force", "dereference"]] = Field(default_factory=list)
    mode: int | None = None

    @field_validator("mode", mode="before")
    @classmethod
    def parse_octal_mode(cls, value: object) -> object:
        # "755" in a plan means the same as `--mode 755` on the command line
        if isinstance(value, str):
            return parse_mode(value)
        return value

    def copy_flags(self) -> CopyFlags:
        result = CopyFlags.NONE
        for name in self.flags:
            result |= CopyFlags[name.upper()]
        return result

    def target(self) -> str:
        """The path an operation acts on, for reporting."""
        return self.path or self.from_ or ""


class OperationResult(BaseModel):
    op: str
    path: str
    count: int = 0
    success: bool = True
    error: str | None = None
    error_kind: ErrorKind | None = None
    error_path: str | None = None
