"""File handles over a single owned descriptor.

``HandleCore`` holds the descriptor, the open/closing/closed state machine
and the argument validation; every operation is a step. ``Handle`` runs
those steps blocking, ``AsyncHandle`` runs them on the event loop, so both
behave identically apart from who waits.

Each operation holds a reference on the descriptor while it runs. Closing
a handle with operations still in flight moves it to ``CLOSING`` and the
last operation to finish releases the descriptor.
"""

from __future__ import annotations

import contextlib
import os
import threading
import warnings
from concurrent.futures import Executor
from typing import Any

from .dispatch import CancelToken, Step, run_async, run_sync
from .errors import invalid_state
from .infrastructure.config import DEFAULT_FILE_MODE
from .primitives import close_fd, fstat_fd, open_fd, read_at, sync_fd, truncate_fd, write_at
from .types import HandleState, Metadata

_O_SYNC = getattr(os, "O_SYNC", 0)

FLAG_STRINGS: dict[str, int] = {
    "r": os.O_RDONLY,
    "rs": os.O_RDONLY | _O_SYNC,
    "sr": os.O_RDONLY | _O_SYNC,
    "r+": os.O_RDWR,
    "rs+": os.O_RDWR | _O_SYNC,
    "sr+": os.O_RDWR | _O_SYNC,
    "w": os.O_TRUNC | os.O_CREAT | os.O_WRONLY,
    "wx": os.O_TRUNC | os.O_CREAT | os.O_WRONLY | os.O_EXCL,
    "xw": os.O_TRUNC | os.O_CREAT | os.O_WRONLY | os.O_EXCL,
    "w+": os.O_TRUNC | os.O_CREAT | os.O_RDWR,
    "wx+": os.O_TRUNC | os.O_CREAT | os.O_RDWR | os.O_EXCL,
    "xw+": os.O_TRUNC | os.O_CREAT | os.O_RDWR | os.O_EXCL,
    "a": os.O_APPEND | os.O_CREAT | os.O_WRONLY,
    "ax": os.O_APPEND | os.O_CREAT | os.O_WRONLY | os.O_EXCL,
    "xa": os.O_APPEND | os.O_CREAT | os.O_WRONLY | os.O_EXCL,
    "as": os.O_APPEND | os.O_CREAT | os.O_WRONLY | _O_SYNC,
    "sa": os.O_APPEND | os.O_CREAT | os.O_WRONLY | _O_SYNC,
    "a+": os.O_APPEND | os.O_CREAT | os.O_RDWR,
    "ax+": os.O_APPEND | os.O_CREAT | os.O_RDWR | os.O_EXCL,
    "xa+": os.O_APPEND | os.O_CREAT | os.O_RDWR | os.O_EXCL,
    "as+": os.O_APPEND | os.O_CREAT | os.O_RDWR | _O_SYNC,
    "sa+": os.O_APPEND | os.O_CREAT | os.O_RDWR | _O_SYNC,
}


def parse_flags(flags: str | int) -> int:
    """Translate a mode string such as ``"a+"`` (or raw ``os.O_*`` bits) into open flags."""
    if isinstance(flags, int):
        return flags
    try:
        return FLAG_STRINGS[flags]
    except KeyError:
        raise ValueError(f"unknown file open flags: {flags!r}") from None


def _check_position(position: int | None) -> None:
    if position is not None and position < 0:
        raise ValueError(f"position must be >= 0 or None, got {position}")


def _window(view: memoryview, offset: int, length: int | None) -> memoryview:
    size = len(view)
    if offset < 0 or offset > size:
        raise ValueError(f"offset {offset} is out of range for a buffer of {size} bytes")
    if length is None:
        length = size - offset
    if length < 0 or offset + length > size:
        raise ValueError(f"length {length} is out of range for a buffer of {size} bytes at offset {offset}")
    return view[offset : offset + length]


class HandleCore:
    """Descriptor ownership, lifecycle state and operation steps."""

    def __init__(self, fd: int, path: str, flags: int) -> None:
        self.fd = fd
        self.path = path
        self.flags = flags
        self._state = HandleState.OPEN
        self._refs = 0
        self._lock = threading.Lock()

    @classmethod
    def open_step(
        cls, path: str | os.PathLike[str], flags: str | int = "r", mode: int = DEFAULT_FILE_MODE
    ) -> Step[HandleCore]:
        target = os.fspath(path)
        open_flags = parse_flags(flags)
        fd = yield open_fd(target, open_flags, mode)
        return cls(fd, target, open_flags)

    @property
    def state(self) -> HandleState:
        return self._state

    def _acquire(self, syscall: str) -> None:
        with self._lock:
            if self._state is not HandleState.OPEN:
                raise invalid_state(syscall, self.path)
            self._refs += 1

    def _release(self) -> bool:
        """Drop a reference; True when this caller must finish a pending close."""
        with self._lock:
            self._refs -= 1
            return self._refs == 0 and self._state is HandleState.CLOSING

    def _finish_close(self) -> Step[None]:
        try:
            yield close_fd(self.fd, self.path)
        finally:
            with self._lock:
                self._state = HandleState.CLOSED

    def read_step(
        self, buffer: bytearray | memoryview, offset: int = 0, length: int | None = None, position: int | None = None
    ) -> Step[int]:
        view = memoryview(buffer).cast("B")
        if view.readonly:
            raise TypeError("read() requires a writable buffer")
        window = _window(view, offset, length)
        _check_position(position)
        self._acquire("read")
        try:
            if not len(window):
                return 0
            return (yield read_at(self.fd, window, position, self.path))
        finally:
            if self._release():
                yield from self._finish_close()

    def write_step(
        self,
        data: bytes | bytearray | memoryview | str,
        offset: int = 0,
        length: int | None = None,
        position: int | None = None,
        encoding: str = "utf-8",
    ) -> Step[int]:
        if isinstance(data, str):
            data = data.encode(encoding)
        window = _window(memoryview(data).cast("B"), offset, length)
        _check_position(position)
        self._acquire("write")
        try:
            if not len(window):
                return 0
            return (yield write_at(self.fd, window, position, self.path))
        finally:
            if self._release():
                yield from self._finish_close()

    def stat_step(self, exact: bool = False) -> Step[Metadata]:
        self._acquire("fstat")
        try:
            st = yield fstat_fd(self.fd, self.path)
            return Metadata.from_stat_result(st, exact)
        finally:
            if self._release():
                yield from self._finish_close()

    def truncate_step(self, length: int = 0) -> Step[None]:
        if length < 0:
            raise ValueError(f"length must be >= 0, got {length}")
        self._acquire("ftruncate")
        try:
            yield truncate_fd(self.fd, length, self.path)
        finally:
            if self._release():
                yield from self._finish_close()

    def sync_step(self) -> Step[None]:
        self._acquire("fsync")
        try:
            yield sync_fd(self.fd, self.path)
        finally:
            if self._release():
                yield from self._finish_close()

    def close_step(self) -> Step[None]:
        with self._lock:
            if self._state is not HandleState.OPEN:
                raise invalid_state("close", self.path)
            self._state = HandleState.CLOSING
            deferred = self._refs > 0
        if not deferred:
            yield from self._finish_close()

    def __del__(self) -> None:
        if getattr(self, "_state", HandleState.CLOSED) is HandleState.OPEN:
            warnings.warn(f"unclosed file handle {self.path!r}", ResourceWarning, stacklevel=2)
            self._state = HandleState.CLOSED
            with contextlib.suppress(OSError):
                os.close(self.fd)


class _HandleBase:
    def __init__(self, core: HandleCore) -> None:
        self._core = core

    @property
    def fd(self) -> int:
        return self._core.fd

    @property
    def path(self) -> str:
        return self._core.path

    @property
    def state(self) -> HandleState:
        return self._core.state

    @property
    def closed(self) -> bool:
        return self._core.state is not HandleState.OPEN

    def __repr__(self) -> str:
        return f"<{type(self).__name__} path={self.path!r} fd={self.fd} state={self.state.value}>"


class Handle(_HandleBase):
    """Blocking file handle. Use as a context manager or call ``close()``."""

    @classmethod
    def open(
        cls,
        path: str | os.PathLike[str],
        flags: str | int = "r",
        mode: int = DEFAULT_FILE_MODE,
        token: CancelToken | None = None,
    ) -> Handle:
        return cls(run_sync(HandleCore.open_step(path, flags, mode), token))

    def read(
        self, buffer: bytearray | memoryview, offset: int = 0, length: int | None = None, position: int | None = None
    ) -> int:
        return run_sync(self._core.read_step(buffer, offset, length, position))

    def write(
        self,
        data: bytes | bytearray | memoryview | str,
        offset: int = 0,
        length: int | None = None,
        position: int | None = None,
        encoding: str = "utf-8",
    ) -> int:
        return run_sync(self._core.write_step(data, offset, length, position, encoding))

    def stat(self, exact: bool = False) -> Metadata:
        return run_sync(self._core.stat_step(exact))

    def truncate(self, length: int = 0) -> None:
        run_sync(self._core.truncate_step(length))

    def sync(self) -> None:
        run_sync(self._core.sync_step())

    def close(self) -> None:
        run_sync(self._core.close_step())

    def __enter__(self) -> Handle:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._core.state is HandleState.OPEN:
            self.close()


class AsyncHandle(_HandleBase):
    """Non-blocking file handle for use inside an asyncio event loop."""

    def __init__(self, core: HandleCore, executor: Executor | None = None) -> None:
        super().__init__(core)
        self._executor = executor

    @classmethod
    async def open(
        cls,
        path: str | os.PathLike[str],
        flags: str | int = "r",
        mode: int = DEFAULT_FILE_MODE,
        token: CancelToken | None = None,
        executor: Executor | None = None,
    ) -> AsyncHandle:
        core = await run_async(HandleCore.open_step(path, flags, mode), token, executor)
        return cls(core, executor)

    async def read(
        self, buffer: bytearray | memoryview, offset: int = 0, length: int | None = None, position: int | None = None
    ) -> int:
        return await run_async(self._core.read_step(buffer, offset, length, position), executor=self._executor)

    async def write(
        self,
        data: bytes | bytearray | memoryview | str,
        offset: int = 0,
        length: int | None = None,
        position: int | None = None,
        encoding: str = "utf-8",
    ) -> int:
        return await run_async(self._core.write_step(data, offset, length, position, encoding), executor=self._executor)

    async def stat(self, exact: bool = False) -> Metadata:
        return await run_async(self._core.stat_step(exact), executor=self._executor)

    async def truncate(self, length: int = 0) -> None:
        await run_async(self._core.truncate_step(length), executor=self._executor)

    async def sync(self) -> None:
        await run_async(self._core.sync_step(), executor=self._executor)

    async def close(self) -> None:
        await run_async(self._core.close_step(), executor=self._executor)

    async def __aenter__(self) -> AsyncHandle:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._core.state is HandleState.OPEN:
            await self.close()
