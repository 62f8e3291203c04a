"""Whole-file reads and writes through a handle."""

from __future__ import annotations

import os

from ..dispatch import Step
from ..handle import HandleCore
from ..infrastructure.config import COPY_CHUNK_SIZE, DEFAULT_FILE_MODE


def read_file_step(path: str | os.PathLike[str], chunk_size: int = COPY_CHUNK_SIZE) -> Step[bytes]:
    core = yield from HandleCore.open_step(path, "r")
    try:
        chunks: list[bytes] = []
        buffer = bytearray(chunk_size)
        while True:
            read = yield from core.read_step(buffer)
            if read == 0:
                return b"".join(chunks)
            chunks.append(bytes(buffer[:read]))
    finally:
        yield from core.close_step()


def write_file_step(
    path: str | os.PathLike[str],
    data: bytes | str,
    flags: str | int = "w",
    mode: int = DEFAULT_FILE_MODE,
    encoding: str = "utf-8",
) -> Step[int]:
    """Write all of ``data`` to ``path``; returns the number of bytes written."""
    if isinstance(data, str):
        data = data.encode(encoding)
    core = yield from HandleCore.open_step(path, flags, mode)
    try:
        written = 0
        while written < len(data):
            written += yield from core.write_step(data, offset=written)
        return written
    finally:
        yield from core.close_step()
