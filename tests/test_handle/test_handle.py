"""Tests for file handles."""

from __future__ import annotations

import gc
import os
from pathlib import Path

import pytest

import treefs
from treefs import CancelToken, ErrorKind, FsError, Handle, HandleState, parse_flags
from treefs.dispatch import run_sync
from treefs.handle import HandleCore


class TestHandleLifecycle:
    def test_append_read_truncate_close(self, tmp_path: Path) -> None:
        path = tmp_path / "example.txt"
        handle = Handle.open(path, "a+")

        assert handle.write("example") == 7
        assert handle.stat().size == 7

        buffer = bytearray(16)
        assert handle.read(buffer, position=0) == 7
        assert bytes(buffer[:7]) == b"example"

        handle.truncate(0)
        assert handle.stat().size == 0

        handle.close()
        assert handle.closed
        assert handle.state is HandleState.CLOSED

        with pytest.raises(FsError) as exc_info:
            handle.read(buffer)
        assert exc_info.value.kind is ErrorKind.INVALID_STATE
        assert "EBADF" in str(exc_info.value)

        with pytest.raises(FsError) as exc_info:
            handle.close()
        assert exc_info.value.kind is ErrorKind.INVALID_STATE

    def test_context_manager_closes(self, tmp_path: Path) -> None:
        with Handle.open(tmp_path / "f.txt", "w") as handle:
            handle.write(b"data")
            fd = handle.fd

        assert handle.closed
        with pytest.raises(OSError):
            os.fstat(fd)
        assert (tmp_path / "f.txt").read_bytes() == b"data"

    def test_context_manager_tolerates_explicit_close(self, tmp_path: Path) -> None:
        with Handle.open(tmp_path / "f.txt", "w") as handle:
            handle.close()
        assert handle.closed

    def test_exclusive_open_of_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "f.txt"
        path.write_text("existing")

        with pytest.raises(FsError) as exc_info:
            Handle.open(path, "wx")

        assert exc_info.value.kind is ErrorKind.ALREADY_EXISTS
        assert exc_info.value.syscall == "open"
        assert exc_info.value.path == str(path)

    def test_open_honours_cancel_token(self, tmp_path: Path) -> None:
        token = CancelToken()
        token.cancel()

        with pytest.raises(FsError) as exc_info:
            treefs.open(tmp_path / "f.txt", "w", token=token)

        assert exc_info.value.kind is ErrorKind.CANCELLED
        assert not (tmp_path / "f.txt").exists()

    def test_open_missing_file_for_reading(self, tmp_path: Path) -> None:
        with pytest.raises(FsError) as exc_info:
            Handle.open(tmp_path / "missing")
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_repr_mentions_path_and_state(self, tmp_path: Path) -> None:
        with Handle.open(tmp_path / "f.txt", "w") as handle:
            assert "f.txt" in repr(handle)
            assert "open" in repr(handle)

    def test_unclosed_handle_warns(self, tmp_path: Path) -> None:
        core = run_sync(HandleCore.open_step(tmp_path / "leak.txt", "w"))
        fd = core.fd

        with pytest.warns(ResourceWarning):
            del core
            gc.collect()

        with pytest.raises(OSError):
            os.fstat(fd)


class TestHandleIO:
    def test_positional_write_and_read(self, tmp_path: Path) -> None:
        with Handle.open(tmp_path / "f.bin", "w+") as handle:
            handle.write(b"abcdef")
            handle.write(b"XY", position=2)

            buffer = bytearray(6)
            assert handle.read(buffer, position=0) == 6
            assert bytes(buffer) == b"abXYef"

    def test_sequential_read_advances(self, tmp_path: Path) -> None:
        path = tmp_path / "f.txt"
        path.write_bytes(b"0123456789")

        with Handle.open(path) as handle:
            buffer = bytearray(4)
            assert handle.read(buffer) == 4
            assert handle.read(buffer) == 4
            assert bytes(buffer) == b"4567"
            assert handle.read(buffer) == 2
            assert handle.read(buffer) == 0

    def test_offset_and_length_select_a_window(self, tmp_path: Path) -> None:
        path = tmp_path / "f.txt"
        with Handle.open(path, "w") as handle:
            assert handle.write(b"--payload--", offset=2, length=7) == 7
        assert path.read_bytes() == b"payload"

        with Handle.open(path) as handle:
            buffer = bytearray(b"..........")
            assert handle.read(buffer, offset=3, length=4) == 4
        assert bytes(buffer) == b"...payl..."

    def test_zero_length_operations(self, tmp_path: Path) -> None:
        with Handle.open(tmp_path / "f.txt", "w+") as handle:
            assert handle.write(b"") == 0
            assert handle.read(bytearray(0)) == 0

    def test_sync(self, tmp_path: Path) -> None:
        with Handle.open(tmp_path / "f.txt", "w") as handle:
            handle.write("durable")
            handle.sync()

    def test_exact_stat(self, tmp_path: Path) -> None:
        with Handle.open(tmp_path / "f.txt", "w") as handle:
            meta = handle.stat(exact=True)
        assert isinstance(meta.mtime, int)


class TestHandleValidation:
    def test_read_requires_writable_buffer(self, tmp_path: Path) -> None:
        (tmp_path / "f.txt").write_text("x")
        with Handle.open(tmp_path / "f.txt") as handle, pytest.raises(TypeError):
            handle.read(b"immutable")

    @pytest.mark.parametrize(
        ("offset", "length", "position"),
        [(-1, None, None), (5, None, None), (0, 5, None), (2, 3, None), (0, -1, None), (0, None, -1)],
    )
    def test_out_of_range_arguments(self, tmp_path: Path, offset, length, position) -> None:
        with Handle.open(tmp_path / "f.txt", "w+") as handle, pytest.raises(ValueError):
            handle.write(b"1234", offset=offset, length=length, position=position)

    def test_negative_truncate(self, tmp_path: Path) -> None:
        with Handle.open(tmp_path / "f.txt", "w") as handle, pytest.raises(ValueError):
            handle.truncate(-1)

    def test_invalid_arguments_leave_handle_usable(self, tmp_path: Path) -> None:
        with Handle.open(tmp_path / "f.txt", "w+") as handle:
            with pytest.raises(ValueError):
                handle.write(b"abc", offset=9)
            assert handle.write(b"abc") == 3


class TestDeferredClose:
    def test_close_waits_for_in_flight_operation(self, tmp_path: Path) -> None:
        path = tmp_path / "f.txt"
        path.write_bytes(b"hello")
        core = run_sync(HandleCore.open_step(path))
        buffer = bytearray(5)

        step = core.read_step(buffer)
        read_call = step.send(None)
        run_sync(core.close_step())

        assert core.state is HandleState.CLOSING
        os.fstat(core.fd)  # still open

        close_call = step.send(read_call.invoke())
        assert close_call.syscall == "close"
        close_call.invoke()
        with pytest.raises(StopIteration) as stop:
            step.send(None)

        assert stop.value.value == 5
        assert bytes(buffer) == b"hello"
        assert core.state is HandleState.CLOSED

    def test_new_operations_rejected_while_closing(self, tmp_path: Path) -> None:
        path = tmp_path / "f.txt"
        path.write_bytes(b"hello")
        core = run_sync(HandleCore.open_step(path))
        step = core.read_step(bytearray(5))
        read_call = step.send(None)
        run_sync(core.close_step())

        with pytest.raises(FsError) as exc_info:
            run_sync(core.stat_step())
        assert exc_info.value.kind is ErrorKind.INVALID_STATE

        close_call = step.send(read_call.invoke())
        close_call.invoke()
        with pytest.raises(StopIteration):
            step.send(None)


class TestParseFlags:
    @pytest.mark.parametrize(
        ("flags", "expected"),
        [
            ("r", os.O_RDONLY),
            ("r+", os.O_RDWR),
            ("w", os.O_TRUNC | os.O_CREAT | os.O_WRONLY),
            ("wx", os.O_TRUNC | os.O_CREAT | os.O_WRONLY | os.O_EXCL),
            ("a+", os.O_APPEND | os.O_CREAT | os.O_RDWR),
        ],
    )
    def test_known_strings(self, flags: str, expected: int) -> None:
        assert parse_flags(flags) == expected

    def test_raw_bits_pass_through(self) -> None:
        assert parse_flags(os.O_WRONLY | os.O_CREAT) == os.O_WRONLY | os.O_CREAT

    def test_unknown_string(self) -> None:
        with pytest.raises(ValueError, match="unknown file open flags"):
            parse_flags("rw")
