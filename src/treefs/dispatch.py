"""Drivers that run engine steps in the blocking or the asyncio convention.

An engine step is a generator that yields ``Call`` objects and returns the
operation's result. The driver performs each call and sends the result
back in (or throws the translated ``FsError`` in), so the tree logic is
written once and both calling conventions share it.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Executor
from typing import Any, Generator, TypeVar

from .errors import FsError, cancelled
from .infrastructure.logger import logger
from .primitives import Call

T = TypeVar("T")

Step = Generator[Call, Any, T]


class CancelToken:
    """Cooperative cancellation for a running operation.

    Safe to trigger from any thread or task. Once cancelled, the driver
    issues no further primitive calls except resource cleanup and raises
    ``FsError(kind=CANCELLED)`` out of the operation.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _resume(step: Step[T], value: Any, error: BaseException | None) -> Call:
    if error is not None:
        return step.throw(error)
    return step.send(value)


def _invoke(call: Call) -> tuple[Any, Exception | None]:
    # Failures are thrown back into the step so its finally blocks run.
    try:
        return call.invoke(), None
    except Exception as err:
        return None, err


def _cancel_at(call: Call, token: CancelToken | None, unwinding: bool) -> FsError | None:
    if token is None or unwinding or call.cleanup or not token.cancelled:
        return None
    logger.debug("Operation cancelled", syscall=call.syscall, path=call.path)
    return cancelled(call.path)


def run_sync(step: Step[T], token: CancelToken | None = None) -> T:
    """Run a step to completion, blocking the calling thread on every call."""
    value: Any = None
    error: BaseException | None = None
    unwinding = False
    while True:
        try:
            call = _resume(step, value, error)
        except StopIteration as stop:
            return stop.value
        error = _cancel_at(call, token, unwinding)
        if error is not None:
            unwinding = True
            continue
        value, error = _invoke(call)


async def run_async(step: Step[T], token: CancelToken | None = None, executor: Executor | None = None) -> T:
    """Run a step to completion, suspending the task on every call.

    Each primitive runs in ``executor`` (the loop's default when None).
    If the awaiting task is cancelled, the in-flight primitive is allowed to
    finish so any descriptor it produced reaches the step's cleanup code,
    which then runs inline before ``CancelledError`` propagates.
    """
    loop = asyncio.get_running_loop()
    value: Any = None
    error: BaseException | None = None
    unwinding = False
    while True:
        try:
            call = _resume(step, value, error)
        except StopIteration as stop:
            return stop.value
        error = _cancel_at(call, token, unwinding)
        if error is not None:
            unwinding = True
            continue
        future = loop.run_in_executor(executor, _invoke, call)
        try:
            value, error = await asyncio.shield(future)
        except asyncio.CancelledError as exc:
            await asyncio.wait([future])
            value, error = future.result()
            _unwind(step, value, error, exc)
            raise


def _unwind(step: Step[Any], value: Any, error: BaseException | None, reason: BaseException) -> None:
    """Deliver the last result, raise ``reason`` inside the step and drive its cleanup inline.

    Cleanup calls the step issues before its next regular call still run;
    ``reason`` is raised at the first call that is not a cleanup.
    """
    try:
        call = _resume(step, value, error)
        while call.cleanup:
            value, error = _invoke(call)
            call = _resume(step, value, error)
        call = step.throw(reason)
        while True:
            value, error = _invoke(call)
            call = _resume(step, value, error)
    except (StopIteration, asyncio.CancelledError):
        pass
    except FsError as err:
        logger.debug("Error while unwinding cancelled operation", error=str(err))
