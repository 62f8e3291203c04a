"""Batch plans: a YAML list of tree operations executed in order."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from .dispatch import Step, run_async, run_sync
from .engine import copy_step, mkdirp_step, move_step, remove_step
from .errors import FsError
from .infrastructure.config import DEFAULT_DIR_MODE
from .infrastructure.logger import logger
from .types import OperationResult, TreeOperation


def load_plan(plan_path: str | os.PathLike[str]) -> list[TreeOperation]:
    """Read a plan file. The document is either a list of operations or a mapping with an ``ops`` list."""
    data = yaml.safe_load(Path(plan_path).read_text(encoding="utf-8"))
    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("ops") or []
    if not isinstance(data, list):
        raise ValueError(f"plan {plan_path} must contain a list of operations")
    return [TreeOperation.model_validate(op) for op in data]


def _validate(op: TreeOperation) -> str | None:
    if op.type in ("copy", "move"):
        if not op.from_ or not op.to:
            return f"{op.type}: requires 'from' and 'to'"
    elif not op.path:
        return f"{op.type}: requires 'path'"
    return None


def _resolve(base: Path, value: str) -> str:
    return str(base / value)


def _step_for(op: TreeOperation, base: Path) -> Step[Any]:
    if op.type == "copy":
        return copy_step(_resolve(base, op.from_ or ""), _resolve(base, op.to or ""), op.copy_flags())
    if op.type == "move":
        return move_step(_resolve(base, op.from_ or ""), _resolve(base, op.to or ""))
    if op.type == "remove":
        return remove_step(_resolve(base, op.path or ""))
    return mkdirp_step(_resolve(base, op.path or ""), op.mode if op.mode is not None else DEFAULT_DIR_MODE)


def _success(op: TreeOperation, value: Any) -> OperationResult:
    count = value if isinstance(value, int) else 0
    logger.info("Operation finished", op=op.type, path=op.target(), count=count)
    return OperationResult(op=op.type, path=op.target(), count=count)


def _failure(op: TreeOperation, err: FsError | str) -> OperationResult:
    if isinstance(err, str):
        logger.warning("Invalid operation", op=op.type, error=err)
        return OperationResult(op=op.type, path=op.target(), success=False, error=err)
    logger.warning("Operation failed", op=op.type, path=op.target(), error=str(err), kind=err.kind.value)
    return OperationResult(
        op=op.type,
        path=op.target(),
        success=False,
        error=str(err),
        error_kind=err.kind,
        error_path=err.path,
    )


def execute_plan(
    ops: list[TreeOperation], base_dir: str | os.PathLike[str] | None = None, *, stop_on_error: bool = True
) -> list[OperationResult]:
    """Run each operation blocking, one result per attempted operation.

    Relative paths resolve against ``base_dir`` (the working directory by
    default). Execution stops after the first failure unless
    ``stop_on_error`` is False.
    """
    base = Path(base_dir) if base_dir is not None else Path.cwd()
    results: list[OperationResult] = []
    for op in ops:
        problem = _validate(op)
        if problem is not None:
            results.append(_failure(op, problem))
        else:
            try:
                results.append(_success(op, run_sync(_step_for(op, base))))
            except FsError as err:
                results.append(_failure(op, err))
        if not results[-1].success and stop_on_error:
            break
    return results


async def aexecute_plan(
    ops: list[TreeOperation], base_dir: str | os.PathLike[str] | None = None, *, stop_on_error: bool = True
) -> list[OperationResult]:
    """Asyncio counterpart of ``execute_plan``."""
    base = Path(base_dir) if base_dir is not None else Path.cwd()
    results: list[OperationResult] = []
    for op in ops:
        problem = _validate(op)
        if problem is not None:
            results.append(_failure(op, problem))
        else:
            try:
                results.append(_success(op, await run_async(_step_for(op, base))))
            except FsError as err:
                results.append(_failure(op, err))
        if not results[-1].success and stop_on_error:
            break
    return results
