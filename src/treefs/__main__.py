"""Entry point: python -m treefs"""

from __future__ import annotations

import argparse
import sys

import yaml

from treefs import blocking
from treefs.batch import execute_plan, load_plan
from treefs.errors import FsError
from treefs.infrastructure.config import DEFAULT_DIR_MODE, CopyConfig, parse_mode
from treefs.infrastructure.logger import logger
from treefs.types import CopyFlags, WalkOrder


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="treefs", description="Recursive filesystem tree operations")
    commands = parser.add_subparsers(dest="command", required=True)

    cp = commands.add_parser("cp", help="Recursively copy SRC to DST")
    cp.add_argument("source")
    cp.add_argument("destination")
    cp.add_argument("--excl", action="store_true", help="Fail if a destination entry already exists")
    clone = cp.add_mutually_exclusive_group()
    clone.add_argument("--no-clone", action="store_true", help="Always copy file contents")
    clone.add_argument("--force-clone", action="store_true", help="Fail unless files can be cloned")
    cp.add_argument("--dereference", action="store_true", help="Copy the files symlinks point to")

    rm = commands.add_parser("rm", help="Recursively remove paths")
    rm.add_argument("paths", nargs="+")

    mkdirp = commands.add_parser("mkdirp", help="Create directories and missing parents")
    mkdirp.add_argument("paths", nargs="+")
    mkdirp.add_argument("--mode", type=parse_mode, default=DEFAULT_DIR_MODE, help="Octal permission mode")

    mv = commands.add_parser("mv", help="Move SRC to DST")
    mv.add_argument("source")
    mv.add_argument("destination")

    du = commands.add_parser("du", help="Total size of the files below PATH")
    du.add_argument("path")

    ls = commands.add_parser("ls", help="List the tree below PATH")
    ls.add_argument("path")
    ls.add_argument("--post", action="store_true", help="List children before their directory")

    apply = commands.add_parser("apply", help="Execute a YAML plan of operations")
    apply.add_argument("plan")
    apply.add_argument("--keep-going", action="store_true", help="Continue after a failed operation")

    return parser


def _copy(args: argparse.Namespace) -> int:
    flags = CopyFlags.NONE
    if args.excl:
        flags |= CopyFlags.EXCL
    if args.force_clone:
        flags |= CopyFlags.FICLONE_FORCE
    if args.dereference:
        flags |= CopyFlags.DEREFERENCE
    config = CopyConfig().without_clone() if args.no_clone else None
    count = blocking.copy(args.source, args.destination, flags, config=config)
    print(f"copied {count} entries")
    return 0


def _remove(args: argparse.Namespace) -> int:
    total = sum(blocking.remove(path) for path in args.paths)
    print(f"removed {total} entries")
    return 0


def _mkdirp(args: argparse.Namespace) -> int:
    for path in args.paths:
        blocking.mkdirp(path, args.mode)
    return 0


def _move(args: argparse.Namespace) -> int:
    blocking.move(args.source, args.destination)
    return 0


def _du(args: argparse.Namespace) -> int:
    print(blocking.du(args.path))
    return 0


def _list(args: argparse.Namespace) -> int:
    order = WalkOrder.POST if args.post else WalkOrder.PRE
    for entry in blocking.walk(args.path, order, include_root=False):
        suffix = "/" if entry.is_dir else ""
        print(f"{entry.kind.value:<9} {entry.size:>12} {entry.relative}{suffix}")
    return 0


def _apply(args: argparse.Namespace) -> int:
    try:
        ops = load_plan(args.plan)
    except (OSError, ValueError, yaml.YAMLError) as err:
        logger.error("Invalid plan", plan=args.plan, error=str(err))
        print(f"treefs: cannot load plan {args.plan}: {err}", file=sys.stderr)
        return 2
    results = execute_plan(ops, stop_on_error=not args.keep_going)
    for result in results:
        status = "ok" if result.success else "FAILED"
        line = f"{status:<6} {result.op:<6} {result.path} ({result.count})"
        if result.error:
            line += f": {result.error}"
        print(line)
    return 0 if all(result.success for result in results) else 1


_COMMANDS = {
    "cp": _copy,
    "rm": _remove,
    "mkdirp": _mkdirp,
    "mv": _move,
    "du": _du,
    "ls": _list,
    "apply": _apply,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return _COMMANDS[args.command](args)
    except FsError as err:
        logger.error("Command failed", command=args.command, kind=err.kind.value, path=err.path)
        print(f"treefs: {err}", file=sys.stderr)
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
