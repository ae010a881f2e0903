"""
Operator CLI for fluxstore projections.

Commands:
- projections replay: rebuild one or all read models from the event log
- projections reset: truncate one or all read models
- projections status: print row counts and last update per read model

Usage:
    fluxstore --app myapp.bootstrap:projections projections replay budget_summary
    fluxstore projections replay --all --from-date "2025-01-01 00:00:00" --batch-size 1000
    fluxstore projections reset --all --force
    fluxstore projections status --format json

The application is located with ``--app module:callable`` or the
``FLUXSTORE_APP`` environment variable.  The callable takes no argument or
the loaded :class:`~fluxstore.config.FluxStoreSettings`, may be async, and
returns a :class:`~fluxstore.application.projections.ProjectionManager` or
an async context manager yielding one (to dispose engines on exit).

Exit code is 0 on success and 1 on any error.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import importlib
import inspect
import json
import sys
from typing import Any, AsyncIterator, Callable, Sequence, TextIO

from fluxstore.application.projections import ProjectionManager, ProjectionStatus
from fluxstore.config.settings import EnvSettingsLoader, FluxStoreSettings
from fluxstore.config.validation import AppFactoryError
from fluxstore.kernel.errors import BaseError
from fluxstore.kernel.time.clock import parse_timestamp
from fluxstore.observability.logging import JsonLoggerFactory, get_logger

logger = get_logger(__name__)

Prompt = Callable[[str], str]


class ProjectionCLI:
    """Projection commands bound to one :class:`ProjectionManager`.

    Example:
        >>> cli = ProjectionCLI(manager, out=sys.stdout)
        >>> await cli.replay("budget_summary", from_date=None)
        0
    """

    def __init__(self, manager: ProjectionManager, out: TextIO, prompt: Prompt = input) -> None:
        self._manager = manager
        self._out = out
        self._prompt = prompt

    async def replay(
        self,
        name: str | None,
        replay_all: bool = False,
        from_date: str | None = None,
        reset_first: bool = False,
        batch_size: int | None = None,
        offset: int = 0,
    ) -> int:
        if replay_all and offset:
            raise ValueError("offset applies to a single projection, not to replay_all")
        since = parse_timestamp(from_date) if from_date else None
        if replay_all:
            counts = await self._manager.replay_all(since, batch_size, reset_first)
        else:
            if not name:
                raise ValueError("a projection name is required unless replay_all is set")
            counts = {name: await self._manager.replay(name, since, batch_size, reset_first, offset)}
        for projection, applied in counts.items():
            self._write(f"replayed {projection}: {applied} events")
        return 0

    async def reset(self, name: str | None, reset_all: bool = False, force: bool = False) -> int:
        names = self._manager.registry.names() if reset_all else [name or ""]
        if reset_all:
            self._write("This will reset ALL projections:")
            for projection in names:
                self._write(f"  - {projection}")
        if not force and not self._confirm(
            "Reset all projections?" if reset_all else f"Reset projection {name}?"
        ):
            self._write("Operation cancelled")
            return 0
        for projection in names:
            await self._manager.reset(projection)
            self._write(f"reset {projection}")
        return 0

    async def status(self, fmt: str = "text") -> int:
        statuses = await self._manager.status_all()
        if fmt == "json":
            self._write(json.dumps([s.to_dict() for s in statuses], indent=2, sort_keys=True))
            return 0
        self._write(format_status_table(statuses))
        total = sum(s.row_count for s in statuses)
        self._write(f"\nprojections: {len(statuses)}  rows: {total}")
        if statuses and total == 0:
            self._write("no data in projections; run 'projections replay --all'")
        return 0

    def _confirm(self, question: str) -> bool:
        try:
            answer = self._prompt(f"{question} [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")

    def _write(self, line: str) -> None:
        print(line, file=self._out)


def format_status_table(statuses: Sequence[ProjectionStatus]) -> str:
    header = ("Projection", "Table", "Rows", "Last Update")
    rows = [
        (
            s.name,
            s.table_name,
            f"{s.row_count:,}",
            s.last_updated.isoformat() if s.last_updated else "Never",
        )
        for s in statuses
    ]
    widths = [max(len(str(r[i])) for r in [header, *rows]) for i in range(len(header))]
    lines = ["  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip() for row in [header, *rows]]
    lines.insert(1, "  ".join("-" * w for w in widths))
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Application loading
# ---------------------------------------------------------------------------


def load_factory(path: str) -> Callable[..., Any]:
    """Import ``module:callable``."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise AppFactoryError(f"Invalid application path '{path}', expected 'module:callable'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise AppFactoryError(f"Cannot import '{module_name}'", cause=exc) from exc
    target: Any = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise AppFactoryError(f"'{module_name}' has no attribute '{attr}'", cause=exc) from exc
    if not callable(target):
        raise AppFactoryError(f"'{path}' is not callable")
    return target


@contextlib.asynccontextmanager
async def open_manager(path: str, settings: FluxStoreSettings) -> AsyncIterator[ProjectionManager]:
    factory = load_factory(path)
    result = factory(settings) if inspect.signature(factory).parameters else factory()
    if inspect.isawaitable(result):
        result = await result
    if hasattr(result, "__aenter__"):
        async with result as manager:
            yield _require_manager(path, manager)
        return
    yield _require_manager(path, result)


def _require_manager(path: str, candidate: Any) -> ProjectionManager:
    candidate = getattr(candidate, "projection_manager", candidate)
    if not isinstance(candidate, ProjectionManager):
        raise AppFactoryError(f"'{path}' returned {type(candidate).__name__}, expected ProjectionManager")
    return candidate


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fluxstore", description="fluxstore operator tool")
    parser.add_argument("--app", help="Application factory 'module:callable' (default: $FLUXSTORE_APP)")
    parser.add_argument("--log-level", help="Log level (default: $FLUXSTORE_LOG_LEVEL or INFO)")
    groups = parser.add_subparsers(dest="group", required=True)

    projections = groups.add_parser("projections", help="Manage projection read models")
    commands = projections.add_subparsers(dest="command", required=True)

    replay_parser = commands.add_parser("replay", help="Replay events into projections")
    replay_parser.add_argument("projection", nargs="?", help="Projection name")
    replay_parser.add_argument("--all", "-a", action="store_true", dest="all", help="Replay all projections")
    replay_parser.add_argument("--from-date", help="Replay events from this date (ISO-8601, UTC if naive)")
    replay_parser.add_argument("--reset-first", "-r", action="store_true", help="Reset before replay")
    replay_parser.add_argument("--batch-size", "-b", type=int, default=None, help="Events per batch")
    replay_parser.add_argument("--offset", type=int, default=0, help="Resume a failed replay at this offset")

    reset_parser = commands.add_parser("reset", help="Reset projection read models (truncate tables)")
    reset_parser.add_argument("projection", nargs="?", help="Projection name")
    reset_parser.add_argument("--all", "-a", action="store_true", dest="all", help="Reset all projections")
    reset_parser.add_argument("--force", "-f", action="store_true", help="Reset without confirmation")

    status_parser = commands.add_parser("status", help="Show projection status")
    status_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")

    return parser


async def _run(args: argparse.Namespace, settings: FluxStoreSettings, out: TextIO, prompt: Prompt) -> int:
    app = args.app or settings.app
    if not app:
        raise AppFactoryError("No application given; pass --app or set FLUXSTORE_APP")
    async with open_manager(app, settings) as manager:
        cli = ProjectionCLI(manager, out, prompt)
        if args.command == "replay":
            return await cli.replay(
                args.projection,
                replay_all=args.all,
                from_date=args.from_date,
                reset_first=args.reset_first,
                batch_size=args.batch_size or settings.replay_batch_size,
                offset=args.offset,
            )
        if args.command == "reset":
            return await cli.reset(args.projection, reset_all=args.all, force=args.force)
        return await cli.status(args.format)


def _usage_problem(args: argparse.Namespace) -> str | None:
    if args.command in ("replay", "reset") and not args.projection and not args.all:
        return "specify a projection name or use --all"
    if args.command != "replay" or not args.offset:
        return None
    if args.offset < 0:
        return "--offset must be >= 0"
    if args.all:
        return "--offset resumes a single projection and cannot be combined with --all"
    if args.reset_first:
        return "--offset resumes without truncating and cannot be combined with --reset-first"
    return None


def main(
    argv: Sequence[str] | None = None,
    out: TextIO | None = None,
    prompt: Prompt = input,
) -> int:
    """CLI entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    out = out or sys.stdout

    problem = _usage_problem(args)
    if problem:
        print(f"error: {problem}", file=sys.stderr)
        return 1

    try:
        settings = EnvSettingsLoader().load(FluxStoreSettings)
        JsonLoggerFactory.configure(args.log_level or settings.log_level)
        return asyncio.run(_run(args, settings, out, prompt))
    except BaseError as exc:
        logger.error("cli.failed", command=args.command, error=exc.to_dict())
        print(json.dumps({"error": exc.to_dict()}, default=str), file=sys.stderr)
        return 1
    except Exception as exc:  # noqa: BLE001
        logger.exception("cli.crashed", command=args.command)
        print(json.dumps({"error": {"code": "unexpected_error", "message": repr(exc)}}), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
