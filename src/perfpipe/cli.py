"""Command line entry point.

    perfpipe collect --snapshot snapshot.json [--scope compute|io]
    perfpipe ship --snapshot snapshot.json [--scope compute --scope io]
    perfpipe write artifact.txt
    perfpipe suppress | resume | status
"""

import argparse
import logging
import sys
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from perfpipe.adapters.logging import configure_logging
from perfpipe.adapters.source.snapshot import SnapshotSource
from perfpipe.config import Settings
from perfpipe.core.coordinator import write_artifact
from perfpipe.core.exceptions import PerfPipeError
from perfpipe.core.models import ReportScope
from perfpipe.pipeline import (
    build_admission,
    build_coordinator,
    build_run_context,
    build_volume_filter,
    build_writer,
)

logger = logging.getLogger(__name__)

_OVERRIDES = (
    "vc_server",
    "cardinality",
    "jitter_max_seconds",
    "log_level",
    "output_mode",
)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perfpipe",
        description="Collect performance samples and ship them as line protocol.",
    )
    parser.add_argument("--vc", dest="vc_server", help="Source server id (vc tag).")
    parser.add_argument(
        "--cardinality", help="Cardinality mode: standard, advanced or overkill."
    )
    parser.add_argument(
        "--jitter", dest="jitter_max_seconds", type=int, help="Max startup delay."
    )
    parser.add_argument("--log-level", dest="log_level", help="Logging level.")
    sub = parser.add_subparsers(dest="command", required=True)

    collect = sub.add_parser("collect", help="Collect and encode samples.")
    collect.add_argument("--snapshot", required=True, help="Snapshot JSON file.")
    collect.add_argument(
        "--scope", choices=[s.value for s in ReportScope], default="compute"
    )
    collect.add_argument(
        "--output",
        dest="output_mode",
        choices=["stream", "file", "passthrough"],
        help="Output mode.",
    )

    ship = sub.add_parser("ship", help="Collect and write to the sink.")
    ship.add_argument("--snapshot", required=True, help="Snapshot JSON file.")
    ship.add_argument(
        "--scope",
        action="append",
        choices=[s.value for s in ReportScope],
        help="Scope to ship, may be repeated. Default: compute.",
    )
    ship.add_argument("--user", help="Sink user.")
    ship.add_argument("--password", help="Sink password.")

    write = sub.add_parser("write", help="Write a file artifact to the sink.")
    write.add_argument("path", help="Artifact produced by 'collect --output file'.")
    write.add_argument("--user", help="Sink user.")
    write.add_argument("--password", help="Sink password.")

    sub.add_parser("suppress", help="Suppress new runs.")
    sub.add_parser("resume", help="Remove the suppression marker.")
    sub.add_parser("status", help="Show whether runs are suppressed.")
    return parser


def _settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {
        key: getattr(args, key)
        for key in _OVERRIDES
        if getattr(args, key, None) is not None
    }
    return Settings(**overrides)


def _collect(args: argparse.Namespace, settings: Settings) -> int:
    source = SnapshotSource(args.snapshot)
    coordinator = build_coordinator(settings, source, source)
    result = coordinator.collect(
        build_run_context(settings),
        ReportScope(args.scope),
        build_volume_filter(settings),
    )
    if result.skipped:
        return 0
    if result.path is not None:
        print(result.path)
    elif result.samples:
        for sample in result.samples:
            print(
                sample.entity_id,
                sample.metric_id,
                sample.instance or "-",
                sample.value,
                sample.unit,
                sample.interval_seconds,
                sample.timestamp.isoformat(),
                sep="\t",
            )
    else:
        sys.stdout.writelines(result.lines)
    return 0


def _ship(args: argparse.Namespace, settings: Settings) -> int:
    source = SnapshotSource(args.snapshot)
    coordinator = build_coordinator(settings, source, source)
    writer = build_writer(settings, user=args.user, password=args.password)
    scopes = [ReportScope(s) for s in (args.scope or ["compute"])]
    result = coordinator.ship(
        build_run_context(settings), writer, scopes, build_volume_filter(settings)
    )
    for scope, written in result.results.items():
        logger.info("%s: %d records written", scope.value, written.records_written)
    return 1 if result.failures else 0


def _write(args: argparse.Namespace, settings: Settings) -> int:
    writer = build_writer(settings, user=args.user, password=args.password)
    result = write_artifact(args.path, writer)
    logger.info("%d records written", result.records_written)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    try:
        settings = _settings(args)
    except ValidationError as exc:
        print(f"perfpipe: invalid configuration: {exc}", file=sys.stderr)
        return 2
    configure_logging(settings.log_level)

    try:
        if args.command == "collect":
            return _collect(args, settings)
        if args.command == "ship":
            return _ship(args, settings)
        if args.command == "write":
            return _write(args, settings)
        admission = build_admission(settings)
        if args.command == "suppress":
            admission.suppress()
        elif args.command == "resume":
            admission.resume()
        else:
            print("suppressed" if admission.is_suppressed() else "active")
        return 0
    except PerfPipeError as exc:
        print(f"perfpipe: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
