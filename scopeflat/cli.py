"""CLI entrypoints for scopeflat commands."""

from __future__ import annotations

import argparse
import sys
from collections import Counter
from typing import List

from .config import parse_target_option
from .errors import ScopeFlatError, ValidationError
from .logging import configure_logging
from .models import FileKind
from .orchestrator import FlattenOutcome, Orchestrator, SnapshotOutcome
from .pruner import PruneReport
from .store import FLATTEN_MAP_RELPATH, SNAPSHOT_RELPATH


def _add_output_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False, verbose: bool = True
) -> None:
    default: object = argparse.SUPPRESS if suppress_default else False
    if verbose:
        parser.add_argument(
            "-v",
            "--verbose",
            action="store_true",
            default=default,
            help="Increase log verbosity for troubleshooting.",
        )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=default,
        help="Only print the final summary line.",
    )
    parser.add_argument(
        "--silent",
        action="store_true",
        default=default,
        help="Print nothing except errors.",
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path inside the repository (defaults to current directory).",
    )


def _add_destructive_options(parser: argparse.ArgumentParser, *, copy_options: bool = True) -> None:
    if copy_options:
        parser.add_argument(
            "--overwrite",
            action="store_true",
            help="Replace files that already exist in the destination.",
        )
        parser.add_argument(
            "--clean",
            action="store_true",
            help="Remove each target folder in the destination before copying.",
        )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Skip confirmation prompts for destructive operations.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scopeflat",
        description="Snapshot a multi-package repository and flatten per-target closures.",
    )
    _add_output_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    snapshot_parser = subparsers.add_parser(
        "snapshot",
        help="Capture a snapshot of repository files and target closures.",
    )
    _add_output_options(snapshot_parser, suppress_default=True)
    _add_path_argument(snapshot_parser)
    snapshot_parser.add_argument(
        "--target",
        dest="targets",
        action="append",
        default=[],
        metavar="NAME[=FOLDER]",
        help="Declare a target; the entry folder defaults to NAME. Repeatable.",
    )

    flatten_parser = subparsers.add_parser(
        "flatten",
        help="Plan the flatten map and copy target closures into a destination.",
    )
    _add_output_options(flatten_parser, suppress_default=True)
    _add_path_argument(flatten_parser)
    flatten_parser.add_argument(
        "--destination",
        help="Destination root; omit to write the flatten map as a plan only.",
    )
    _add_destructive_options(flatten_parser)

    prune_parser = subparsers.add_parser(
        "prune",
        help="Remove destination files not defined by the flatten map.",
    )
    _add_output_options(prune_parser, suppress_default=True, verbose=False)
    _add_path_argument(prune_parser)
    prune_parser.add_argument("--destination", required=True, help="Destination root to prune.")
    prune_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be removed without deleting anything.",
    )
    _add_destructive_options(prune_parser, copy_options=False)

    sync_parser = subparsers.add_parser(
        "sync",
        help="Flatten into a destination, then prune unused files.",
    )
    _add_output_options(sync_parser, suppress_default=True)
    _add_path_argument(sync_parser)
    sync_parser.add_argument("--destination", required=True, help="Destination root.")
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report prune candidates without deleting them.",
    )
    _add_destructive_options(sync_parser)

    subparsers.add_parser("hydrate", help="Hydrate the source project from a flattened build (reserved).")
    subparsers.add_parser("rehydrate", help="Rehydrate the source project from a flattened build (reserved).")

    return parser


def validate_output_flags(args: argparse.Namespace) -> None:
    """Reject combinations of mutually exclusive verbosity flags."""
    chosen = [
        flag
        for flag in ("verbose", "quiet", "silent")
        if bool(getattr(args, flag, False))
    ]
    if len(chosen) > 1:
        names = " and ".join(f"--{flag}" for flag in chosen)
        raise ValidationError(f"{names} cannot be used together")


def main(argv: list[str] | None = None, orchestrator: Orchestrator | None = None) -> None:
    """CLI entrypoint for scopeflat commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command in {"hydrate", "rehydrate"}:
        parser.exit(1, f"`scopeflat {args.command}` is not implemented yet.\n")

    try:
        validate_output_flags(args)
    except ValidationError as exc:
        parser.exit(2, f"{exc}\n")

    verbose = bool(getattr(args, "verbose", False))
    quiet = bool(getattr(args, "quiet", False))
    silent = bool(getattr(args, "silent", False))
    configure_logging(verbose=verbose, quiet=quiet, silent=silent)

    orchestrator = orchestrator or Orchestrator()
    lines: List[str] = []

    try:
        if args.command == "snapshot":
            targets = [parse_target_option(raw) for raw in args.targets]
            lines = _snapshot_summary(orchestrator.run_snapshot(args.path, targets))
        elif args.command == "flatten":
            outcome = orchestrator.run_flatten(
                args.path,
                args.destination,
                overwrite=args.overwrite,
                clean=args.clean,
                force=args.force,
            )
            lines = _flatten_summary(outcome)
        elif args.command == "prune":
            report = orchestrator.run_prune(
                args.path,
                args.destination,
                dry_run=args.dry_run,
                force=args.force,
            )
            lines = _prune_summary(report)
        elif args.command == "sync":
            sync = orchestrator.run_sync(
                args.path,
                args.destination,
                overwrite=args.overwrite,
                clean=args.clean,
                force=args.force,
                dry_run=args.dry_run,
            )
            lines = _flatten_summary(sync.flatten)
            if sync.prune is not None:
                lines.extend(_prune_summary(sync.prune))
            lines.extend(f"! {warning}" for warning in sync.warnings)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except (ScopeFlatError, OSError) as exc:
        hint = "" if verbose else "\nRun with --verbose for more details."
        parser.exit(1, f"scopeflat {args.command} failed: {exc}{hint}\n")

    if silent:
        return
    if quiet:
        lines = lines[:1]
    for line in lines:
        print(line)


def _snapshot_summary(outcome: SnapshotOutcome) -> List[str]:
    snapshot = outcome.snapshot
    by_kind = Counter(file.kind for file in snapshot.files)
    lines = [
        f"Snapshot captured at commit {snapshot.commit_hash}",
        f"  Packages: {len(snapshot.packages)}",
        f"  Files: {len(snapshot.files)}",
        f"    Sources:   {by_kind[FileKind.SOURCE]}",
        f"    Tests:     {by_kind[FileKind.TEST]}",
        f"    Resources: {by_kind[FileKind.RESOURCE]}",
        f"    Other:     {by_kind[FileKind.OTHER]}",
    ]
    for target in snapshot.targets:
        lines.append(f"  Target {target.name}: {len(target.files)} files")
    if snapshot.warnings:
        lines.append(f"  Warnings: {len(snapshot.warnings)}")
        lines.extend(f"    ! {warning}" for warning in snapshot.warnings)
    lines.append(f"  Snapshot written to: {SNAPSHOT_RELPATH}")
    return lines


def _flatten_summary(outcome: FlattenOutcome) -> List[str]:
    flatten_map = outcome.flatten_map
    total = sum(len(target.files) for target in flatten_map.targets)
    lines = [f"Flatten plan created for {len(flatten_map.targets)} targets ({total} files)"]
    for target in flatten_map.targets:
        lines.append(f"  {target.name}: {len(target.files)} files")
    lines.append(f"  Map written to: {FLATTEN_MAP_RELPATH}")
    report = outcome.copy
    if report is None:
        lines.append("  No destination given; nothing copied")
    elif report.aborted:
        lines.append("  Aborted; no files copied")
    else:
        lines.append(
            f"  Copied {len(report.copied)}, overwritten {len(report.overwritten)}, "
            f"skipped {len(report.skipped)} existing"
        )
        if report.missing_sources:
            lines.append(f"  ! {len(report.missing_sources)} planned files missing from the repository")
    return lines


def _prune_summary(report: PruneReport) -> List[str]:
    if report.aborted:
        return ["Aborted; no files removed"]
    if not report.orphans:
        lines = ["No files to prune"]
    elif report.dry_run:
        lines = [f"[Dry run] {len(report.orphans)} orphaned files would be removed"]
    else:
        lines = [f"Pruned {len(report.orphans)} files"]
    lines.extend(f"  {path}" for path in report.orphans)
    if report.missing:
        lines.append(f"  {len(report.missing)} planned files missing from the destination")
        lines.extend(f"    {path}" for path in report.missing)
    return lines


if __name__ == "__main__":
    main(sys.argv[1:])
