from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tqdm.contrib.logging import logging_redirect_tqdm

from dumper.config import APP_NAME, APP_VERSION, DEFAULT_MAX_DEPTH
from dumper.core.copier import copy_all
from dumper.core.planner import build_copy_plan
from dumper.core.reporting import (
    build_report,
    build_report_html,
    run_succeeded,
    summary_lines,
    write_report,
    write_report_html,
)
from dumper.core.rules import ResourceKey, default_categories, load_rules, resolve_categories
from dumper.core.scanner import scan_resources
from dumper.errors import DumperError, InvalidDestinationError, ReportWriteError
from dumper.logs import build_logger
from dumper.progress import CopyProgress

EXIT_OK = 0
EXIT_REPORT_FAILED = 1
EXIT_SETUP_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resource-dumper",
        description="Copy game resources out of a directory tree, sorted by category.",
    )
    parser.add_argument("source", type=Path, help="Directory tree to scan")
    parser.add_argument("destination", type=Path, help="Where resources/<category>/ and the report are written")

    cats = parser.add_argument_group("categories (default: all)")
    for key in ResourceKey:
        cats.add_argument(f"--{key.value}", action="store_true", help=f"Dump {key.value} resources")
    cats.add_argument("--all", action="store_true", help="Dump every category (overrides the flags above)")

    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Do not descend below this many directory levels (default: {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument("--rules", type=Path, help="JSON file overriding category match rules")
    parser.add_argument("--no-follow-symlinks", action="store_true", help="Do not descend into symlinked directories")
    parser.add_argument("--dry-run", action="store_true", help="Scan and print the copy plan without copying")
    parser.add_argument("--html", action="store_true", help="Also write dump-report.html")
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every matched and copied file")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    return parser


def _check_destination(source: Path, destination: Path, log: logging.Logger) -> None:
    if destination.exists() and not destination.is_dir():
        raise InvalidDestinationError(f"Destination is not a directory: {destination}")

    src = source.resolve()
    dst = destination.resolve()
    if dst == src or src in dst.parents:
        log.warning("Destination is inside the source tree; later runs will rescan dumped files.")


def run(args: argparse.Namespace, log: logging.Logger) -> int:
    if args.max_depth < 0:
        raise DumperError("--max-depth must be zero or greater")

    categories = load_rules(args.rules) if args.rules else default_categories()

    flags = {key.value: bool(getattr(args, key.value)) for key in ResourceKey}
    flags["all"] = args.all
    selected = resolve_categories(flags, categories)
    log.info("Selected categories: %s", ", ".join(k.value for k in selected))

    _check_destination(args.source, args.destination, log)

    stats = scan_resources(
        str(args.source),
        selected,
        categories=categories,
        max_depth=args.max_depth,
        follow_symlinks=not args.no_follow_symlinks,
        log=log,
    )
    log.info(
        "Scan complete: %d file(s) visited, %d match(es)",
        stats.files_visited,
        stats.total_files_scanned,
    )

    if args.dry_run:
        plan, issues = build_copy_plan(stats, str(args.source), str(args.destination))
        for issue in issues:
            log.warning(issue.message)
        for item in plan:
            log.info("[dry-run] %s -> %s", item.src, item.dst)
        log.info("Dry run: %d file(s) would be copied; nothing written.", len(plan))
        return EXIT_OK

    progress = CopyProgress(
        total=stats.total_files_scanned,
        interactive=not args.no_progress and sys.stderr.isatty(),
        log=log,
    )
    try:
        # error lines print above the bar instead of through it
        with logging_redirect_tqdm(loggers=[log]):
            copy_all(stats, str(args.source), str(args.destination), progress_cb=progress.callback, log=log)
    finally:
        progress.close()

    report = build_report(stats, str(args.source), str(args.destination))
    report_path = write_report(report, str(args.destination))
    log.info("Report written to %s", report_path)

    if args.html:
        html_path = write_report_html(build_report_html(report, stats.issues), str(args.destination))
        log.info("HTML report written to %s", html_path)

    lines = summary_lines(report)
    for line in lines[:-1]:
        log.info(line)
    if run_succeeded(report):
        log.info(lines[-1])
    else:
        log.warning(lines[-1])
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log = build_logger(verbose=args.verbose)

    try:
        return run(args, log)
    except ReportWriteError as e:
        log.error("Files were copied but the report could not be written: %s", e)
        return EXIT_REPORT_FAILED
    except DumperError as e:
        log.error("%s", e)
        return EXIT_SETUP_FAILED


if __name__ == "__main__":
    sys.exit(main())
