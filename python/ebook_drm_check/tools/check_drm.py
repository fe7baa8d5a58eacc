#!/usr/bin/env python3
"""
eBook DRM check CLI tool.

Scans a directory for EPUB, MOBI, AZW3 and AZW files and reports which
ones are DRM protected.

Usage:
    python -m ebook_drm_check.tools.check_drm <directory> [-c N] [-f FORMAT] [-o FILE] [-v]
"""

import argparse
import logging
import sys
from pathlib import Path

from ebook_drm_check.report import (
    ReportFormat,
    print_console_report,
    summarize,
    write_report,
)
from ebook_drm_check.scanner import FileScanResult, ScanConfig, scan_directory


def _print_progress(completed: int, total: int, path: Path) -> None:
    name = path.name if len(path.name) <= 30 else path.name[:30] + "..."
    print(f"\r  Checking DRM {completed}/{total} {name:<33}", end="", flush=True)
    if completed == total:
        print()


def run_scan(directory: Path, config: ScanConfig, show_progress: bool = True) -> list[FileScanResult]:
    """Scan a directory and print what was found.

    Args:
        directory: Directory to scan
        config: Scan configuration
        show_progress: Print a progress line while checking

    Returns:
        Scan results, in path order
    """
    print(f"Scanning directory: {directory}")
    print(
        f"Options: recursive={config.recursive}, concurrency={config.concurrency}"
    )
    print("-" * 60)

    results = scan_directory(
        directory, config, progress=_print_progress if show_progress else None
    )
    if not results:
        print("No eBook files found in the specified directory.")
    else:
        print(f"Checked {len(results)} eBook file(s)")
    return results


def print_summary(results: list[FileScanResult]) -> None:
    summary = summarize(results)
    print("-" * 60)
    print("Summary:")
    print(f"  Total eBook files: {summary.total}")
    print(f"  DRM-protected: {summary.protected}")
    print(f"  Readable: {summary.readable}")
    if summary.errors:
        print(f"  Errors: {summary.errors}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Detect DRM-protected EPUB, MOBI, AZW3 and AZW files"
    )
    parser.add_argument("directory", type=Path, help="Directory to scan for eBook files")
    ScanConfig.configure_argparse(parser)
    parser.add_argument(
        "--format",
        "-f",
        choices=[f.value for f in ReportFormat],
        default=ReportFormat.TXT.value,
        help="Report format when writing to a file (default: txt)",
    )
    parser.add_argument(
        "--output", "-o", type=Path, help="Write the report to this file"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show verbose output including readable files and debug logging",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
    )

    try:
        config = ScanConfig.from_args(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if not args.directory.is_dir():
        print(f"Error: {args.directory} is not a directory", file=sys.stderr)
        return 2

    results = run_scan(args.directory.resolve(), config, show_progress=sys.stdout.isatty())

    if args.output:
        written = write_report(results, args.output, ReportFormat(args.format))
        print(f"\nReport saved to: {args.output} ({written.value})")
    else:
        print_console_report(results, verbose=args.verbose)

    print_summary(results)

    summary = summarize(results)
    return 0 if summary.protected == 0 and summary.errors == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
