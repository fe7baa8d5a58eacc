"""
Scan report rendering.

Reports are built from FileScanResult lists in four formats: plain text,
JSON, CSV and MessagePack. print_console_report() gives the grouped
console view used by the CLI.
"""

import csv
import io
import json
import math
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TextIO

import msgpack

from .scanner import FileScanResult

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]

CSV_HEADERS = [
    "File Name",
    "File Path",
    "File Size (Bytes)",
    "File Size",
    "DRM Protected",
    "Category",
    "Reason",
    "Error",
    "Check Time",
]


class ReportFormat(str, Enum):
    """Output format of a saved report."""

    TXT = "txt"
    JSON = "json"
    CSV = "csv"
    MSGPACK = "msgpack"


@dataclass(frozen=True)
class ScanSummary:
    """Counts over a scan. Files with errors count only as errors."""

    total: int
    protected: int
    readable: int
    errors: int


def format_file_size(size: int) -> str:
    """Format a byte count for humans (1024-based, up to two decimals)."""
    if size <= 0:
        return "0 B"
    exponent = min(int(math.log(size, 1024)), len(SIZE_UNITS) - 1)
    # log() can land just below an exact power
    if exponent + 1 < len(SIZE_UNITS) and size >= 1024 ** (exponent + 1):
        exponent += 1
    value = f"{size / 1024**exponent:.2f}".rstrip("0").rstrip(".")
    return f"{value} {SIZE_UNITS[exponent]}"


def summarize(results: list[FileScanResult]) -> ScanSummary:
    errors = sum(1 for r in results if r.has_error)
    protected = sum(1 for r in results if not r.has_error and r.is_protected)
    return ScanSummary(
        total=len(results),
        protected=protected,
        readable=len(results) - protected - errors,
        errors=errors,
    )


def _report_dict(results: list[FileScanResult]) -> dict:
    summary = summarize(results)
    files = []
    for r in results:
        entry = r.to_dict()
        entry["file_size_formatted"] = format_file_size(r.file_size)
        files.append(entry)
    return {
        "scan_date": datetime.now(timezone.utc).isoformat(),
        "summary": {
            "total_files": summary.total,
            "drm_protected": summary.protected,
            "readable": summary.readable,
            "errors": summary.errors,
        },
        "files": files,
    }


def render_json(results: list[FileScanResult]) -> str:
    return json.dumps(_report_dict(results), indent=2, ensure_ascii=False)


def render_msgpack(results: list[FileScanResult]) -> bytes:
    return msgpack.packb(_report_dict(results), use_bin_type=True)


def render_csv(results: list[FileScanResult]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for r in results:
        writer.writerow(
            [
                r.file_name,
                str(r.path),
                r.file_size,
                format_file_size(r.file_size),
                "Yes" if r.is_protected else "No",
                r.result.category.value if r.result else "",
                r.result.reason if r.result else "",
                r.error or "",
                r.check_time,
            ]
        )
    return buf.getvalue()


def render_txt(results: list[FileScanResult]) -> str:
    summary = summarize(results)
    lines = [
        "eBook DRM Check Report",
        "=" * 50,
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        "SUMMARY:",
        f"  Total eBook files: {summary.total}",
        f"  DRM-protected: {summary.protected}",
        f"  Readable: {summary.readable}",
        f"  Errors: {summary.errors}",
        "",
    ]

    protected = [r for r in results if r.is_protected and not r.has_error]
    if protected:
        lines.append("DRM-PROTECTED FILES:")
        lines.append("-" * 30)
        for i, r in enumerate(protected, start=1):
            lines.append(f"{i}. {r.file_name}")
            lines.append(f"   Path: {r.path}")
            lines.append(f"   Size: {format_file_size(r.file_size)}")
            lines.append(f"   Category: {r.result.category.value}")
            if r.result.reason:
                lines.append(f"   Reason: {r.result.reason}")
            lines.append("")

    errored = [r for r in results if r.has_error]
    if errored:
        lines.append("FILES WITH ERRORS:")
        lines.append("-" * 30)
        for i, r in enumerate(errored, start=1):
            lines.append(f"{i}. {r.file_name}")
            lines.append(f"   Path: {r.path}")
            lines.append(f"   Error: {r.error}")
            lines.append("")

    if summary.readable:
        lines.append("READABLE FILES:")
        lines.append("-" * 30)
        lines.append(f"{summary.readable} files are readable and not DRM-protected.")
        lines.append("")

    return "\n".join(lines)


def render_report(results: list[FileScanResult], fmt: ReportFormat) -> str | bytes:
    renderers = {
        ReportFormat.TXT: render_txt,
        ReportFormat.JSON: render_json,
        ReportFormat.CSV: render_csv,
        ReportFormat.MSGPACK: render_msgpack,
    }
    return renderers[ReportFormat(fmt)](results)


def write_report(
    results: list[FileScanResult],
    output_path: Path,
    fmt: ReportFormat = ReportFormat.TXT,
) -> ReportFormat:
    """Write a report file.

    A .json, .csv, .txt or .msgpack suffix on output_path overrides fmt.

    Returns:
        The format actually written
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lower().lstrip(".")
    if suffix in {f.value for f in ReportFormat}:
        fmt = ReportFormat(suffix)
    else:
        fmt = ReportFormat(fmt)

    content = render_report(results, fmt)
    if isinstance(content, bytes):
        output_path.write_bytes(content)
    else:
        output_path.write_text(content, encoding="utf-8")
    return fmt


def print_console_report(
    results: list[FileScanResult], verbose: bool = False, file: TextIO | None = None
) -> None:
    """Print scan results grouped into protected, readable and errored files."""
    out = file if file is not None else sys.stdout
    print("\nScan Results:", file=out)
    print("-" * 60, file=out)

    if not results:
        print("No eBook files found.", file=out)
        return

    protected = [r for r in results if r.is_protected and not r.has_error]
    readable = [r for r in results if not r.is_protected and not r.has_error]
    errored = [r for r in results if r.has_error]

    if protected:
        print("DRM-Protected Files:", file=out)
        for i, r in enumerate(protected, start=1):
            print(f"  {i}. {r.file_name}", file=out)
            print(f"     Path: {r.path}", file=out)
            print(f"     Size: {format_file_size(r.file_size)}", file=out)
            print(f"     Category: {r.result.category.value}", file=out)
            if r.result.reason:
                print(f"     Reason: {r.result.reason}", file=out)
            print("", file=out)

    if readable:
        print(f"Readable Files: {len(readable)}", file=out)
        if verbose:
            for i, r in enumerate(readable, start=1):
                print(
                    f"  {i}. {r.file_name} ({format_file_size(r.file_size)})", file=out
                )
        print("", file=out)

    if errored:
        print("Files with Errors:", file=out)
        for i, r in enumerate(errored, start=1):
            print(f"  {i}. {r.file_name}", file=out)
            print(f"     Error: {r.error}", file=out)
            print("", file=out)
