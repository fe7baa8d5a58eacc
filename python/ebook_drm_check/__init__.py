"""
ebook-drm-check: DRM detection for EPUB, MOBI, AZW3 and AZW files.

The generic API sniffs the container format and dispatches to the
appropriate analyzer:

    from ebook_drm_check import check_drm

    result = check_drm(path)
    if result.is_protected:
        print(result.category.value, result.reason)

Batch scanning and reporting:

    from ebook_drm_check import ScanConfig, scan_directory, write_report

    results = scan_directory(directory, ScanConfig(concurrency=4))
    write_report(results, Path("report.json"))

For format-specific operations, use the subpackages directly:

    from ebook_drm_check.epub import analyze_epub
    from ebook_drm_check.mobi import read_mobi_header, analyze_mobi
"""

from .result import DetectionResult, DrmCategory
from .format_detect import (
    ContainerFormat,
    SUPPORTED_EXTENSIONS,
    detect_container_format,
    check_palmdoc_format,
    is_valid_zip,
    read_zip_magic,
)
from .detector import check_drm
from .scanner import (
    FileScanResult,
    ScanConfig,
    find_ebook_files,
    scan_directory,
    scan_file,
)
from .report import (
    ReportFormat,
    ScanSummary,
    format_file_size,
    print_console_report,
    render_report,
    summarize,
    write_report,
)

__all__ = [
    # Results
    "DetectionResult",
    "DrmCategory",
    # Format detection
    "ContainerFormat",
    "SUPPORTED_EXTENSIONS",
    "detect_container_format",
    "check_palmdoc_format",
    "is_valid_zip",
    "read_zip_magic",
    # Detection
    "check_drm",
    # Scanning
    "FileScanResult",
    "ScanConfig",
    "find_ebook_files",
    "scan_directory",
    "scan_file",
    # Reporting
    "ReportFormat",
    "ScanSummary",
    "format_file_size",
    "print_console_report",
    "render_report",
    "summarize",
    "write_report",
]
