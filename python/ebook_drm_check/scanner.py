"""
Directory scanning with a bounded number of concurrent detections.

Each detection opens and closes its own file handles. At most
ScanConfig.concurrency files are open at once, and results come back in
path order.
"""

import argparse
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .detector import check_drm
from .format_detect import SUPPORTED_EXTENSIONS, is_ebook_candidate
from .result import DetectionResult

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 10
MAX_CONCURRENCY = 64

ProgressCallback = Callable[[int, int, Path], None]


@dataclass(frozen=True)
class ScanConfig:
    """Scanner configuration.

    Attributes:
        recursive: Descend into subdirectories
        concurrency: Files checked at once, 1..MAX_CONCURRENCY
        verbose: Log each protected file and error as it is found
        extensions: Lower-cased suffixes (with dot) of candidate files
    """

    recursive: bool = True
    concurrency: int = DEFAULT_CONCURRENCY
    verbose: bool = False
    extensions: frozenset[str] = SUPPORTED_EXTENSIONS

    def __post_init__(self):
        if not 1 <= self.concurrency <= MAX_CONCURRENCY:
            raise ValueError(
                f"concurrency must be between 1 and {MAX_CONCURRENCY}, "
                f"got {self.concurrency}"
            )
        if not self.extensions:
            raise ValueError("extensions must not be empty")

    @staticmethod
    def configure_argparse(p: argparse.ArgumentParser):
        p.add_argument(
            "--no-recursive",
            dest="recursive",
            action="store_false",
            help="Only scan the top-level directory",
        )
        p.add_argument(
            "--concurrency",
            "-c",
            type=int,
            default=DEFAULT_CONCURRENCY,
            help=f"Number of concurrent file checks (1-{MAX_CONCURRENCY}, "
            f"default {DEFAULT_CONCURRENCY})",
        )

    @staticmethod
    def from_args(args: argparse.Namespace) -> "ScanConfig":
        return ScanConfig(
            recursive=args.recursive,
            concurrency=args.concurrency,
            verbose=getattr(args, "verbose", False),
        )


@dataclass
class FileScanResult:
    """Detection outcome for one scanned file."""

    path: Path
    file_size: int = 0
    result: DetectionResult | None = None
    error: str | None = None
    check_time: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @property
    def file_name(self) -> str:
        return self.path.name

    @property
    def is_protected(self) -> bool:
        return self.result is not None and self.result.is_protected

    @property
    def has_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        verdict = self.result.to_dict() if self.result is not None else None
        return {
            "file_name": self.file_name,
            "file_path": str(self.path),
            "file_size": self.file_size,
            "is_protected": self.is_protected,
            "category": verdict["category"] if verdict else None,
            "reason": verdict["reason"] if verdict else None,
            "evidence": verdict["evidence"] if verdict else {},
            "error": self.error,
            "check_time": self.check_time,
        }


def find_ebook_files(directory: Path, config: ScanConfig | None = None) -> list[Path]:
    """Collect candidate eBook files under a directory.

    Args:
        directory: Directory to search
        config: Scan configuration (recursion and extensions)

    Returns:
        Sorted list of regular files whose suffix is one of config.extensions.
        Directories that cannot be listed are skipped with a warning.
    """
    config = config or ScanConfig()
    found: list[Path] = []

    def on_error(e: OSError):
        logger.warning("Cannot access directory %s: %s", e.filename, e.strerror)

    for root, dirs, files in os.walk(directory, onerror=on_error):
        if not config.recursive:
            dirs.clear()
        for name in files:
            path = Path(root) / name
            if is_ebook_candidate(path, config.extensions) and path.is_file():
                found.append(path)

    return sorted(found)


def scan_file(path: Path) -> FileScanResult:
    """Stat and check a single file."""
    scan = FileScanResult(path=path)
    try:
        scan.file_size = path.stat().st_size
    except OSError as e:
        scan.error = str(e)
        return scan

    scan.result = check_drm(path)
    return scan


def scan_directory(
    directory: Path,
    config: ScanConfig | None = None,
    progress: ProgressCallback | None = None,
) -> list[FileScanResult]:
    """Check every candidate eBook file under a directory.

    Args:
        directory: Directory to scan
        config: Scan configuration
        progress: Called as progress(completed, total, path) after each file

    Returns:
        One FileScanResult per candidate file, in path order

    Raises:
        NotADirectoryError: If directory does not exist or is not a directory
    """
    config = config or ScanConfig()
    directory = Path(directory)
    if not directory.is_dir():
        raise NotADirectoryError(f"{directory} is not a directory")

    paths = find_ebook_files(directory, config)
    logger.debug("Found %d candidate file(s) under %s", len(paths), directory)
    if not paths:
        return []

    results: list[FileScanResult] = []
    with ThreadPoolExecutor(max_workers=config.concurrency) as pool:
        for completed, scan in enumerate(pool.map(scan_file, paths), start=1):
            if config.verbose:
                if scan.has_error:
                    logger.warning("Error checking %s: %s", scan.file_name, scan.error)
                elif scan.is_protected:
                    logger.info(
                        "DRM detected: %s (%s)", scan.file_name, scan.result.reason
                    )
            if progress is not None:
                progress(completed, len(paths), scan.path)
            results.append(scan)

    return results
