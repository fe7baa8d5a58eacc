"""
Format-agnostic DRM detection.

check_drm() sniffs the container format and dispatches to the EPUB or
MOBI analyzer:

    from ebook_drm_check import check_drm

    result = check_drm(Path("book.azw3"))
    if result.is_protected:
        print(result.category, result.reason)

Anything that prevents confirming a file is readable is reported as
protected. check_drm() never raises; unexpected errors become
ACCESS_ERROR results.
"""

import logging
import stat
from pathlib import Path

from .format_detect import ContainerFormat, detect_container_format, is_valid_zip
from .result import DetectionResult, DrmCategory

logger = logging.getLogger(__name__)


def _ensure_readable_file(path: Path) -> None:
    """Raise OSError unless path is a regular file that can be opened."""
    if not stat.S_ISREG(path.stat().st_mode):
        raise OSError(f"Not a regular file: {path}")
    with open(path, "rb"):
        pass


def _check_epub(path: Path) -> DetectionResult:
    from .epub.analyzer import analyze_epub

    if not is_valid_zip(path):
        return DetectionResult(
            category=DrmCategory.STRUCTURALLY_INVALID,
            reason="Invalid ZIP structure: file is not a valid ZIP archive",
        )
    return analyze_epub(path)


def _check_mobi(path: Path) -> DetectionResult:
    from .mobi.reader import MobiHeaderError, read_mobi_header, read_exth_records
    from .mobi.analyzer import analyze_mobi

    try:
        info = read_mobi_header(path)
    except MobiHeaderError as e:
        return DetectionResult(category=DrmCategory.STRUCTURALLY_INVALID, reason=str(e))

    records = None
    exth_error = None
    if info.has_exth:
        try:
            records = read_exth_records(path, info.exth_offset)
        except MobiHeaderError as e:
            exth_error = str(e)
            logger.debug("%s: EXTH block at 0x%x ignored: %s", path, info.exth_offset, e)

    result = analyze_mobi(info, records)
    if exth_error is not None:
        result.evidence["exth_error"] = exth_error
    return result


def check_drm(path: Path) -> DetectionResult:
    """Decide whether an eBook file is DRM protected.

    Args:
        path: Path to an EPUB, MOBI, AZW3 or AZW file

    Returns:
        DetectionResult. Unsupported formats give UNSUPPORTED_FORMAT,
        files that fail structural checks give STRUCTURALLY_INVALID, and
        I/O or unexpected errors give ACCESS_ERROR.
    """
    path = Path(path)
    try:
        _ensure_readable_file(path)
        fmt = detect_container_format(path)

        if fmt is ContainerFormat.UNKNOWN:
            result = DetectionResult(
                category=DrmCategory.UNSUPPORTED_FORMAT,
                reason="Unsupported or corrupted file format",
                evidence={"extension": path.suffix.lower()},
            )
        elif fmt is ContainerFormat.EPUB:
            result = _check_epub(path)
        else:
            result = _check_mobi(path)
    except Exception as e:
        logger.warning("Cannot check %s: %s", path, e)
        return DetectionResult(
            category=DrmCategory.ACCESS_ERROR,
            reason=str(e),
            evidence={"error": str(e), "error_type": type(e).__name__},
        )

    result.evidence["format"] = fmt.value
    logger.debug("%s: %s", path, result)
    return result
