"""
Adobe DRM and structural checks for EPUB (ZIP) containers.

Rules are evaluated in priority order and the first match wins:

1. META-INF/encryption.xml present            -> ADOBE_DRM
2. META-INF/rights.xml present                -> ADOBE_DRM
3. entries that look like DRM artifacts       -> ADOBE_DRM
4. META-INF/container.xml missing             -> STRUCTURALLY_INVALID
5. container.xml empty                        -> STRUCTURALLY_INVALID
6. container.xml without EPUB markers         -> STRUCTURALLY_INVALID
7. container.xml without an OPF full-path     -> STRUCTURALLY_INVALID
8. referenced OPF entry missing               -> STRUCTURALLY_INVALID
9. otherwise                                  -> NO_DRM

Archive access goes through zipfile; the analyzer only lists entries and
reads container.xml.
"""

import logging
import re
import zipfile
import zlib
from pathlib import Path

from ..result import DetectionResult, DrmCategory

logger = logging.getLogger(__name__)

ENCRYPTION_XML = "META-INF/encryption.xml"
RIGHTS_XML = "META-INF/rights.xml"
CONTAINER_XML = "META-INF/container.xml"

CONTAINER_NAMESPACE = "urn:oasis:names:tc:opendocument:xmlns:container"
OPF_MEDIA_TYPE = "application/oebps-package+xml"
OPF_PATH_RE = re.compile(r"""full-path=["']([^"']+\.opf)["']""")

SUSPICIOUS_NAME_PARTS = (".acsm", "drm", "license")
SUSPICIOUS_NAME_SUFFIX = ".epub.acsm"

# Error text from zipfile that marks an encrypted or damaged container
ARCHIVE_CORRUPTION_PATTERNS = (
    "not a zip file",
    "bad magic number",
    "invalid signature",
    "encrypted",
    "central directory",
    "truncated",
    "malformed",
)

# Errors zipfile raises while decompressing or decrypting an entry
ENTRY_READ_ERRORS = (
    zipfile.BadZipFile,
    RuntimeError,
    NotImplementedError,
    EOFError,
    zlib.error,
)


def is_archive_corruption_error(error: Exception) -> bool:
    """Check if an archive error message matches a known corruption pattern."""
    message = str(error).lower()
    return any(pattern in message for pattern in ARCHIVE_CORRUPTION_PATTERNS)


def is_suspicious_entry(name: str) -> bool:
    """Check if an archive entry name looks like a DRM artifact."""
    lowered = name.lower()
    return (
        any(part in lowered for part in SUSPICIOUS_NAME_PARTS)
        or lowered.endswith(SUSPICIOUS_NAME_SUFFIX)
    )


def find_opf_path(container_xml: str) -> str | None:
    """Extract the OPF rootfile path from container.xml text."""
    match = OPF_PATH_RE.search(container_xml)
    return match.group(1) if match else None


def _invalid(reason: str, **evidence) -> DetectionResult:
    return DetectionResult(
        category=DrmCategory.STRUCTURALLY_INVALID, reason=reason, evidence=evidence
    )


def analyze_archive(archive: zipfile.ZipFile) -> DetectionResult:
    """Apply the EPUB rules to an open archive.

    Args:
        archive: Open ZipFile

    Returns:
        DetectionResult for the first rule that matches
    """
    names = archive.namelist()
    name_set = set(names)

    if ENCRYPTION_XML in name_set:
        return DetectionResult(
            category=DrmCategory.ADOBE_DRM,
            reason="Adobe DRM (encryption.xml found)",
            evidence={"encryption_file": True},
        )

    if RIGHTS_XML in name_set:
        return DetectionResult(
            category=DrmCategory.ADOBE_DRM,
            reason="Adobe DRM (rights.xml found)",
            evidence={"rights_file": True},
        )

    suspicious = [name for name in names if is_suspicious_entry(name)]
    if suspicious:
        return DetectionResult(
            category=DrmCategory.ADOBE_DRM,
            reason="Suspicious DRM files detected",
            evidence={"suspicious_files": suspicious},
        )

    if CONTAINER_XML not in name_set:
        return _invalid("Missing container.xml: standard EPUB container.xml not found")

    try:
        raw = archive.read(CONTAINER_XML)
    except ENTRY_READ_ERRORS as e:
        return _invalid(f"Unreadable container.xml: {e}", error=str(e))

    if not raw:
        return _invalid("Empty container.xml: container.xml exists but is empty")

    content = raw.decode("utf-8", errors="replace")
    if CONTAINER_NAMESPACE not in content and OPF_MEDIA_TYPE not in content:
        return _invalid(
            "Invalid container.xml: container.xml does not contain standard EPUB metadata"
        )

    opf_path = find_opf_path(content)
    if opf_path is None:
        return _invalid("Invalid container.xml: does not reference an OPF file")

    if opf_path not in name_set:
        return _invalid(
            f"Missing OPF file: referenced OPF file {opf_path} not found",
            opf_path=opf_path,
        )

    return DetectionResult(
        category=DrmCategory.NO_DRM,
        evidence={"container_valid": True, "opf_path": opf_path, "opf_exists": True},
    )


def analyze_epub(path: Path) -> DetectionResult:
    """Check an EPUB file for Adobe DRM and structural damage.

    Args:
        path: Path to a file already known to carry a ZIP signature

    Returns:
        DetectionResult from analyze_archive, or ADOBE_DRM if the archive
        cannot be opened because it is encrypted or corrupted

    Raises:
        zipfile.BadZipFile: If opening fails for an unrecognized reason
        OSError: If the file cannot be read
    """
    try:
        archive = zipfile.ZipFile(path)
    except zipfile.BadZipFile as e:
        if not is_archive_corruption_error(e):
            raise
        logger.debug("%s: archive cannot be opened: %s", path, e)
        return DetectionResult(
            category=DrmCategory.ADOBE_DRM,
            reason="Encrypted or corrupted EPUB",
            evidence={"error": str(e)},
        )

    with archive:
        return analyze_archive(archive)
