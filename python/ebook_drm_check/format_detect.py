"""
eBook container format detection utilities.

This module decides whether a file is an EPUB (ZIP) or a PalmDOC based
MOBI/AZW3/AZW book, enabling the detector to dispatch to the correct
analyzer. The extension only selects which magic check runs; the magic
bytes are authoritative, since files are often renamed or truncated.
"""

import struct
from enum import Enum
from pathlib import Path


class ContainerFormat(str, Enum):
    """Container kind of an eBook file."""

    EPUB = "epub"
    MOBI = "mobi"
    AZW3 = "azw3"
    AZW = "azw"
    UNKNOWN = "unknown"


# ZIP signatures, as read little-endian from the first 4 bytes
ZIP_LOCAL_FILE_MAGIC = 0x04034B50  # PK\x03\x04
ZIP_EMPTY_ARCHIVE_MAGIC = 0x06054B50  # PK\x05\x06
ZIP_SPANNED_MAGIC = 0x08074B50  # PK\x07\x08
ZIP_MAGICS = frozenset(
    {ZIP_LOCAL_FILE_MAGIC, ZIP_EMPTY_ARCHIVE_MAGIC, ZIP_SPANNED_MAGIC}
)

# Returned when the magic cannot be read; matches no ZIP signature
INVALID_ZIP_MAGIC = 0

# PalmDB type/creator field
PALMDOC_PROBE_SIZE = 232
PALMDOC_MIN_SIZE = 78
PALMDOC_TYPE_OFFSET = 60
BOOKMOBI_IDENT = b"BOOKMOBI"
TOPAZ_IDENT = b"TPZ3TPZ3"
BOOK_TYPE = b"BOOK"

EPUB_EXTENSIONS = frozenset({".epub"})
MOBI_EXTENSIONS = frozenset({".mobi", ".azw3", ".azw"})
SUPPORTED_EXTENSIONS = EPUB_EXTENSIONS | MOBI_EXTENSIONS


def read_zip_magic(path: Path) -> int:
    """Read the first 4 bytes of a file as a little-endian integer.

    Args:
        path: Path to the file

    Returns:
        The magic value, or INVALID_ZIP_MAGIC if the file cannot be opened
        or holds fewer than 4 bytes
    """
    try:
        with open(path, "rb") as f:
            header = f.read(4)
    except OSError:
        return INVALID_ZIP_MAGIC

    if len(header) < 4:
        return INVALID_ZIP_MAGIC
    return struct.unpack("<I", header)[0]


def is_valid_zip(path: Path) -> bool:
    """Check if a file starts with one of the ZIP signatures."""
    return read_zip_magic(path) in ZIP_MAGICS


def check_palmdoc_format(path: Path) -> ContainerFormat:
    """Classify a PalmDOC database by its type/creator field.

    Args:
        path: Path to a .mobi/.azw3/.azw candidate

    Returns:
        MOBI for BOOKMOBI, AZW3 for TPZ3TPZ3, AZW for any other BOOK type,
        UNKNOWN otherwise (including unreadable files)
    """
    try:
        with open(path, "rb") as f:
            header = f.read(PALMDOC_PROBE_SIZE)
    except OSError:
        return ContainerFormat.UNKNOWN

    if len(header) < PALMDOC_MIN_SIZE:
        return ContainerFormat.UNKNOWN

    ident = header[PALMDOC_TYPE_OFFSET : PALMDOC_TYPE_OFFSET + 8]
    if ident == BOOKMOBI_IDENT:
        return ContainerFormat.MOBI
    if ident == TOPAZ_IDENT:
        return ContainerFormat.AZW3
    if ident[:4] == BOOK_TYPE:
        return ContainerFormat.AZW
    return ContainerFormat.UNKNOWN


def detect_container_format(path: Path) -> ContainerFormat:
    """Detect the container format of an eBook file.

    Args:
        path: Path to the file

    Returns:
        The confirmed ContainerFormat, or UNKNOWN when the extension is not
        supported or the magic check fails
    """
    ext = Path(path).suffix.lower()

    if ext in EPUB_EXTENSIONS:
        return ContainerFormat.EPUB if is_valid_zip(path) else ContainerFormat.UNKNOWN

    if ext in MOBI_EXTENSIONS:
        return check_palmdoc_format(path)

    return ContainerFormat.UNKNOWN


def is_ebook_candidate(
    path: Path, extensions: frozenset[str] = SUPPORTED_EXTENSIONS
) -> bool:
    """Check if a path has one of the given (lower-cased) eBook extensions."""
    return Path(path).suffix.lower() in extensions
