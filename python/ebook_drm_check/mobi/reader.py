"""
Fixed-offset readers for MOBI/AZW files.

These functions open the file, read a fixed window, close it, and decode
structure with the types in mobi.types. They never judge whether the
values indicate DRM; that is the analyzer's job.
"""

import logging
from pathlib import Path

from .types import (
    MOBI_PROBE_SIZE,
    MOBI_HEADER_WINDOW,
    PALMDB_FIRST_RECORD_OFFSET,
    MOBI_MAGIC,
    MOBI_MAGIC_OFFSET,
    EXTH_HEADER_SIZE,
    ExthHeader,
    MobiHeaderInfo,
    iter_exth_records,
)

logger = logging.getLogger(__name__)


class MobiHeaderError(ValueError):
    """Raised when a MOBI/AZW file fails a required structural check."""

    pass


def read_mobi_header(path: Path) -> MobiHeaderInfo:
    """Read the DRM-relevant MOBI header fields from a file.

    Args:
        path: Path to a MOBI/AZW file

    Returns:
        Decoded MobiHeaderInfo

    Raises:
        MobiHeaderError: If the file is too small or not a MOBI book
        OSError: If the file cannot be read
    """
    with open(path, "rb") as f:
        palmdb = f.read(MOBI_PROBE_SIZE)
        if len(palmdb) < MOBI_HEADER_WINDOW:
            raise MobiHeaderError("File too small to be valid MOBI")

        first_record_offset = int.from_bytes(
            palmdb[PALMDB_FIRST_RECORD_OFFSET : PALMDB_FIRST_RECORD_OFFSET + 4], "big"
        )
        f.seek(first_record_offset)
        record0 = f.read(MOBI_HEADER_WINDOW)

    if len(record0) < MOBI_HEADER_WINDOW:
        raise MobiHeaderError("Cannot read MOBI header")

    if record0[MOBI_MAGIC_OFFSET : MOBI_MAGIC_OFFSET + 4] != MOBI_MAGIC:
        raise MobiHeaderError("Invalid MOBI signature")

    info = MobiHeaderInfo.from_bytes(palmdb, record0)
    logger.debug(
        "%s: MOBI header at 0x%x, length %d, EXTH=%s",
        path,
        info.first_record_offset,
        info.mobi_header_length,
        info.has_exth,
    )
    return info


def read_exth_records(path: Path, exth_offset: int) -> dict[int, bytes]:
    """Read the EXTH metadata records of a MOBI/AZW file.

    Args:
        path: Path to a MOBI/AZW file
        exth_offset: File offset of the EXTH block

    Returns:
        Mapping of record type to payload. When a type repeats, the last
        occurrence wins.

    Raises:
        MobiHeaderError: If the EXTH header is missing or malformed
        OSError: If the file cannot be read
    """
    with open(path, "rb") as f:
        f.seek(exth_offset)
        header_bytes = f.read(EXTH_HEADER_SIZE)

        try:
            header = ExthHeader.from_bytes(header_bytes)
        except ValueError as e:
            raise MobiHeaderError("Invalid EXTH signature") from e

        if header.length < EXTH_HEADER_SIZE:
            raise MobiHeaderError(f"Invalid EXTH header length: {header.length}")

        data = f.read(header.length - EXTH_HEADER_SIZE)

    records = {}
    for record in iter_exth_records(data, header.record_count):
        records[record.type] = record.payload

    logger.debug(
        "%s: EXTH declares %d record(s), decoded types %s",
        path,
        header.record_count,
        sorted(records),
    )
    return records
