"""
PalmDB / MOBI / EXTH type definitions.

All MOBI structures are big-endian. Only the fields needed to locate DRM
evidence are decoded; nothing here interprets what the values mean.

Layout of the start of a MOBI/AZW file:

    0     PalmDB header (78 bytes), record count at 76
    78    record info list, first entry = offset of record 0 (u32)
    rec0  PalmDOC header (16 bytes) followed by the MOBI header:
            +16  "MOBI"
            +20  MOBI header length
            +128 EXTH flags (0x40 = EXTH block follows the MOBI header)
            +168 DRM offset, +172 DRM count, +176 DRM size, +180 DRM flags
    rec0 + 16 + header length: EXTH block

References:
- https://wiki.mobileread.com/wiki/MOBI
"""

import struct
from dataclasses import dataclass
from typing import ClassVar

# =============================================================================
# Constants
# =============================================================================

# Reads
MOBI_PROBE_SIZE = 1024  # Initial read covering the PalmDB header
MOBI_HEADER_WINDOW = 232  # Bytes of record 0 holding every field we decode

# PalmDB header offsets
PALMDB_HEADER_SIZE = 78
PALMDB_NUM_RECORDS_OFFSET = 76
PALMDB_FIRST_RECORD_OFFSET = 78

# Record 0 offsets (PalmDOC header + MOBI header)
PALMDOC_HEADER_SIZE = 16
MOBI_MAGIC = b"MOBI"
MOBI_MAGIC_OFFSET = 16
MOBI_HEADER_LENGTH_OFFSET = 20
MOBI_EXTH_FLAGS_OFFSET = 128
MOBI_DRM_OFFSET_OFFSET = 168
MOBI_DRM_COUNT_OFFSET = 172
MOBI_DRM_SIZE_OFFSET = 176
MOBI_DRM_FLAGS_OFFSET = 180

EXTH_FLAG = 0x40

# Field value meaning "not present"
NO_VALUE = 0xFFFFFFFF

# EXTH
EXTH_MAGIC = b"EXTH"
EXTH_HEADER_SIZE = 12
EXTH_RECORD_HEADER_SIZE = 8

# EXTH record types carrying DRM/lending metadata
EXTH_CLIPPING_LIMIT = 401
EXTH_PUBLISHER_LIMIT = 402
EXTH_UNKNOWN_403 = 403
EXTH_TTS_FLAG = 404
EXTH_RENT_FLAG = 405
EXTH_RENT_EXPIRATION = 406
EXTH_UNKNOWN_407 = 407
EXTH_CDE_TYPE = 501

EXTH_RECORD_NAMES = {
    EXTH_CLIPPING_LIMIT: "Clipping limit",
    EXTH_PUBLISHER_LIMIT: "Publisher limit",
    EXTH_UNKNOWN_403: "Unknown DRM field 403",
    EXTH_TTS_FLAG: "Text-to-speech flag",
    EXTH_RENT_FLAG: "Rental/borrow flag",
    EXTH_RENT_EXPIRATION: "Rental expiration date",
    EXTH_UNKNOWN_407: "Unknown DRM field 407",
    EXTH_CDE_TYPE: "Content type (cdeType)",
}


def exth_record_name(record_type: int) -> str:
    """Human label for an EXTH record type."""
    return EXTH_RECORD_NAMES.get(record_type, f"EXTH record {record_type}")


# =============================================================================
# Structures
# =============================================================================


@dataclass(frozen=True)
class MobiHeaderInfo:
    """DRM-relevant fields decoded from a MOBI/AZW file.

    A snapshot taken once per detection call; files may change between
    scans, so it is never cached.
    """

    num_records: int
    first_record_offset: int
    mobi_header_length: int
    drm_offset: int
    drm_count: int
    drm_size: int
    drm_flags: int
    has_exth: bool

    @classmethod
    def from_bytes(
        cls, palmdb: bytes | bytearray, record0: bytes | bytearray
    ) -> "MobiHeaderInfo":
        """Decode from the PalmDB header and the record 0 window.

        Raises:
            ValueError: If either buffer is too short or the MOBI magic is wrong
        """
        if len(palmdb) < PALMDB_FIRST_RECORD_OFFSET + 4:
            raise ValueError(
                f"Data too short for PalmDB header: {len(palmdb)} < "
                f"{PALMDB_FIRST_RECORD_OFFSET + 4}"
            )
        if len(record0) < MOBI_HEADER_WINDOW:
            raise ValueError(
                f"Data too short for MOBI header: {len(record0)} < {MOBI_HEADER_WINDOW}"
            )
        magic = record0[MOBI_MAGIC_OFFSET : MOBI_MAGIC_OFFSET + 4]
        if magic != MOBI_MAGIC:
            raise ValueError(f"Invalid MOBI magic: {bytes(magic)!r}")

        (num_records,) = struct.unpack_from(">H", palmdb, PALMDB_NUM_RECORDS_OFFSET)
        (first_record_offset,) = struct.unpack_from(
            ">I", palmdb, PALMDB_FIRST_RECORD_OFFSET
        )
        (header_length,) = struct.unpack_from(">I", record0, MOBI_HEADER_LENGTH_OFFSET)
        (exth_flags,) = struct.unpack_from(">I", record0, MOBI_EXTH_FLAGS_OFFSET)
        drm_offset, drm_count, drm_size, drm_flags = struct.unpack_from(
            ">IIII", record0, MOBI_DRM_OFFSET_OFFSET
        )

        return cls(
            num_records=num_records,
            first_record_offset=first_record_offset,
            mobi_header_length=header_length,
            drm_offset=drm_offset,
            drm_count=drm_count,
            drm_size=drm_size,
            drm_flags=drm_flags,
            has_exth=(exth_flags & EXTH_FLAG) != 0,
        )

    @property
    def exth_offset(self) -> int:
        """File offset of the EXTH block (follows the MOBI header)."""
        return self.first_record_offset + self.mobi_header_length + PALMDOC_HEADER_SIZE


@dataclass(frozen=True)
class ExthHeader:
    """EXTH block header.

    Header format (12 bytes):
      Offset | Size | Field
      -------|------|------
      0x00   | 4    | Magic ("EXTH")
      0x04   | 4    | Block length including this header
      0x08   | 4    | Record count
    """

    length: int
    record_count: int

    STRUCT_FMT: ClassVar[str] = ">4sII"
    SIZE: ClassVar[int] = EXTH_HEADER_SIZE

    @classmethod
    def from_bytes(cls, data: bytes | bytearray, offset: int = 0) -> "ExthHeader":
        if len(data) < offset + cls.SIZE:
            raise ValueError(
                f"Data too short for EXTH header: {len(data)} < {offset + cls.SIZE}"
            )

        magic, length, record_count = struct.unpack_from(cls.STRUCT_FMT, data, offset)
        if magic != EXTH_MAGIC:
            raise ValueError(f"Invalid EXTH magic: {magic!r}")

        return cls(length=length, record_count=record_count)

    def to_bytes(self) -> bytes:
        return struct.pack(self.STRUCT_FMT, EXTH_MAGIC, self.length, self.record_count)


@dataclass(frozen=True)
class ExthRecord:
    """One EXTH metadata record."""

    type: int
    payload: bytes

    def to_bytes(self) -> bytes:
        return (
            struct.pack(">II", self.type, len(self.payload) + EXTH_RECORD_HEADER_SIZE)
            + self.payload
        )


def iter_exth_records(data: bytes | bytearray, record_count: int):
    """Walk the EXTH record stream.

    Records are (type u32, length u32, payload[length - 8]). A record is
    yielded only if its length exceeds the record header and it fits in the
    buffer; truncated or malformed records are skipped. The walk stops when
    record_count is exhausted or fewer than 8 bytes remain.

    Yields:
        ExthRecord for each well-formed record, in file order
    """
    offset = 0
    remaining = record_count
    while remaining > 0 and offset < len(data) - EXTH_RECORD_HEADER_SIZE:
        record_type, record_length = struct.unpack_from(">II", data, offset)

        if (
            record_length > EXTH_RECORD_HEADER_SIZE
            and offset + record_length <= len(data)
        ):
            yield ExthRecord(
                type=record_type,
                payload=bytes(
                    data[offset + EXTH_RECORD_HEADER_SIZE : offset + record_length]
                ),
            )

        if record_length == 0:
            # Would never advance
            break
        offset += record_length
        remaining -= 1
