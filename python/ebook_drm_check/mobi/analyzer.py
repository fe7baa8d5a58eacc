"""
Amazon DRM heuristics for MOBI/AZW files.

Two independent checks feed the verdict:
- Header-field check: DRM offset/count/size/flags from the MOBI header
- EXTH-record check: DRM/lending metadata records in the EXTH block

Benign books also carry these fields (book-type tags, zero padding), so
both checks apply suppression rules.
"""

from dataclasses import dataclass, field
from typing import Any

from ..result import DetectionResult, DrmCategory
from .types import (
    NO_VALUE,
    EXTH_CLIPPING_LIMIT,
    EXTH_UNKNOWN_407,
    EXTH_CDE_TYPE,
    MobiHeaderInfo,
    exth_record_name,
)

DRM_FLAG_ENCRYPTED = 0x01

# DRM key blobs are larger than this; smaller sizes are header noise
MIN_DRM_KEY_SIZE = 32
# and smaller than this; larger sizes are unrelated data
MAX_DRM_KEY_SIZE = 10000

# Strict record list: 401-407 and 501. The loose 400-450 range is not used.
DRM_EXTH_TYPES = frozenset(range(EXTH_CLIPPING_LIMIT, EXTH_UNKNOWN_407 + 1)) | {
    EXTH_CDE_TYPE
}

# cdeType values that only name the book type
BOOK_TYPE_MARKERS = frozenset({"d", "EBOK", "PDOC"})

# cdeType payloads shorter than this are book-type tags, not key data
MIN_CDE_TYPE_DRM_LENGTH = 10
# 401-407 payloads shorter than this are limits/flags, not key data
MIN_DRM_FIELD_LENGTH = 8
# Bytes below this are control characters (binary padding)
FIRST_PRINTABLE_BYTE = 32

# Characters of decoded payload kept in evidence
EVIDENCE_PREVIEW_CHARS = 50


@dataclass
class CheckResult:
    """Outcome of one analyzer check."""

    drm_found: bool = False
    reason: str = ""
    evidence: dict[str, Any] = field(default_factory=dict)


def check_header_fields(info: MobiHeaderInfo) -> CheckResult:
    """Check the MOBI header DRM fields.

    The raw field values are always recorded as evidence.
    """
    result = CheckResult(
        evidence={
            "drm_offset": info.drm_offset,
            "drm_count": info.drm_count,
            "drm_size": info.drm_size,
            "drm_flags": info.drm_flags,
        }
    )

    if info.drm_offset not in (0, NO_VALUE) and info.drm_count > 0:
        result.drm_found = True
        result.reason = "DRM offset present"
    elif info.drm_flags & DRM_FLAG_ENCRYPTED:
        result.drm_found = True
        result.reason = "DRM flags set"
    elif MIN_DRM_KEY_SIZE < info.drm_size < MAX_DRM_KEY_SIZE:
        result.drm_found = True
        result.reason = "DRM size present"

    return result


def _is_benign_exth_record(record_type: int, payload: bytes, text: str) -> bool:
    """Return True if a DRM-typed EXTH record carries no DRM evidence."""
    if not text.strip():
        return True
    if text in BOOK_TYPE_MARKERS:
        return True
    if all(b == 0 for b in payload):
        return True
    if record_type == EXTH_CDE_TYPE and len(payload) < MIN_CDE_TYPE_DRM_LENGTH:
        return True
    if EXTH_CLIPPING_LIMIT <= record_type <= EXTH_UNKNOWN_407:
        if len(payload) < MIN_DRM_FIELD_LENGTH:
            return True
        if all(b == 0 or b < FIRST_PRINTABLE_BYTE for b in payload):
            return True
    return False


def check_exth_records(records: dict[int, bytes]) -> CheckResult:
    """Check EXTH records for DRM metadata.

    Args:
        records: EXTH record type -> payload

    Returns:
        CheckResult; evidence lists every record that survived suppression
    """
    result = CheckResult(evidence={"exth_record_types": sorted(records)})

    drm_records = []
    for record_type in sorted(records):
        if record_type not in DRM_EXTH_TYPES:
            continue

        payload = records[record_type]
        text = payload.decode("utf-8", errors="replace")
        if _is_benign_exth_record(record_type, payload, text):
            continue

        drm_records.append(
            {
                "type": record_type,
                "name": exth_record_name(record_type),
                "size": len(payload),
                "content": text[:EVIDENCE_PREVIEW_CHARS],
            }
        )

    if drm_records:
        types = ", ".join(str(r["type"]) for r in drm_records)
        result.drm_found = True
        result.reason = f"EXTH records ({types})"
        result.evidence["drm_records"] = drm_records

    return result


def analyze_mobi(
    info: MobiHeaderInfo, records: dict[int, bytes] | None = None
) -> DetectionResult:
    """Combine the header-field and EXTH checks into a verdict.

    The first check that flags DRM supplies the reason; evidence from both
    checks is kept.

    Args:
        info: Decoded MOBI header
        records: EXTH records, or None if the book has no EXTH block

    Returns:
        AMAZON_DRM if either check flags DRM, NO_DRM otherwise
    """
    checks = [check_header_fields(info)]
    if records is not None:
        checks.append(check_exth_records(records))

    result = DetectionResult(evidence={"has_exth": info.has_exth})
    for check in checks:
        result.evidence.update(check.evidence)
        if check.drm_found and result.category is DrmCategory.NO_DRM:
            result.category = DrmCategory.AMAZON_DRM
            result.reason = f"Amazon DRM ({check.reason})"

    return result
