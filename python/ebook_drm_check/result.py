"""
Detection result types shared by the EPUB and MOBI analyzers.

DetectionResult is the single verdict shape produced for every file. Each
analysis stage records its supporting facts under named evidence keys:

    format              container format chosen by the sniffer (all results)
    extension           file extension (UNSUPPORTED_FORMAT)
    error               raw error text (archive failures, ACCESS_ERROR)
    error_type          exception class name (ACCESS_ERROR)
    encryption_file     META-INF/encryption.xml present (EPUB)
    rights_file         META-INF/rights.xml present (EPUB)
    suspicious_files    entry names that look like DRM artifacts (EPUB)
    container_valid     container.xml passed all checks (EPUB)
    opf_path            OPF path referenced by container.xml (EPUB)
    opf_exists          referenced OPF entry is in the archive (EPUB)
    drm_offset, drm_count, drm_size, drm_flags
                        raw MOBI header DRM fields (MOBI/AZW)
    has_exth            EXTH flag from the MOBI header (MOBI/AZW)
    exth_record_types   EXTH record type codes found (MOBI/AZW)
    drm_records         EXTH records treated as DRM evidence (MOBI/AZW)
    exth_error          EXTH block could not be parsed (MOBI/AZW)

Evidence is diagnostic only and never drives control flow.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DrmCategory(Enum):
    """Verdict category for a single file."""

    NO_DRM = "NoDRM"
    ADOBE_DRM = "AdobeDRM"
    AMAZON_DRM = "AmazonDRM"
    STRUCTURALLY_INVALID = "StructurallyInvalid"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    ACCESS_ERROR = "AccessError"


@dataclass
class DetectionResult:
    """Verdict for one file.

    is_protected is derived from the category: only NO_DRM is readable.
    Anything that prevents confirming the file is readable counts as
    protected.
    """

    category: DrmCategory = DrmCategory.NO_DRM
    reason: str = ""
    evidence: dict[str, Any] = field(default_factory=dict)

    @property
    def is_protected(self) -> bool:
        return self.category is not DrmCategory.NO_DRM

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON/MessagePack friendly dictionary."""
        return {
            "is_protected": self.is_protected,
            "category": self.category.value,
            "reason": self.reason,
            "evidence": _plain(self.evidence),
        }

    def __str__(self) -> str:
        if self.is_protected:
            return f"PROTECTED [{self.category.value}] {self.reason}"
        return f"READABLE [{self.category.value}]"


def _plain(value: Any) -> Any:
    """Recursively convert evidence values to plain serializable types."""
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, Enum):
        return value.value
    return value
