"""
MOBI/AZW support for ebook-drm-check.

- types: PalmDB/MOBI/EXTH struct definitions and constants
- reader: fixed-offset header and EXTH readers
- analyzer: Amazon DRM heuristics
"""

from .types import (
    MobiHeaderInfo,
    ExthHeader,
    ExthRecord,
    NO_VALUE,
    EXTH_RECORD_NAMES,
    exth_record_name,
    iter_exth_records,
)
from .reader import (
    MobiHeaderError,
    read_mobi_header,
    read_exth_records,
)
from .analyzer import (
    CheckResult,
    DRM_EXTH_TYPES,
    check_header_fields,
    check_exth_records,
    analyze_mobi,
)

__all__ = [
    # Types
    "MobiHeaderInfo",
    "ExthHeader",
    "ExthRecord",
    "NO_VALUE",
    "EXTH_RECORD_NAMES",
    "exth_record_name",
    "iter_exth_records",
    # Reader
    "MobiHeaderError",
    "read_mobi_header",
    "read_exth_records",
    # Analyzer
    "CheckResult",
    "DRM_EXTH_TYPES",
    "check_header_fields",
    "check_exth_records",
    "analyze_mobi",
]
