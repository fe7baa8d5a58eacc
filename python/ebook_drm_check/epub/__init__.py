"""
EPUB support for ebook-drm-check.

- analyzer: Adobe DRM markers and container structure checks
"""

from .analyzer import (
    ENCRYPTION_XML,
    RIGHTS_XML,
    CONTAINER_XML,
    analyze_archive,
    analyze_epub,
    find_opf_path,
    is_archive_corruption_error,
    is_suspicious_entry,
)

__all__ = [
    "ENCRYPTION_XML",
    "RIGHTS_XML",
    "CONTAINER_XML",
    "analyze_archive",
    "analyze_epub",
    "find_opf_path",
    "is_archive_corruption_error",
    "is_suspicious_entry",
]
