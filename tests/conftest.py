import pytest
import pathlib

from ebook_test_utils import build_epub, build_mobi, exth_block


# =============================================================================
# Synthetic book fixtures
# =============================================================================
#
# See tests/ebook_test_utils.py for the layouts these builders produce.


@pytest.fixture
def clean_epub(tmp_path: pathlib.Path) -> pathlib.Path:
    """Minimal valid EPUB with no DRM markers."""
    return build_epub(tmp_path / "valid-book.epub")


@pytest.fixture
def adobe_epub(tmp_path: pathlib.Path) -> pathlib.Path:
    """Otherwise valid EPUB carrying META-INF/encryption.xml."""
    return build_epub(
        tmp_path / "drm-protected.epub",
        extra={"META-INF/encryption.xml": "<encryption/>"},
    )


@pytest.fixture
def clean_mobi(tmp_path: pathlib.Path) -> pathlib.Path:
    """MOBI with the no-DRM sentinel offset and a benign EXTH block."""
    return build_mobi(
        tmp_path / "valid-book.mobi",
        exth=exth_block([(100, b"Test Author"), (501, b"EBOK")]),
    )


@pytest.fixture
def drm_mobi(tmp_path: pathlib.Path) -> pathlib.Path:
    """MOBI whose header declares a DRM record."""
    return build_mobi(
        tmp_path / "drm-protected.mobi",
        drm_offset=400,
        drm_count=1,
        drm_size=64,
        drm_flags=0x1,
    )


@pytest.fixture
def clean_azw3(tmp_path: pathlib.Path) -> pathlib.Path:
    """Topaz-identified AZW3 without DRM."""
    return build_mobi(tmp_path / "valid-book.azw3", ident=b"TPZ3TPZ3")


@pytest.fixture
def library_dir(
    tmp_path: pathlib.Path,
) -> pathlib.Path:
    """Directory tree mixing readable, protected and unrelated files.

    library/
        valid-book.epub        readable
        drm-protected.mobi     protected (header DRM)
        notes.txt              not a candidate
        nested/
            valid-book.azw3    readable
            encrypted.epub     protected (encryption.xml)
            renamed.epub       protected (not a ZIP)
    """
    root = tmp_path / "library"
    nested = root / "nested"
    nested.mkdir(parents=True)

    build_epub(root / "valid-book.epub")
    build_mobi(root / "drm-protected.mobi", drm_offset=400, drm_count=1)
    (root / "notes.txt").write_text("not a book")
    build_mobi(nested / "valid-book.azw3", ident=b"TPZ3TPZ3")
    build_epub(
        nested / "encrypted.epub",
        extra={"META-INF/encryption.xml": "<encryption/>"},
    )
    (nested / "renamed.epub").write_bytes(b"%PDF-1.7 not really an epub")
    return root
