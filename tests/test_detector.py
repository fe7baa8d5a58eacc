"""Tests for the check_drm() orchestrator."""

import os
import zipfile
from pathlib import Path

import pytest

from ebook_drm_check import check_drm
from ebook_drm_check.mobi import reader as mobi_reader
from ebook_drm_check.result import DetectionResult, DrmCategory
from ebook_test_utils import build_epub, build_mobi, exth_block


class TestEpubDetection:
    def test_clean_epub(self, clean_epub: Path):
        result = check_drm(clean_epub)
        assert result.category is DrmCategory.NO_DRM
        assert result.is_protected is False
        assert result.evidence["format"] == "epub"
        assert result.evidence["opf_path"] == "OEBPS/content.opf"

    def test_adobe_epub(self, adobe_epub: Path):
        result = check_drm(adobe_epub)
        assert result.category is DrmCategory.ADOBE_DRM
        assert result.is_protected is True

    def test_epub_without_zip_magic_is_never_adobe(self, tmp_path: Path):
        f = tmp_path / "fake.epub"
        f.write_bytes(b"META-INF/encryption.xml" * 10)
        result = check_drm(f)
        assert result.category is DrmCategory.UNSUPPORTED_FORMAT
        assert result.is_protected is True

    def test_corrupted_epub(self, tmp_path: Path):
        f = tmp_path / "broken.epub"
        f.write_bytes(b"PK\x03\x04" + b"\x00" * 100)
        result = check_drm(f)
        assert result.category is DrmCategory.ADOBE_DRM
        assert result.reason == "Encrypted or corrupted EPUB"

    def test_unexpected_archive_error_is_access_error(
        self, clean_epub: Path, monkeypatch: pytest.MonkeyPatch
    ):
        def explode(*args, **kwargs):
            raise zipfile.BadZipFile("mystery failure")

        monkeypatch.setattr(zipfile, "ZipFile", explode)
        result = check_drm(clean_epub)
        assert result.category is DrmCategory.ACCESS_ERROR
        assert result.reason == "mystery failure"
        assert result.evidence["error_type"] == "BadZipFile"


class TestMobiDetection:
    def test_clean_mobi(self, clean_mobi: Path):
        result = check_drm(clean_mobi)
        assert result.category is DrmCategory.NO_DRM
        assert result.evidence["format"] == "mobi"
        assert result.evidence["exth_record_types"] == [100, 501]

    def test_header_drm(self, tmp_path: Path):
        book = build_mobi(tmp_path / "a.mobi", drm_offset=400, drm_count=1)
        result = check_drm(book)
        assert result.category is DrmCategory.AMAZON_DRM
        assert result.evidence["drm_offset"] == 400

    def test_sentinel_offset_is_clean(self, tmp_path: Path):
        book = build_mobi(tmp_path / "a.mobi", drm_offset=0xFFFFFFFF, drm_flags=0)
        assert check_drm(book).category is DrmCategory.NO_DRM

    def test_exth_book_type_is_clean(self, tmp_path: Path):
        book = build_mobi(tmp_path / "a.azw3", exth=exth_block([(501, b"EBOK")]))
        assert check_drm(book).category is DrmCategory.NO_DRM

    def test_exth_key_data_is_drm(self, tmp_path: Path):
        book = build_mobi(
            tmp_path / "a.azw3",
            exth=exth_block([(501, b"USER_SPECIFIC_KEY_DATA_1234")]),
        )
        result = check_drm(book)
        assert result.category is DrmCategory.AMAZON_DRM
        assert "EXTH records" in result.reason

    def test_azw3_topaz(self, clean_azw3: Path):
        result = check_drm(clean_azw3)
        assert result.category is DrmCategory.NO_DRM
        assert result.evidence["format"] == "azw3"

    def test_azw(self, tmp_path: Path):
        book = build_mobi(tmp_path / "a.azw", ident=b"BOOKTEST", drm_flags=1)
        result = check_drm(book)
        assert result.category is DrmCategory.AMAZON_DRM
        assert result.evidence["format"] == "azw"

    def test_too_small(self, tmp_path: Path):
        f = tmp_path / "tiny.mobi"
        data = bytearray(100)
        data[60:68] = b"BOOKMOBI"
        f.write_bytes(data)
        result = check_drm(f)
        assert result.category is DrmCategory.STRUCTURALLY_INVALID
        assert result.reason == "File too small to be valid MOBI"

    def test_invalid_mobi_signature(self, tmp_path: Path):
        book = build_mobi(tmp_path / "a.mobi", mobi_magic=b"XXXX")
        result = check_drm(book)
        assert result.category is DrmCategory.STRUCTURALLY_INVALID
        assert result.reason == "Invalid MOBI signature"

    def test_bad_exth_does_not_change_verdict(self, tmp_path: Path):
        book = build_mobi(tmp_path / "a.mobi", exth_flag=True)
        result = check_drm(book)
        assert result.category is DrmCategory.NO_DRM
        assert result.evidence["exth_error"] == "Invalid EXTH signature"

    def test_io_error_is_access_error(
        self, clean_mobi: Path, monkeypatch: pytest.MonkeyPatch
    ):
        def denied(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr(mobi_reader, "read_mobi_header", denied)
        result = check_drm(clean_mobi)
        assert result.category is DrmCategory.ACCESS_ERROR
        assert result.is_protected is True
        assert "Permission denied" in result.reason
        assert result.evidence["error_type"] == "PermissionError"


class TestUnsupported:
    def test_unsupported_extension(self, tmp_path: Path):
        f = tmp_path / "package.json"
        f.write_text("{}")
        result = check_drm(f)
        assert result.category is DrmCategory.UNSUPPORTED_FORMAT
        assert result.reason == "Unsupported or corrupted file format"
        assert result.evidence == {"extension": ".json", "format": "unknown"}

    def test_accepts_str_path(self, clean_epub: Path):
        assert check_drm(str(clean_epub)).category is DrmCategory.NO_DRM


class TestUnopenablePaths:
    @pytest.mark.parametrize("name", ["nonexistent.epub", "nonexistent.mobi"])
    def test_missing_file_is_access_error(self, tmp_path: Path, name: str):
        result = check_drm(tmp_path / name)
        assert result.category is DrmCategory.ACCESS_ERROR
        assert result.is_protected is True
        assert result.evidence["error_type"] == "FileNotFoundError"

    def test_directory_is_access_error(self, tmp_path: Path):
        folder = tmp_path / "folder.epub"
        folder.mkdir()
        result = check_drm(folder)
        assert result.category is DrmCategory.ACCESS_ERROR
        assert result.reason.startswith("Not a regular file")

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs os.mkfifo")
    def test_fifo_is_access_error_without_blocking(self, tmp_path: Path):
        pipe = tmp_path / "pipe.mobi"
        os.mkfifo(pipe)
        result = check_drm(pipe)
        assert result.category is DrmCategory.ACCESS_ERROR
        assert "Not a regular file" in result.reason


@pytest.mark.parametrize(
    "fixture_name", ["clean_epub", "adobe_epub", "clean_mobi", "drm_mobi", "clean_azw3"]
)
def test_check_drm_is_idempotent(fixture_name: str, request: pytest.FixtureRequest):
    path = request.getfixturevalue(fixture_name)
    first = check_drm(path)
    second = check_drm(path)
    assert first.category is second.category
    assert first.is_protected == second.is_protected
    assert first.evidence == second.evidence


@pytest.mark.parametrize("category", list(DrmCategory))
def test_is_protected_follows_category(category: DrmCategory):
    result = DetectionResult(category=category)
    assert result.is_protected is (category is not DrmCategory.NO_DRM)


def test_result_to_dict_is_plain():
    result = DetectionResult(
        category=DrmCategory.AMAZON_DRM,
        reason="Amazon DRM (DRM flags set)",
        evidence={"raw": b"\x01\x02", "records": ({"type": 501},)},
    )
    assert result.to_dict() == {
        "is_protected": True,
        "category": "AmazonDRM",
        "reason": "Amazon DRM (DRM flags set)",
        "evidence": {"raw": "0102", "records": [{"type": 501}]},
    }
