"""Tests for the check_drm command line tool."""

import json
from pathlib import Path

import pytest

from ebook_drm_check.tools.check_drm import main
from ebook_test_utils import build_epub, build_mobi


class TestMain:
    def test_protected_files_exit_one(self, library_dir: Path, capsys):
        assert main([str(library_dir)]) == 1
        out = capsys.readouterr().out
        assert "Checked 5 eBook file(s)" in out
        assert "DRM-Protected Files:" in out
        assert "drm-protected.mobi" in out
        assert "  DRM-protected: 3" in out
        assert "  Readable: 2" in out

    def test_clean_directory_exit_zero(self, tmp_path: Path, capsys):
        build_epub(tmp_path / "a.epub")
        build_mobi(tmp_path / "b.mobi")
        assert main([str(tmp_path)]) == 0
        assert "  DRM-protected: 0" in capsys.readouterr().out

    def test_empty_directory(self, tmp_path: Path, capsys):
        assert main([str(tmp_path)]) == 0
        assert "No eBook files found" in capsys.readouterr().out

    def test_missing_directory(self, tmp_path: Path, capsys):
        assert main([str(tmp_path / "missing")]) == 2
        assert "is not a directory" in capsys.readouterr().err

    @pytest.mark.parametrize("concurrency", ["0", "65"])
    def test_bad_concurrency(self, tmp_path: Path, concurrency: str, capsys):
        assert main([str(tmp_path), "-c", concurrency]) == 2
        assert "concurrency must be between" in capsys.readouterr().err

    def test_non_recursive(self, library_dir: Path, capsys):
        main([str(library_dir), "--no-recursive"])
        assert "Checked 2 eBook file(s)" in capsys.readouterr().out

    def test_verbose_lists_readable(self, library_dir: Path, capsys):
        main([str(library_dir), "-v"])
        out = capsys.readouterr().out
        assert "valid-book.azw3" in out
        assert "valid-book.epub" in out

    def test_json_output(self, library_dir: Path, tmp_path: Path, capsys):
        out_file = tmp_path / "report.json"
        assert main([str(library_dir), "-o", str(out_file)]) == 1
        report = json.loads(out_file.read_text(encoding="utf-8"))
        assert report["summary"]["total_files"] == 5
        assert report["summary"]["drm_protected"] == 3
        assert "Report saved to:" in capsys.readouterr().out

    def test_format_flag(self, library_dir: Path, tmp_path: Path):
        out_file = tmp_path / "report.out"
        main([str(library_dir), "-f", "csv", "-o", str(out_file)])
        assert out_file.read_text(encoding="utf-8").startswith("File Name,")
