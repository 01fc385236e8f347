"""
Tests for service layer business logic.
"""
import os
import re
import stat
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pdf_compressor.services.compression import GhostscriptCompressor, build_ghostscript_args
from pdf_compressor.services.compress_upload import (
    CompressUploadError,
    CompressUploadService,
    bytes_to_mb,
    resolve_storage_path,
    round_mb,
)
from pdf_compressor.storage.temp_files import RequestTempFiles

from conftest import FakeCompressor, FakeStorage, make_settings


posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as gs")


def write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class TestGhostscriptArgs:

    def test_fixed_argument_list(self):
        args = build_ghostscript_args("/tmp/in.pdf", "/tmp/out.pdf", "/printer")

        assert args == [
            "-sDEVICE=pdfwrite",
            "-dCompatibilityLevel=1.5",
            "-dPDFSETTINGS=/printer",
            "-dNOPAUSE",
            "-dQUIET",
            "-dBATCH",
            "-sOutputFile=/tmp/out.pdf",
            "/tmp/in.pdf",
        ]

    def test_source_is_last(self):
        args = build_ghostscript_args(Path("a b.pdf"), Path("out.pdf"), "/ebook")

        assert args[-1] == "a b.pdf"
        assert "-dPDFSETTINGS=/ebook" in args


class TestGhostscriptCompressor:
    """Tests for the subprocess wrapper."""

    @pytest.mark.asyncio
    async def test_success(self):
        process = MagicMock(returncode=0)
        process.communicate = AsyncMock(return_value=(b"", b""))

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as exec_mock:
            ok, error = await GhostscriptCompressor("gs").compress("in.pdf", "out.pdf", "/printer")

        assert ok is True
        assert error is None
        called_args = exec_mock.call_args[0]
        assert called_args[0] == "gs"
        assert list(called_args[1:]) == build_ghostscript_args("in.pdf", "out.pdf", "/printer")

    @pytest.mark.asyncio
    async def test_non_zero_exit_returns_error_with_stderr(self):
        process = MagicMock(returncode=1)
        process.communicate = AsyncMock(return_value=(b"", b"Error: /syntaxerror in --token--\n"))

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            ok, error = await GhostscriptCompressor("gs").compress("in.pdf", "out.pdf", "/printer")

        assert ok is False
        assert error == "Command failed: gs exited with code 1: Error: /syntaxerror in --token--"

    @pytest.mark.asyncio
    async def test_missing_binary_returns_error(self):
        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError(2, "No such file or directory"))
        ):
            ok, error = await GhostscriptCompressor("gs-missing").compress("in.pdf", "out.pdf", "/printer")

        assert ok is False
        assert error.startswith("Failed to start gs-missing:")

    @posix_only
    @pytest.mark.asyncio
    async def test_runs_real_subprocess(self, tmp_path):
        """A stand-in gs that copies its input to -sOutputFile."""
        gs = write_script(
            tmp_path / "gs",
            'for arg in "$@"; do\n'
            '  case "$arg" in -sOutputFile=*) out="${arg#-sOutputFile=}" ;; esac\n'
            '  src="$arg"\n'
            'done\n'
            'cp "$src" "$out"\n'
        )
        source = tmp_path / "in.pdf"
        source.write_bytes(b"%PDF-1.7 content")
        dest = tmp_path / "out.pdf"

        ok, error = await GhostscriptCompressor(str(gs)).compress(source, dest, "/printer")

        assert (ok, error) == (True, None)
        assert dest.read_bytes() == b"%PDF-1.7 content"

    @posix_only
    @pytest.mark.asyncio
    async def test_real_subprocess_failure(self, tmp_path):
        gs = write_script(tmp_path / "gs", 'echo "Unrecoverable error" >&2\nexit 3\n')

        ok, error = await GhostscriptCompressor(str(gs)).compress(
            tmp_path / "in.pdf", tmp_path / "out.pdf", "/printer"
        )

        assert ok is False
        assert "exited with code 3" in error
        assert error.endswith("Unrecoverable error")


class TestStoragePath:

    def test_derived_path_with_owner(self):
        path = resolve_storage_path("report.pdf", "user-1")

        assert re.fullmatch(r"user-1/\d{13}-report\.pdf", path)

    def test_owner_is_trimmed(self):
        assert resolve_storage_path("a.pdf", "  user-1 ").startswith("user-1/")

    def test_anonymous_owner(self):
        assert resolve_storage_path("a.pdf").startswith("anonymous/")
        assert resolve_storage_path("a.pdf", "").startswith("anonymous/")

    def test_filename_sanitized(self):
        path = resolve_storage_path("ça va?.pdf")

        assert re.fullmatch(r"anonymous/\d+-_a_va_\.pdf", path)


class TestSizes:

    def test_bytes_to_mb(self):
        assert bytes_to_mb(1024 * 1024) == 1.0
        assert bytes_to_mb(512 * 1024) == 0.5

    def test_round_mb(self):
        assert round_mb(1.23456) == 1.23
        assert round_mb(bytes_to_mb(3 * 1024 * 1024 + 10)) == 3.0


class TestCompressUploadService:
    """Tests for the orchestration without HTTP."""

    @pytest.fixture
    def source(self, tmp_path):
        path = tmp_path / "work" / "1700000000000-report.pdf"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"%PDF-1.7" + b"0" * 2048)
        return path

    @pytest.mark.asyncio
    async def test_process_success(self, tmp_path, source):
        settings = make_settings(tmp_path)
        storage = FakeStorage()
        service = CompressUploadService(settings, storage, FakeCompressor(output=b"small"))
        workspace = RequestTempFiles(settings.tmp_dir)

        result = await service.process(workspace, source, "report.pdf", 2056, user_id="u1")

        assert result.path.startswith("u1/")
        assert storage.objects[result.path] == b"small"
        assert result.compressed_size_mb == 0.0
        # output path registered for cleanup
        assert len(workspace.paths) == 1
        workspace.cleanup()
        assert list(settings.tmp_dir.iterdir()) == [source]

    @pytest.mark.asyncio
    async def test_process_over_limit(self, tmp_path, source):
        settings = make_settings(tmp_path, max_output_mb=0)
        storage = FakeStorage()
        service = CompressUploadService(settings, storage, FakeCompressor(output=b"x" * 20000))

        with pytest.raises(CompressUploadError) as exc_info:
            await service.process(RequestTempFiles(settings.tmp_dir), source, "report.pdf", 2056)

        assert exc_info.value.status_code == 413
        assert exc_info.value.extra == {"compressedSizeMb": 0.02}
        assert storage.calls == []

    @pytest.mark.asyncio
    async def test_process_compression_failure(self, tmp_path, source):
        settings = make_settings(tmp_path)
        storage = FakeStorage()
        service = CompressUploadService(settings, storage, FakeCompressor(error="gs crashed"))

        with pytest.raises(CompressUploadError) as exc_info:
            await service.process(RequestTempFiles(settings.tmp_dir), source, "report.pdf", 2056)

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "gs crashed"
        assert storage.calls == []

    @pytest.mark.asyncio
    async def test_explicit_storage_path(self, tmp_path, source):
        settings = make_settings(tmp_path)
        storage = FakeStorage()
        service = CompressUploadService(settings, storage, FakeCompressor())

        result = await service.process(
            RequestTempFiles(settings.tmp_dir), source, "report.pdf", 2056,
            storage_path="exact/Path With Spaces.pdf", user_id="u1"
        )

        assert result.path == "exact/Path With Spaces.pdf"
        assert os.path.basename(result.url) == "Path With Spaces.pdf"
