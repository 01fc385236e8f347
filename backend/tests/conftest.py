"""
Test configuration and fixtures.
The compressor and the storage client are replaced with in-memory fakes;
tests never need Ghostscript or a reachable bucket.
"""
import pytest
from pathlib import Path
from typing import AsyncGenerator, List, Optional, Tuple

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from pdf_compressor.config import Settings, load_settings
from pdf_compressor.main import create_app


TEST_BUCKET = "pdfs"
TEST_PUBLIC_URL = "https://storage.test/object/public/pdfs"


class FakeCompressor:
    """Writes a fixed payload as the compressed output, or fails."""

    def __init__(self, output: bytes = b"%PDF-1.5 compressed", error: Optional[str] = None):
        self.output = output
        self.error = error
        self.calls: List[Tuple[Path, Path, str]] = []

    async def compress(self, source, dest, preset):
        self.calls.append((Path(source), Path(dest), preset))
        if self.error:
            return False, self.error
        Path(dest).write_bytes(self.output)
        return True, None


class FakeStorage:
    """Keeps uploaded objects in a dict keyed by path."""

    def __init__(self, error: Optional[str] = None):
        self.error = error
        self.objects = {}
        self.calls: List[Tuple[str, int, str]] = []

    async def upload_and_resolve(self, object_key, data, content_type="application/pdf"):
        self.calls.append((object_key, len(data), content_type))
        if self.error:
            return None, self.error
        if object_key in self.objects:
            return None, f"Object already exists: {object_key}"
        self.objects[object_key] = data
        return f"{TEST_PUBLIC_URL}/{object_key}", None


def make_settings(tmp_path: Path, **overrides) -> Settings:
    """Settings for tests, independent of the process environment and .env."""
    values = {
        "storage_endpoint_url": "https://storage.test/s3",
        "storage_access_key": "test-access-key",
        "storage_secret_key": "test-secret-key",
        "storage_bucket": TEST_BUCKET,
        "storage_public_url": TEST_PUBLIC_URL,
        "tmp_dir": tmp_path / "work",
    }
    values.update(overrides)
    return load_settings(env_file=None, **values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def compressor() -> FakeCompressor:
    return FakeCompressor()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


def get_test_app(settings: Settings, storage, compressor) -> FastAPI:
    """Create a test FastAPI app around the fakes."""
    return create_app(settings, storage=storage, compressor=compressor)


@pytest.fixture
def app(settings: Settings, storage: FakeStorage, compressor: FakeCompressor) -> FastAPI:
    return get_test_app(settings, storage, compressor)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    # Unhandled exceptions must come back as the 500 response, not be re-raised
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def pdf_bytes() -> bytes:
    """A small stand-in PDF payload."""
    return b"%PDF-1.7\n" + b"0" * 4096 + b"\n%%EOF\n"
