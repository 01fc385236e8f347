"""
Request-scoped temp files.

Every request gets its raw upload and its compressed output written under the
configured temp directory. Paths are registered with a RequestTempFiles
workspace the moment they are allocated, and the workspace removes all of them
when the request finishes, whatever the outcome.
"""
import asyncio
import logging
import os
import re
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, BinaryIO, List, Union

from pdf_compressor.utils.logging import log_cleanup_failed

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")

COPY_CHUNK_SIZE = 1024 * 1024

PathLike = Union[str, Path]


class UploadTooLargeError(Exception):
    """Raised when an upload stream exceeds the configured input cap."""

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        super().__init__(f"Uploaded file exceeds the {max_bytes // (1024 * 1024)} MB limit")


def sanitize_filename(name: str) -> str:
    """Replace every character outside [A-Za-z0-9_.-] with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub("_", name)


def timestamp_ms() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


def upload_path(tmp_dir: PathLike, original_name: str) -> Path:
    """Path for a raw upload: {tmp_dir}/{timestamp}-{sanitized name}."""
    return Path(tmp_dir) / f"{timestamp_ms()}-{sanitize_filename(original_name)}"


def output_path(tmp_dir: PathLike) -> Path:
    """Fresh path for a compression output."""
    return Path(tmp_dir) / f"tmp-{os.getpid()}-{uuid.uuid4().hex}.pdf"


def save_upload(source: BinaryIO, dest: PathLike, max_bytes: int) -> int:
    """
    Stream an upload to disk, enforcing the input size cap.

    Args:
        source: Readable binary file object (UploadFile.file)
        dest: Destination path
        max_bytes: Maximum number of bytes accepted

    Returns:
        Number of bytes written

    Raises:
        UploadTooLargeError: If the stream is larger than max_bytes
    """
    written = 0
    with open(dest, "wb") as out:
        while True:
            chunk = source.read(COPY_CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                raise UploadTooLargeError(max_bytes)
            out.write(chunk)
    return written


class RequestTempFiles:
    """Temp paths owned by one request."""

    def __init__(self, tmp_dir: PathLike):
        self.tmp_dir = Path(tmp_dir)
        self.paths: List[Path] = []

    def register(self, path: PathLike) -> Path:
        path = Path(path)
        self.paths.append(path)
        return path

    def upload_path(self, original_name: str) -> Path:
        return self.register(upload_path(self.tmp_dir, original_name))

    def output_path(self) -> Path:
        return self.register(output_path(self.tmp_dir))

    async def save_upload(self, original_name: str, source: BinaryIO, max_bytes: int):
        """Persist an upload under a registered path. Returns (path, size_bytes)."""
        dest = self.upload_path(original_name)
        size = await asyncio.to_thread(save_upload, source, dest, max_bytes)
        return dest, size

    def cleanup(self) -> None:
        """Remove every registered path. Failures are logged, never raised."""
        for path in self.paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                log_cleanup_failed(logger, str(path), str(e))
            else:
                logger.debug(f"Removed temp file {path}")
        self.paths = []


@asynccontextmanager
async def request_temp_files(tmp_dir: PathLike) -> AsyncIterator[RequestTempFiles]:
    """Yield a RequestTempFiles workspace and clean it up on exit."""
    workspace = RequestTempFiles(tmp_dir)
    try:
        yield workspace
    finally:
        workspace.cleanup()
