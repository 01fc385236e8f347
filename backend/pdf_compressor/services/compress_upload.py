"""
Compress-and-upload orchestration.

Flow for one uploaded PDF (already persisted to a temp path):
1. Allocate an output path in the request workspace
2. Compress with Ghostscript using the configured preset
3. Read the output and check it against the output size limit
4. Resolve the destination path in the bucket
5. Upload (create-only) and resolve the public URL

Collaborators report failures as (value, error) tuples; this service turns
them into CompressUploadError carrying the HTTP status for the response.
"""
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pdf_compressor.config import Settings, BYTES_PER_MB
from pdf_compressor.services.compression import GhostscriptCompressor
from pdf_compressor.storage.object_store import ObjectStorageClient
from pdf_compressor.storage.temp_files import RequestTempFiles, sanitize_filename, timestamp_ms
from pdf_compressor.utils.logging import log_size_limit_exceeded
from pdf_compressor.utils.metrics import pdf_output_rejections_total

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
ANONYMOUS_OWNER = "anonymous"


class CompressUploadError(Exception):
    """
    A request that ends in an error response.

    Attributes:
        status_code: HTTP status for the response
        message: Text returned in the "error" field
        extra: Additional JSON fields for the response body
    """

    def __init__(self, status_code: int, message: str, extra: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.message = message
        self.extra = extra or {}
        super().__init__(message)


@dataclass
class CompressUploadResult:
    """Outcome of a successful compress-and-upload."""
    path: str
    url: str
    original_size_mb: float
    compressed_size_mb: float


def bytes_to_mb(size_bytes: int) -> float:
    return size_bytes / BYTES_PER_MB


def round_mb(size_mb: float) -> float:
    """Two-decimal precision used in every response body."""
    return round(size_mb, 2)


def resolve_storage_path(original_name: str, user_id: Optional[str] = None) -> str:
    """
    Derive the object path for an upload.

    Pattern: {user_id or "anonymous"}/{timestamp_ms}-{sanitized original name}
    """
    owner = (user_id or "").strip() or ANONYMOUS_OWNER
    return f"{owner}/{timestamp_ms()}-{sanitize_filename(original_name)}"


async def read_file(path: Path) -> Tuple[Optional[bytes], Optional[str]]:
    """Read a file off the event loop. Returns (data, error_message)."""
    try:
        data = await asyncio.to_thread(path.read_bytes)
        return data, None
    except OSError as e:
        return None, f"Could not read {path.name}: {e.strerror or e}"


class CompressUploadService:
    """
    Ties the compressor and the storage client together for one request.
    """

    def __init__(
        self,
        settings: Settings,
        storage: ObjectStorageClient,
        compressor: GhostscriptCompressor
    ):
        self.settings = settings
        self.storage = storage
        self.compressor = compressor

    async def process(
        self,
        workspace: RequestTempFiles,
        source_path: Path,
        original_name: str,
        original_size: int,
        storage_path: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> CompressUploadResult:
        """
        Compress a persisted upload and store the result.

        Args:
            workspace: Request temp files; the output path is registered here
            source_path: Raw upload on disk
            original_name: Client-supplied filename
            original_size: Raw upload size in bytes
            storage_path: Caller-supplied object path, used verbatim when set
            user_id: Optional owner tag for derived paths

        Returns:
            CompressUploadResult

        Raises:
            CompressUploadError: 413 when the output is over the limit,
                500 when compression, file read or upload fails
        """
        compressed_path = workspace.output_path()

        ok, error = await self.compressor.compress(
            source_path,
            compressed_path,
            self.settings.ghostscript_preset
        )
        if not ok:
            # collaborator already logged this at ERROR
            logger.info(f"PDF compression error: {error}", extra={"event": "request_failed", "stage": "compress"})
            raise CompressUploadError(500, error)

        data, error = await read_file(compressed_path)
        if error:
            logger.error(f"PDF compression error: {error}", extra={"event": "request_failed", "stage": "read"})
            raise CompressUploadError(500, error)

        compressed_size_mb = bytes_to_mb(len(data))
        if compressed_size_mb > self.settings.max_output_mb:
            pdf_output_rejections_total.inc()
            log_size_limit_exceeded(logger, compressed_size_mb, self.settings.max_output_mb)
            raise CompressUploadError(
                413,
                f"Compressed file exceeds the {self.settings.max_output_mb} MB limit",
                {"compressedSizeMb": round_mb(compressed_size_mb)}
            )

        destination = storage_path or resolve_storage_path(original_name, user_id)

        url, error = await self.storage.upload_and_resolve(destination, data, PDF_CONTENT_TYPE)
        if error:
            # collaborator already logged this at ERROR
            logger.info(f"PDF compression error: {error}", extra={"event": "request_failed", "stage": "upload"})
            raise CompressUploadError(500, error)

        return CompressUploadResult(
            path=destination,
            url=url,
            original_size_mb=round_mb(bytes_to_mb(original_size)),
            compressed_size_mb=round_mb(compressed_size_mb),
        )
