"""
Storage module: S3-compatible object storage and request-scoped temp files.
"""
from pdf_compressor.storage.object_store import ObjectStorageClient
from pdf_compressor.storage.temp_files import (
    RequestTempFiles,
    UploadTooLargeError,
    request_temp_files,
    sanitize_filename,
)

__all__ = [
    "ObjectStorageClient",
    "RequestTempFiles",
    "UploadTooLargeError",
    "request_temp_files",
    "sanitize_filename",
]
