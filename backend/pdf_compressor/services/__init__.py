"""
Business logic services.
"""
from pdf_compressor.services.compression import GhostscriptCompressor
from pdf_compressor.services.compress_upload import (
    CompressUploadError,
    CompressUploadResult,
    CompressUploadService,
)

__all__ = [
    "GhostscriptCompressor",
    "CompressUploadError",
    "CompressUploadResult",
    "CompressUploadService",
]
