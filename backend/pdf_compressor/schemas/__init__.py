"""
Pydantic schemas for API responses.
"""
from pdf_compressor.schemas.compress import (
    CompressUploadResponse,
    ErrorResponse,
    HealthResponse,
    SizeLimitErrorResponse,
)

__all__ = [
    "CompressUploadResponse",
    "ErrorResponse",
    "HealthResponse",
    "SizeLimitErrorResponse",
]
