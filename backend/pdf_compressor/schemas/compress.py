"""
Response schemas for the compress-upload and health endpoints.
Field aliases keep the camelCase JSON keys clients already use.
"""
from pydantic import BaseModel, ConfigDict, Field


class CompressUploadResponse(BaseModel):
    """Response schema for a successful compress-and-upload."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "message": "Compression complete and uploaded to storage",
                "path": "anonymous/1700000000000-report.pdf",
                "url": "https://example.supabase.co/storage/v1/object/public/pdfs/anonymous/1700000000000-report.pdf",
                "originalSizeMb": 12.4,
                "compressedSizeMb": 3.17
            }
        }
    )

    message: str
    path: str = Field(..., description="Object path in the storage bucket")
    url: str = Field(..., description="Public URL of the stored object")
    original_size_mb: float = Field(..., alias="originalSizeMb")
    compressed_size_mb: float = Field(..., alias="compressedSizeMb")


class ErrorResponse(BaseModel):
    """Error body returned for 400 and 500 responses."""
    error: str


class SizeLimitErrorResponse(ErrorResponse):
    """Error body returned when the compressed file is over the limit."""
    compressed_size_mb: float = Field(..., alias="compressedSizeMb")


class HealthResponse(BaseModel):
    status: str = "ok"
