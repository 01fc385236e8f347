"""
Health check endpoint.
Liveness only; storage and Ghostscript are not probed.
"""
from fastapi import APIRouter

from pdf_compressor.schemas.compress import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness check."""
    return HealthResponse(status="ok")
