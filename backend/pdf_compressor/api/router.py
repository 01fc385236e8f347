"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from pdf_compressor.api import health, compress

api_router = APIRouter()

# Routes are served at the root, without a prefix
api_router.include_router(health.router, tags=["health"])
api_router.include_router(compress.router, tags=["compress"])
