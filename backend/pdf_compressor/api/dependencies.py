"""
FastAPI dependencies.
Settings and services are built once in create_app() and kept on app.state.
"""
from fastapi import Request

from pdf_compressor.config import Settings
from pdf_compressor.services.compress_upload import CompressUploadService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_compress_service(request: Request) -> CompressUploadService:
    return request.app.state.compress_service
