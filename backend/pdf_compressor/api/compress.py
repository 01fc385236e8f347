"""
Compress-and-upload endpoint.

POST /compress-upload (multipart/form-data)
- file: the PDF (required)
- storagePath: object path override (optional)
- userId: owner tag for derived paths (optional)

Responses:
- 200: {message, path, url, originalSizeMb, compressedSizeMb}
- 400: no file in the request
- 413: upload or compressed output over the configured limit
- 500: compression, file read or upload failure

Temp files for the request are removed before the response is sent,
whatever the outcome.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from pdf_compressor.api.dependencies import get_compress_service, get_settings
from pdf_compressor.config import Settings
from pdf_compressor.schemas.compress import CompressUploadResponse, ErrorResponse, SizeLimitErrorResponse
from pdf_compressor.services.compress_upload import CompressUploadError, CompressUploadService
from pdf_compressor.storage.temp_files import UploadTooLargeError, request_temp_files

logger = logging.getLogger(__name__)

router = APIRouter()

SUCCESS_MESSAGE = "Compression complete and uploaded to storage"
NO_FILE_MESSAGE = "No file uploaded"
DEFAULT_FILENAME = "upload.pdf"


@router.post(
    "/compress-upload",
    response_model=CompressUploadResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": SizeLimitErrorResponse},
        500: {"model": ErrorResponse},
    }
)
async def compress_upload(
    file: Optional[UploadFile] = File(None),
    storage_path: Optional[str] = Form(None, alias="storagePath"),
    user_id: Optional[str] = Form(None, alias="userId"),
    settings: Settings = Depends(get_settings),
    service: CompressUploadService = Depends(get_compress_service)
):
    """
    Compress an uploaded PDF with Ghostscript and store it in the bucket.

    Flow:
    1. Persist the upload to the temp directory
    2. Compress, check the output size limit
    3. Upload (create-only) and resolve the public URL
    """
    async with request_temp_files(settings.tmp_dir) as workspace:
        if file is None:
            raise CompressUploadError(400, NO_FILE_MESSAGE)

        original_name = file.filename or DEFAULT_FILENAME

        try:
            source_path, original_size = await workspace.save_upload(
                original_name,
                file.file,
                settings.max_input_bytes
            )
            result = await service.process(
                workspace,
                source_path,
                original_name,
                original_size,
                storage_path=storage_path or None,
                user_id=user_id
            )
        except UploadTooLargeError as e:
            raise CompressUploadError(413, str(e))
        except CompressUploadError:
            raise
        except Exception as e:
            logger.exception(f"PDF compression error: {e}", extra={"event": "request_failed"})
            raise CompressUploadError(500, str(e) or e.__class__.__name__)

    return CompressUploadResponse(
        message=SUCCESS_MESSAGE,
        path=result.path,
        url=result.url,
        original_size_mb=result.original_size_mb,
        compressed_size_mb=result.compressed_size_mb
    )
