"""
S3-compatible object storage client.

Uses boto3 with the S3 API, so it works against Supabase Storage, Cloudflare
R2, MinIO or AWS S3 alike. Uploads are create-only: writing to a path that
already holds an object fails instead of overwriting it.

Public URLs are built from STORAGE_PUBLIC_URL (or endpoint + bucket), so the
bucket has to allow anonymous reads for the links to resolve.
"""
import asyncio
import logging
import time
from typing import Optional, Tuple
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from pdf_compressor.config import Settings
from pdf_compressor.utils.logging import log_upload_completed, log_upload_failed
from pdf_compressor.utils.metrics import storage_uploads_total

logger = logging.getLogger(__name__)

# Error codes S3-compatible services return for a failed If-None-Match
_ALREADY_EXISTS_CODES = {"PreconditionFailed", "412", "ConditionalRequestConflict", "409"}


class ObjectStorageClient:
    """
    Create-only uploads and public URL resolution for one bucket.
    """

    def __init__(self, settings: Settings, client=None):
        """
        Initialize the client with boto3.

        Args:
            settings: Application settings holding endpoint, credentials and bucket
            client: Optional pre-built boto3 S3 client (tests)
        """
        self._settings = settings

        if client is None:
            # Path-style addressing works for every S3-compatible provider
            client = boto3.client(
                's3',
                endpoint_url=settings.storage_endpoint_url,
                aws_access_key_id=settings.storage_access_key,
                aws_secret_access_key=settings.storage_secret_key,
                region_name=settings.storage_region,
                config=Config(
                    signature_version='s3v4',
                    s3={'addressing_style': 'path'}
                )
            )
            logger.info(f"Storage client initialized for bucket: {settings.storage_bucket}")

        self._client = client

    @property
    def bucket(self) -> str:
        """Get configured bucket name."""
        return self._settings.storage_bucket

    def upload_object(
        self,
        object_key: str,
        data: bytes,
        content_type: str
    ) -> Tuple[bool, Optional[str]]:
        """
        Upload bytes to the bucket without overwriting.

        Args:
            object_key: Object path in bucket
            data: Object payload
            content_type: MIME type stored with the object

        Returns:
            Tuple of (success, error_message)
        """
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=object_key,
                Body=data,
                ContentType=content_type,
                CacheControl=self._settings.storage_cache_control,
                IfNoneMatch='*'
            )
            return True, None

        except ClientError as e:
            code = str(e.response.get('Error', {}).get('Code', ''))
            if code in _ALREADY_EXISTS_CODES:
                return False, f"Object already exists: {object_key}"
            message = e.response.get('Error', {}).get('Message') or str(e)
            return False, message
        except BotoCoreError as e:
            return False, str(e)

    def get_public_url(self, object_key: str) -> str:
        """
        Build the public URL for an object.

        Args:
            object_key: Object path in bucket

        Returns:
            Unauthenticated URL for the object
        """
        return f"{self._settings.public_base_url}/{quote(object_key)}"

    async def upload_and_resolve(
        self,
        object_key: str,
        data: bytes,
        content_type: str = "application/pdf"
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Upload an object and resolve its public URL.

        boto3 is synchronous, so the upload runs in a worker thread.

        Returns:
            Tuple of (public_url, error_message)
            On success: (url, None)
            On error: (None, error_message)
        """
        start_time = time.time()
        success, error = await asyncio.to_thread(
            self.upload_object,
            object_key,
            data,
            content_type
        )
        duration_ms = (time.time() - start_time) * 1000

        if not success:
            storage_uploads_total.labels(status="error").inc()
            log_upload_failed(logger, object_key, error, duration_ms=duration_ms)
            return None, error

        storage_uploads_total.labels(status="success").inc()
        log_upload_completed(logger, object_key, duration_ms=duration_ms, size_bytes=len(data))
        return self.get_public_url(object_key), None
