"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- storage_path
- duration_ms
- original_size_mb / compressed_size_mb

Usage:
    from pdf_compressor.utils.logging import configure_logging, log_upload_completed

    configure_logging('pdf-compressor', 'INFO')
    log_upload_completed(logger, storage_path='anonymous/1700000000000-a.pdf', duration_ms=45.2)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (container logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    storage_path: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        storage_path: Optional object path in the bucket
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if storage_path:
        extra["storage_path"] = storage_path
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Compression events

def log_compression_completed(
    logger: logging.Logger,
    source: str,
    duration_ms: float,
    preset: Optional[str] = None,
    **kwargs
):
    """Log a successful Ghostscript run."""
    extra = _build_log_extra(
        event="compression_completed",
        duration_ms=duration_ms,
        source=source,
        **kwargs
    )
    if preset:
        extra["preset"] = preset

    logger.info(f"Compression completed: {source}", extra=extra)


def log_compression_failed(
    logger: logging.Logger,
    source: str,
    error: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a Ghostscript failure.

    Args:
        logger: Logger instance
        source: Input file path (required)
        error: Error message (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="compression_failed",
        duration_ms=duration_ms,
        source=source,
        error=str(error),
        **kwargs
    )

    logger.error(f"Compression failed: {source} - {error}", extra=extra)


def log_size_limit_exceeded(
    logger: logging.Logger,
    compressed_size_mb: float,
    limit_mb: int,
    **kwargs
):
    """Log a compressed output rejected by the output size limit."""
    extra = _build_log_extra(
        event="size_limit_exceeded",
        compressed_size_mb=round(compressed_size_mb, 2),
        limit_mb=limit_mb,
        **kwargs
    )

    logger.warning(
        f"Compressed output {compressed_size_mb:.2f} MB exceeds {limit_mb} MB limit",
        extra=extra
    )


# Storage events

def log_upload_completed(
    logger: logging.Logger,
    storage_path: str,
    duration_ms: Optional[float] = None,
    size_bytes: Optional[int] = None,
    **kwargs
):
    """Log a successful object upload."""
    extra = _build_log_extra(
        event="upload_completed",
        storage_path=storage_path,
        duration_ms=duration_ms,
        **kwargs
    )
    if size_bytes is not None:
        extra["size_bytes"] = size_bytes

    logger.info(f"Upload completed: {storage_path}", extra=extra)


def log_upload_failed(
    logger: logging.Logger,
    storage_path: str,
    error: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """Log a failed object upload."""
    extra = _build_log_extra(
        event="upload_failed",
        storage_path=storage_path,
        duration_ms=duration_ms,
        error=str(error),
        **kwargs
    )

    logger.error(f"Upload failed: {storage_path} - {error}", extra=extra)


def log_cleanup_failed(
    logger: logging.Logger,
    path: str,
    error: str,
    **kwargs
):
    """Log a temp file that could not be removed. Never fatal."""
    extra = _build_log_extra(
        event="cleanup_failed",
        path=path,
        error=str(error),
        **kwargs
    )

    logger.warning(f"Could not remove temp file ({path}): {error}", extra=extra)


# Convenience alias for backward compatibility
def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
