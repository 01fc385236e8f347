"""
Ghostscript PDF compression.

Runs `gs` as a subprocess without blocking the event loop. Failures are
returned to the caller as an error message; nothing is retried.
"""
import asyncio
import logging
import time
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pdf_compressor.utils.logging import log_compression_completed, log_compression_failed
from pdf_compressor.utils.metrics import pdf_compressions_total, pdf_compression_duration_seconds

logger = logging.getLogger(__name__)

PDF_COMPATIBILITY_LEVEL = "1.5"

# Keep error messages short; gs can be very chatty on broken input
STDERR_TAIL_CHARS = 500

PathLike = Union[str, Path]


def build_ghostscript_args(source: PathLike, dest: PathLike, preset: str) -> List[str]:
    """Argument list for a pdfwrite pass (binary not included)."""
    return [
        "-sDEVICE=pdfwrite",
        f"-dCompatibilityLevel={PDF_COMPATIBILITY_LEVEL}",
        f"-dPDFSETTINGS={preset}",
        "-dNOPAUSE",
        "-dQUIET",
        "-dBATCH",
        f"-sOutputFile={dest}",
        str(source),
    ]


class GhostscriptCompressor:
    """
    Compresses one PDF into another with Ghostscript.

    Presets are Ghostscript PDFSETTINGS names: /screen, /ebook, /printer,
    /prepress, /default.
    """

    def __init__(self, binary: str = "gs"):
        self.binary = binary

    async def compress(
        self,
        source: PathLike,
        dest: PathLike,
        preset: str
    ) -> Tuple[bool, Optional[str]]:
        """
        Compress source into dest.

        Args:
            source: Input PDF path
            dest: Output PDF path (created by Ghostscript)
            preset: PDFSETTINGS preset, e.g. "/printer"

        Returns:
            Tuple of (success, error_message)
            On success: (True, None)
            On error: (False, error_message)
        """
        args = build_ghostscript_args(source, dest, preset)
        start_time = time.time()

        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await process.communicate()
        except OSError as e:
            # Binary missing or not executable
            error = f"Failed to start {self.binary}: {e}"
            pdf_compressions_total.labels(status="error").inc()
            log_compression_failed(logger, str(source), error)
            return False, error

        duration = time.time() - start_time
        pdf_compression_duration_seconds.observe(duration)

        if process.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()[-STDERR_TAIL_CHARS:]
            error = f"Command failed: {self.binary} exited with code {process.returncode}"
            if detail:
                error += f": {detail}"
            pdf_compressions_total.labels(status="error").inc()
            log_compression_failed(logger, str(source), error, duration_ms=duration * 1000)
            return False, error

        pdf_compressions_total.labels(status="success").inc()
        log_compression_completed(logger, str(source), duration * 1000, preset=preset)
        return True, None
