"""
Prometheus metrics definitions for the API.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Compression metrics
pdf_compressions_total = Counter(
    'pdf_compressions_total',
    'Total Ghostscript compression runs',
    ['status']
)

pdf_compression_duration_seconds = Histogram(
    'pdf_compression_duration_seconds',
    'Ghostscript compression duration in seconds',
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0]
)

pdf_output_rejections_total = Counter(
    'pdf_output_rejections_total',
    'Compressed outputs rejected by the output size limit'
)

# Storage metrics
storage_uploads_total = Counter(
    'storage_uploads_total',
    'Total object storage uploads',
    ['status']
)
