"""
PDF compressor service: Ghostscript compression with S3-compatible storage.
"""
__version__ = "0.1.0"
