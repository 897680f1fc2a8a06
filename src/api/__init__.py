"""
HTTP API Layer

FastAPI application for upload, page extraction and file retrieval.
"""

from .app import PageExtractionAPI, create_app

__all__ = [
    'PageExtractionAPI',
    'create_app',
]
