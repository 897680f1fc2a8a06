"""
Extraction Layer

Builds new PDFs from selected pages of stored documents and names them.
"""

from .page_extractor import PageExtractor, SelectionPolicy
from .naming import NamingStrategy, GeneratedName, TimestampToken, uuid_token, token_factory_for
from .service import PageExtractionService, ExtractionResult, UploadResult

__all__ = [
    'PageExtractor',
    'SelectionPolicy',
    'NamingStrategy',
    'GeneratedName',
    'TimestampToken',
    'uuid_token',
    'token_factory_for',
    'PageExtractionService',
    'ExtractionResult',
    'UploadResult',
]
