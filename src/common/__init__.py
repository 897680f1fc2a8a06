"""
Shared Service Plumbing

Error taxonomy, configuration and logging setup used across layers.
"""

from .config import ServiceConfig, configure_logging
from .errors import (
    DocumentServiceError,
    InvalidReferenceError,
    InvalidSelectionError,
    UnsupportedMediaTypeError,
    NotFoundError,
    PageOutOfRangeError,
    MalformedDocumentError,
    SerializationError,
    StorageError,
)

__all__ = [
    'ServiceConfig',
    'configure_logging',
    'DocumentServiceError',
    'InvalidReferenceError',
    'InvalidSelectionError',
    'UnsupportedMediaTypeError',
    'NotFoundError',
    'PageOutOfRangeError',
    'MalformedDocumentError',
    'SerializationError',
    'StorageError',
]
