"""
Service Errors

Tagged error taxonomy shared by storage, extraction and the HTTP layer.
Every failure carries a machine-readable kind and the HTTP status it maps to,
so callers can tell user-input mistakes from server-side faults.
"""

from typing import Optional


class DocumentServiceError(Exception):
    """Base class for all expected service failures."""
    kind = "service_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500


class InvalidReferenceError(DocumentServiceError):
    """Malformed or unsafe document reference."""
    kind = "invalid_reference"
    status_code = 400


class InvalidSelectionError(DocumentServiceError):
    """Page selection is empty or not a list of integers."""
    kind = "invalid_selection"
    status_code = 400


class UnsupportedMediaTypeError(DocumentServiceError):
    """Upload declared a MIME type other than PDF."""
    kind = "unsupported_media_type"
    status_code = 415

    def __init__(self, content_type: Optional[str]):
        super().__init__(f"Only PDFs are allowed, got: {content_type or 'unknown'}")
        self.content_type = content_type


class NotFoundError(DocumentServiceError):
    """Referenced object is absent from storage."""
    kind = "not_found"
    status_code = 404

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key


class PageOutOfRangeError(DocumentServiceError):
    """A selected page number does not exist in the source document."""
    kind = "page_out_of_range"
    status_code = 400

    def __init__(self, page_number: int, page_count: int):
        super().__init__(
            f"Page {page_number} is out of range (document has {page_count} page(s))"
        )
        self.page_number = page_number
        self.page_count = page_count


class MalformedDocumentError(DocumentServiceError):
    """Source bytes could not be parsed as a PDF."""
    kind = "malformed_document"
    status_code = 422


class SerializationError(DocumentServiceError):
    """Internal failure while writing the generated PDF."""
    kind = "serialization_error"
    status_code = 500


class StorageError(DocumentServiceError):
    """
    Storage backend read/write failure.

    ``retryable`` is set for transient failures (timeouts, connection
    errors, throttling); those map to 503 instead of 500.
    """
    kind = "storage_error"

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 503 if self.retryable else 500
