"""
Page Extraction Service

Upload handling and the extraction pipeline:

    resolve reference -> read source -> extract pages -> name -> write

The generated document is fully built in memory before the single storage
write, so a failed extraction never leaves an object behind.
"""

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional, Sequence, Tuple
from urllib.parse import quote

from src.common.config import ServiceConfig
from src.common.errors import (
    DocumentServiceError,
    InvalidReferenceError,
    UnsupportedMediaTypeError,
)
from src.storage.resolver import ReferenceResolver
from src.storage.storage_interface import StorageInterface, StorageMetadata
from .naming import NamingStrategy, token_factory_for
from .page_extractor import PageExtractor, SelectionPolicy

PDF_MEDIA_TYPE = "application/pdf"
ACCEPTED_MEDIA_TYPES = frozenset({PDF_MEDIA_TYPE})


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful upload."""
    locator: str
    key: str
    size: int


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of a successful extraction."""
    locator: str
    generated_name: str


def media_type_of(content_type: Optional[str]) -> str:
    """Bare media type, parameters dropped and lower-cased."""
    return (content_type or "").split(";", 1)[0].strip().lower()


class PageExtractionService:
    """
    Store uploaded PDFs and build new PDFs from selected pages.

    The storage backend is injected; the service never reads ambient
    configuration itself.
    """

    def __init__(
        self,
        storage: StorageInterface,
        extractor: Optional[PageExtractor] = None,
        naming: Optional[NamingStrategy] = None,
        upload_prefix: str = "uploads",
        generated_prefix: str = "generated"
    ):
        """
        Initialize the service.

        Args:
            storage: Storage backend for sources and results
            extractor: Page extraction engine
            naming: Naming strategy for generated documents
            upload_prefix: Key prefix for uploaded documents
            generated_prefix: Key prefix for generated documents
        """
        self.storage = storage
        self.resolver = ReferenceResolver.for_storage(storage)
        self.extractor = extractor or PageExtractor()
        self.naming = naming or NamingStrategy()
        self.upload_prefix = upload_prefix.strip("/")
        self.generated_prefix = generated_prefix.strip("/")
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: ServiceConfig, storage: StorageInterface) -> "PageExtractionService":
        return cls(
            storage=storage,
            extractor=PageExtractor(SelectionPolicy(config.selection_policy)),
            naming=NamingStrategy(token_factory=token_factory_for(config.name_token)),
            upload_prefix=config.upload_prefix,
            generated_prefix=config.generated_prefix,
        )

    def child_key(self, prefix: str, filename: str) -> str:
        """Key for a single filename under a prefix; nested paths are refused."""
        if not filename or filename in (".", "..") or "/" in filename or "\\" in filename:
            raise InvalidReferenceError(f"Invalid filename: {filename!r}")
        return f"{prefix}/{filename}"

    def _upload_filename(self, filename: Optional[str]) -> str:
        name = PurePosixPath((filename or "").replace("\\", "/")).name.strip()
        if name in ("", ".", ".."):
            return self.naming.generate_name("document.pdf")
        return name

    def upload(self, filename: Optional[str], data: bytes, content_type: Optional[str]) -> UploadResult:
        """
        Store an uploaded PDF.

        Args:
            filename: Client-supplied filename (directories are dropped)
            data: File content
            content_type: Declared MIME type

        Returns:
            UploadResult with the locator to use as a later source reference

        Raises:
            UnsupportedMediaTypeError: Declared type is not PDF (nothing written)
            StorageError: Write failed
        """
        if media_type_of(content_type) not in ACCEPTED_MEDIA_TYPES:
            self.logger.warning(f"Rejected upload {filename!r} with type {content_type!r}")
            raise UnsupportedMediaTypeError(content_type)

        key = self.child_key(self.upload_prefix, self._upload_filename(filename))
        stored = self.storage.put_object(key, data, content_type=PDF_MEDIA_TYPE)

        self.logger.info(f"Uploaded {key} ({len(data)} bytes)")
        return UploadResult(locator=stored.locator, key=key, size=stored.size)

    def extract_pages(self, source_reference: str, selected_pages: Sequence[int]) -> ExtractionResult:
        """
        Build and store a new PDF from selected pages of a stored one.

        Args:
            source_reference: Locator returned by an earlier upload
            selected_pages: 1-based page numbers

        Returns:
            ExtractionResult with the new document's locator and name

        Raises:
            InvalidReferenceError: Reference is empty or unsafe
            InvalidSelectionError: Selection is empty
            NotFoundError: Source is not in storage
            MalformedDocumentError: Source is not a readable PDF
            PageOutOfRangeError: A page number does not exist in the source
            SerializationError: Generated PDF could not be written
            StorageError: Read or write failed
        """
        key = self.resolver.resolve(source_reference)
        try:
            source_bytes = self.storage.get_object(key)
            output_bytes = self.extractor.extract(source_bytes, selected_pages)
        except DocumentServiceError as e:
            self.logger.debug(f"Extraction from {key} failed: {e}")
            raise

        name = self.naming.generate(key)
        output_key = self.child_key(self.generated_prefix, name.filename)
        stored = self.storage.put_object(
            output_key,
            output_bytes,
            content_type=PDF_MEDIA_TYPE,
            metadata={
                "base-name": quote(name.base),
                "uniqueness-token": name.token,
                "source-key": quote(key),
                "page-count": str(len(selected_pages)),
            },
        )

        self.logger.info(
            f"Extracted {len(selected_pages)} page(s) from {key} into {output_key}"
        )
        return ExtractionResult(locator=stored.locator, generated_name=name.filename)

    def download(self, reference: str) -> Tuple[bytes, StorageMetadata]:
        """
        Fetch stored content by locator.

        Returns:
            (data, metadata)

        Raises:
            InvalidReferenceError: Reference is empty or unsafe
            NotFoundError: Nothing stored under the reference
            StorageError: Read failed
        """
        return self.download_key(self.resolver.resolve(reference))

    def download_key(self, key: str) -> Tuple[bytes, StorageMetadata]:
        data = self.storage.get_object(key)
        metadata = self.storage.get_metadata(key)
        return data, metadata
