"""
Document Reference Resolver

Turns a caller-supplied path or URL into the canonical storage key of the
backend in use.
"""

import posixpath
from typing import Optional
from urllib.parse import unquote, urlsplit

from src.common.errors import InvalidReferenceError
from .storage_interface import StorageBackend, StorageInterface


class ReferenceResolver:
    """
    Resolve locators back into storage keys.

    - Percent-encoding is decoded (``%20`` becomes a space).
    - S3: the public base URL is stripped; URLs on any other host are
      rejected.
    - Local: an HTTP URL contributes only its path, the key is normalized,
      and ``..`` segments are rejected since they would escape the root.
    """

    def __init__(self, backend_type: StorageBackend, public_base_url: Optional[str] = None):
        self.backend_type = backend_type
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    @classmethod
    def for_storage(cls, storage: StorageInterface) -> "ReferenceResolver":
        return cls(storage.backend_type, storage.public_base_url)

    def _strip_prefix(self, reference: str) -> str:
        if self.public_base_url:
            prefix = self.public_base_url + "/"
            if reference.startswith(prefix):
                # Keys are percent-encoded in locators; a raw ? or # ends the key
                return reference[len(prefix):].split("#", 1)[0].split("?", 1)[0]

        parts = urlsplit(reference)
        if parts.scheme in ("http", "https"):
            if self.backend_type == StorageBackend.S3:
                raise InvalidReferenceError(
                    f"Reference does not point into this storage: {reference}"
                )
            return parts.path
        return reference

    def resolve(self, raw_reference: Optional[str]) -> str:
        """
        Resolve a reference into a storage key.

        Args:
            raw_reference: Locator or path as supplied by the caller

        Returns:
            Backend-relative storage key

        Raises:
            InvalidReferenceError: Empty or unsafe reference
        """
        if raw_reference is None or not raw_reference.strip():
            raise InvalidReferenceError("Document reference is empty")

        reference = self._strip_prefix(raw_reference.strip())
        key = unquote(reference).lstrip("/")

        if self.backend_type == StorageBackend.LOCAL:
            segments = key.replace("\\", "/").split("/")
            if ".." in segments:
                raise InvalidReferenceError(f"Reference escapes storage root: {raw_reference}")
            key = posixpath.normpath(key) if key else key
            if key == ".":
                key = ""

        if not key:
            raise InvalidReferenceError(f"Reference does not name a document: {raw_reference}")
        return key
