"""
Storage Interface

Abstract interface for document storage backends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any


class StorageBackend(Enum):
    """Supported storage backend types."""
    LOCAL = "local"
    S3 = "s3"


@dataclass
class StorageMetadata:
    """Metadata for stored objects."""
    key: str
    locator: str
    size: int
    content_type: str
    etag: str
    last_modified: datetime
    metadata: Optional[Dict[str, str]] = None


class StorageInterface(ABC):
    """
    Abstract interface for storage backends.

    Keys are backend-relative paths (``uploads/report.pdf``). Locators are
    the opaque strings handed back to callers; only the backend that
    produced a locator knows how to turn it back into a key.

    Implementations must treat data as opaque bytes, must not impose a size
    ceiling, and must be safe for concurrent reads and writes to distinct
    keys.
    """

    backend_type: StorageBackend

    @property
    def public_base_url(self) -> Optional[str]:
        """Prefix that locators carry in front of the key, if any."""
        return None

    @abstractmethod
    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None
    ) -> StorageMetadata:
        """
        Store an object.

        Args:
            key: Object key/path
            data: Object data
            content_type: MIME type
            metadata: Custom metadata

        Returns:
            StorageMetadata including the locator for the stored object

        Raises:
            StorageError: Write failed
        """
        pass

    @abstractmethod
    def get_object(self, key: str) -> bytes:
        """
        Retrieve an object.

        Args:
            key: Object key/path

        Returns:
            Object data

        Raises:
            NotFoundError: Object not found
            StorageError: Read failed
        """
        pass

    @abstractmethod
    def get_metadata(self, key: str) -> StorageMetadata:
        """
        Get object metadata without downloading.

        Raises:
            NotFoundError: Object not found
            StorageError: Lookup failed
        """
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if object exists."""
        pass

    @abstractmethod
    def get_url(self, key: str) -> str:
        """Return the locator a caller would receive for ``key``."""
        pass

    @abstractmethod
    def get_storage_info(self) -> Dict[str, Any]:
        """
        Get storage backend information.

        Returns:
            Dict with backend type and location details
        """
        pass
