"""
Local Storage Manager

File-system based document storage.
"""

import hashlib
import json
import logging
import mimetypes
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any
from urllib.parse import quote

from src.common.errors import InvalidReferenceError, NotFoundError, StorageError
from .storage_interface import (
    StorageInterface,
    StorageBackend,
    StorageMetadata
)


class LocalStorageManager(StorageInterface):
    """
    Local filesystem storage.

    Features:
    - Atomic writes (temp file + rename), readers never see partial files
    - Metadata stored as JSON sidecars
    - Keys confined to the objects directory

    Directory Structure:
        base_path/
            objects/
                {key}           # Object content
            .metadata/
                {key}.json      # Object metadata

    The locator for an object is its percent-encoded key, e.g.
    ``uploads/my%20report.pdf``, which the resolver decodes back to the key.
    """

    backend_type = StorageBackend.LOCAL

    def __init__(self, base_path: str):
        """
        Initialize local storage manager.

        Args:
            base_path: Root directory for storage
        """
        self.base_path = Path(base_path)
        self.logger = logging.getLogger(__name__)

        # Create directory structure
        self.objects_dir = self.base_path / "objects"
        self.metadata_dir = self.base_path / ".metadata"

        for directory in [self.objects_dir, self.metadata_dir]:
            directory.mkdir(parents=True, exist_ok=True)

        self._objects_root = self.objects_dir.resolve()
        self.logger.info(f"Local storage initialized: {self.base_path}")

    def _get_object_path(self, key: str) -> Path:
        """Get path for object file, refusing keys outside the root."""
        path = (self.objects_dir / key).resolve()
        if path == self._objects_root or self._objects_root not in path.parents:
            raise InvalidReferenceError(f"Key escapes storage root: {key}")
        return path

    def _get_metadata_path(self, key: str) -> Path:
        """Get path for metadata file."""
        return self.metadata_dir / f"{key}.json"

    def _compute_etag(self, data: bytes) -> str:
        """Compute ETag (MD5 hash) for data."""
        return hashlib.md5(data).hexdigest()

    def _stage(self, path: Path, data: bytes) -> str:
        """Write data to a hidden temp file beside ``path`` and return its name."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except BaseException:
            self._discard(tmp_name)
            raise
        return tmp_name

    def _discard(self, tmp_name: str):
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass

    def _atomic_write(self, path: Path, data: bytes):
        tmp_name = self._stage(path, data)
        try:
            os.replace(tmp_name, path)
        except BaseException:
            self._discard(tmp_name)
            raise

    def _restore_metadata(self, key: str, previous: Optional[bytes]):
        """Put a sidecar back the way it was before a failed write."""
        metadata_path = self._get_metadata_path(key)
        try:
            if previous is None:
                metadata_path.unlink(missing_ok=True)
            else:
                self._atomic_write(metadata_path, previous)
        except OSError as e:
            self.logger.error(f"Failed to restore metadata for {key}: {e}")

    def _save_metadata(self, metadata: StorageMetadata):
        """Save metadata to JSON file."""
        metadata_dict = {
            'key': metadata.key,
            'size': metadata.size,
            'content_type': metadata.content_type,
            'etag': metadata.etag,
            'last_modified': metadata.last_modified.isoformat(),
            'metadata': metadata.metadata,
        }
        payload = json.dumps(metadata_dict, indent=2).encode("utf-8")
        self._atomic_write(self._get_metadata_path(metadata.key), payload)

    def _load_metadata(self, key: str) -> Optional[StorageMetadata]:
        """Load metadata from JSON file."""
        metadata_path = self._get_metadata_path(key)

        if not metadata_path.exists():
            return None

        try:
            with open(metadata_path, 'r') as f:
                data = json.load(f)

            return StorageMetadata(
                key=data['key'],
                locator=self.get_url(data['key']),
                size=data['size'],
                content_type=data['content_type'],
                etag=data['etag'],
                last_modified=datetime.fromisoformat(data['last_modified']),
                metadata=data.get('metadata'),
            )
        except (OSError, ValueError, KeyError) as e:
            self.logger.warning(f"Ignoring unreadable metadata for {key}: {e}")
            return None

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None
    ) -> StorageMetadata:
        """Store an object to local filesystem."""
        object_path = self._get_object_path(key)

        storage_metadata = StorageMetadata(
            key=key,
            locator=self.get_url(key),
            size=len(data),
            content_type=content_type,
            etag=self._compute_etag(data),
            last_modified=datetime.now(),
            metadata=metadata,
        )

        # Object goes live last: a failure at any step leaves the previous state visible
        metadata_path = self._get_metadata_path(key)
        tmp_name = None
        previous_metadata = None
        try:
            if metadata_path.is_file():
                previous_metadata = metadata_path.read_bytes()
            tmp_name = self._stage(object_path, data)
            self._save_metadata(storage_metadata)
            try:
                os.replace(tmp_name, object_path)
            except OSError:
                self._restore_metadata(key, previous_metadata)
                raise
        except OSError as e:
            if tmp_name:
                self._discard(tmp_name)
            self.logger.error(f"Failed to write {key}: {e}")
            raise StorageError(f"Failed to write {key}: {e}") from e

        self.logger.debug(f"Stored {key} ({len(data)} bytes)")
        return storage_metadata

    def get_object(self, key: str) -> bytes:
        """Retrieve an object from local filesystem."""
        object_path = self._get_object_path(key)
        try:
            return object_path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise NotFoundError(key)
        except OSError as e:
            self.logger.error(f"Failed to read {key}: {e}")
            raise StorageError(f"Failed to read {key}: {e}") from e

    def get_metadata(self, key: str) -> StorageMetadata:
        """Get object metadata from local filesystem."""
        object_path = self._get_object_path(key)
        if not object_path.is_file():
            raise NotFoundError(key)

        metadata = self._load_metadata(key)
        if metadata:
            return metadata

        # Object written outside this manager: derive what we can
        try:
            data = object_path.read_bytes()
            stat = object_path.stat()
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

        content_type, _ = mimetypes.guess_type(object_path.name)
        return StorageMetadata(
            key=key,
            locator=self.get_url(key),
            size=len(data),
            content_type=content_type or "application/octet-stream",
            etag=self._compute_etag(data),
            last_modified=datetime.fromtimestamp(stat.st_mtime),
        )

    def exists(self, key: str) -> bool:
        """Check if object exists in local storage."""
        return self._get_object_path(key).is_file()

    def get_url(self, key: str) -> str:
        """Local locators are the percent-encoded keys."""
        return quote(key)

    def get_storage_info(self) -> Dict[str, Any]:
        """Get local storage information."""
        total_size = 0
        object_count = 0

        for object_path in self.objects_dir.rglob("*"):
            if object_path.is_file() and not object_path.name.endswith(".tmp"):
                total_size += object_path.stat().st_size
                object_count += 1

        return {
            'backend': StorageBackend.LOCAL.value,
            'base_path': str(self.base_path),
            'object_count': object_count,
            'total_size': total_size,
        }
