"""
Storage Layer

Persists uploaded and generated documents on the local filesystem or an
S3-compatible object store behind one interface.
"""

from .s3_storage import S3StorageManager
from .local_storage import LocalStorageManager
from .storage_interface import StorageInterface, StorageBackend, StorageMetadata
from .resolver import ReferenceResolver
from .factory import create_storage

__all__ = [
    'S3StorageManager',
    'LocalStorageManager',
    'StorageInterface',
    'StorageBackend',
    'StorageMetadata',
    'ReferenceResolver',
    'create_storage'
]
