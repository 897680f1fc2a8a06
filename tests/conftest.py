import pytest

from src.common.config import ServiceConfig
from src.extraction.service import PageExtractionService
from src.storage.local_storage import LocalStorageManager


class RecordingStorage(LocalStorageManager):
    """Local storage that remembers every key written."""

    def __init__(self, base_path: str):
        super().__init__(base_path)
        self.written_keys = []

    def put_object(self, key, data, content_type="application/octet-stream", metadata=None):
        self.written_keys.append(key)
        return super().put_object(key, data, content_type=content_type, metadata=metadata)


@pytest.fixture
def storage(tmp_path):
    return RecordingStorage(str(tmp_path / "storage"))


@pytest.fixture
def service(storage):
    return PageExtractionService(storage)


@pytest.fixture
def config(tmp_path):
    return ServiceConfig(storage_path=str(tmp_path / "storage"))
