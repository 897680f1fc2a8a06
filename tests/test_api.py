import pytest
from fastapi.testclient import TestClient

from src.api.app import EXTRACT_SUCCESS, UPLOAD_SUCCESS, create_app
from src.common.errors import StorageError
from src.extraction.naming import GeneratedName
from src.storage.local_storage import LocalStorageManager
from tests.pdf_helpers import make_pdf, source_page_numbers


class UnavailableStorage(LocalStorageManager):
    def get_object(self, key):
        raise StorageError("S3 get_object failed: SlowDown", retryable=True)


class BrokenStorage(LocalStorageManager):
    def get_object(self, key):
        raise RuntimeError("unexpected")


@pytest.fixture
def client(config, storage):
    return TestClient(create_app(config=config, storage=storage))


def upload(client, name="report.pdf", pages=5, content_type="application/pdf"):
    return client.post("/api/upload", files={"pdf": (name, make_pdf(pages), content_type)})


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["storage_backend"] == "local"


def test_upload(client):
    response = upload(client)
    assert response.status_code == 200
    assert response.json() == {"message": UPLOAD_SUCCESS, "filePath": "uploads/report.pdf"}


def test_upload_rejects_non_pdf(client, storage):
    response = upload(client, name="photo.png", content_type="image/png")

    assert response.status_code == 415
    body = response.json()
    assert body["kind"] == "unsupported_media_type"
    assert body["message"] == "Error uploading file"
    assert storage.written_keys == []


def test_upload_requires_file_field(client):
    response = client.post("/api/upload", files={"document": ("a.pdf", b"%PDF", "application/pdf")})
    assert response.status_code == 422
    assert response.json()["kind"] == "invalid_request"


def test_extract_then_fetch_generated(client):
    path = upload(client, pages=10).json()["filePath"]

    response = client.post(
        "/api/extract-pages",
        json={"originalPdfPath": path, "selectedPages": [3, 1, 1]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == EXTRACT_SUCCESS
    assert body["filePath"].startswith("generated/report-")
    name = body["filePath"].split("/", 1)[1]
    assert GeneratedName.parse(name).base == "report"

    generated = client.get(f"/generated/{name}")
    assert generated.status_code == 200
    assert generated.headers["content-type"] == "application/pdf"
    assert source_page_numbers(generated.content) == [1, 1, 3]


def test_extract_page_out_of_range(client, storage):
    path = upload(client, pages=5).json()["filePath"]

    response = client.post("/api/extract-pages", json={"originalPdfPath": path, "selectedPages": [6]})

    assert response.status_code == 400
    body = response.json()
    assert body["kind"] == "page_out_of_range"
    assert body["message"] == "Error creating new PDF"
    assert storage.written_keys == ["uploads/report.pdf"]


def test_extract_missing_source(client):
    response = client.post(
        "/api/extract-pages",
        json={"originalPdfPath": "uploads/nothing.pdf", "selectedPages": [1]},
    )
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_extract_invalid_reference(client):
    response = client.post(
        "/api/extract-pages",
        json={"originalPdfPath": "../../etc/passwd", "selectedPages": [1]},
    )
    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_reference"


@pytest.mark.parametrize("pages", [["a"], [1.5], [True], "1,2"])
def test_extract_rejects_non_integer_pages(client, pages):
    response = client.post(
        "/api/extract-pages",
        json={"originalPdfPath": "uploads/report.pdf", "selectedPages": pages},
    )
    assert response.status_code == 422
    body = response.json()
    assert body["kind"] == "invalid_request"
    assert body["message"] == "Invalid request"


def test_extract_empty_selection(client):
    path = upload(client).json()["filePath"]
    response = client.post("/api/extract-pages", json={"originalPdfPath": path, "selectedPages": []})
    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_selection"


def test_extract_malformed_source(client):
    path = client.post(
        "/api/upload", files={"pdf": ("broken.pdf", b"not a pdf", "application/pdf")}
    ).json()["filePath"]

    response = client.post("/api/extract-pages", json={"originalPdfPath": path, "selectedPages": [1]})

    assert response.status_code == 422
    assert response.json()["kind"] == "malformed_document"


def test_get_uploaded_pdf_is_byte_identical(client):
    data = make_pdf(2)
    client.post("/api/upload", files={"pdf": ("same.pdf", data, "application/pdf")})

    response = client.get("/api/pdf/same.pdf")

    assert response.status_code == 200
    assert response.content == data
    assert "same.pdf" in response.headers["content-disposition"]


def test_get_uploaded_pdf_missing(client):
    response = client.get("/api/pdf/missing.pdf")
    assert response.status_code == 404
    assert response.json()["message"] == "Error retrieving file"


def test_download_by_reference(client):
    data = make_pdf(1)
    client.post("/api/upload", files={"pdf": ("my report.pdf", data, "application/pdf")})

    response = client.get("/api/download", params={"reference": "uploads/my%20report.pdf"})

    assert response.status_code == 200
    assert response.content == data


def test_transient_storage_failure_is_503(config, tmp_path):
    client = TestClient(create_app(config=config, storage=UnavailableStorage(str(tmp_path / "s"))))

    response = client.post(
        "/api/extract-pages",
        json={"originalPdfPath": "uploads/report.pdf", "selectedPages": [1]},
    )

    assert response.status_code == 503
    assert response.json()["kind"] == "storage_error"


def test_unexpected_failure_is_500(config, tmp_path):
    client = TestClient(create_app(config=config, storage=BrokenStorage(str(tmp_path / "s"))))

    response = client.get("/uploads/report.pdf")

    assert response.status_code == 500
    body = response.json()
    assert body["kind"] == "internal_error"
    assert body["error"] == "unexpected"
