import logging

import pytest

from src.common.errors import (
    InvalidReferenceError,
    InvalidSelectionError,
    MalformedDocumentError,
    NotFoundError,
    PageOutOfRangeError,
    StorageError,
    UnsupportedMediaTypeError,
)
from src.common.config import ServiceConfig
from src.extraction.naming import GeneratedName, NamingStrategy, TimestampToken
from src.extraction.page_extractor import SelectionPolicy
from src.extraction.service import PageExtractionService
from tests.pdf_helpers import make_pdf, source_page_numbers


def generated_files(storage):
    folder = storage.objects_dir / "generated"
    return sorted(p.name for p in folder.iterdir()) if folder.exists() else []


def test_upload_then_download_is_byte_identical(service):
    data = make_pdf(3)
    result = service.upload("report.pdf", data, "application/pdf")

    assert result.locator == "uploads/report.pdf"
    downloaded, metadata = service.download(result.locator)
    assert downloaded == data
    assert metadata.content_type == "application/pdf"


def test_upload_rejects_non_pdf_before_writing(service, storage):
    with pytest.raises(UnsupportedMediaTypeError) as excinfo:
        service.upload("photo.png", b"\x89PNG", "image/png")
    assert excinfo.value.status_code == 415
    assert storage.written_keys == []


def test_upload_rejects_missing_content_type(service, storage):
    with pytest.raises(UnsupportedMediaTypeError):
        service.upload("report.pdf", make_pdf(1), None)
    assert storage.written_keys == []


def test_upload_accepts_media_type_parameters(service):
    result = service.upload("report.pdf", make_pdf(1), "Application/PDF; charset=binary")
    assert result.key == "uploads/report.pdf"


def test_upload_drops_client_directories(service):
    result = service.upload("../../etc/evil.pdf", make_pdf(1), "application/pdf")
    assert result.key == "uploads/evil.pdf"


def test_upload_without_filename_gets_generated_name(service):
    result = service.upload("", make_pdf(1), "application/pdf")
    assert GeneratedName.parse(result.key.split("/")[-1]).base == "document"


def test_extract_scenario_ten_pages(service):
    upload = service.upload("report.pdf", make_pdf(10), "application/pdf")

    result = service.extract_pages(upload.locator, [3, 1, 1])

    assert result.locator == f"generated/{result.generated_name}"
    assert GeneratedName.parse(result.generated_name).base == "report"
    data, _ = service.download(result.locator)
    assert source_page_numbers(data) == [1, 1, 3]


def test_extract_records_name_metadata(service, storage):
    upload = service.upload("report.pdf", make_pdf(2), "application/pdf")
    result = service.extract_pages(upload.locator, [2])

    metadata = storage.get_metadata(result.locator).metadata
    name = GeneratedName.parse(result.generated_name)
    assert metadata["base-name"] == "report"
    assert metadata["uniqueness-token"] == name.token
    assert metadata["source-key"] == "uploads/report.pdf"
    assert metadata["page-count"] == "1"


def test_out_of_range_persists_nothing(service, storage):
    upload = service.upload("five.pdf", make_pdf(5), "application/pdf")

    with pytest.raises(PageOutOfRangeError):
        service.extract_pages(upload.locator, [6])

    assert storage.written_keys == ["uploads/five.pdf"]
    assert generated_files(storage) == []


def test_malformed_source_persists_nothing(service, storage):
    upload = service.upload("broken.pdf", b"this is not a pdf", "application/pdf")

    with pytest.raises(MalformedDocumentError):
        service.extract_pages(upload.locator, [1])
    assert generated_files(storage) == []


def test_client_errors_are_not_warned_by_service(service, caplog):
    upload = service.upload("five.pdf", make_pdf(5), "application/pdf")

    with caplog.at_level(logging.WARNING, logger="src.extraction.service"):
        with pytest.raises(PageOutOfRangeError):
            service.extract_pages(upload.locator, [6])

    assert [r for r in caplog.records if r.name == "src.extraction.service"] == []


def test_empty_selection(service):
    upload = service.upload("report.pdf", make_pdf(2), "application/pdf")
    with pytest.raises(InvalidSelectionError):
        service.extract_pages(upload.locator, [])


def test_missing_source(service):
    with pytest.raises(NotFoundError):
        service.extract_pages("uploads/nothing.pdf", [1])


def test_traversal_reference_rejected_without_storage_access(service, storage):
    with pytest.raises(InvalidReferenceError):
        service.extract_pages("uploads/../../secret.pdf", [1])
    assert storage.written_keys == []


def test_percent_encoded_reference(service):
    upload = service.upload("my report.pdf", make_pdf(2), "application/pdf")
    assert upload.locator == "uploads/my%20report.pdf"
    assert upload.key == "uploads/my report.pdf"

    result = service.extract_pages("uploads/my%20report.pdf", [2])

    assert GeneratedName.parse(result.generated_name).base == "my report"


@pytest.mark.parametrize("filename", ["a%41b.pdf", "50%25 off.pdf", "café.pdf"])
def test_locator_is_usable_verbatim(service, filename):
    data = make_pdf(3)
    upload = service.upload(filename, data, "application/pdf")
    assert upload.key == f"uploads/{filename}"

    downloaded, _ = service.download(upload.locator)
    assert downloaded == data

    result = service.extract_pages(upload.locator, [2])
    assert GeneratedName.parse(result.generated_name).base == filename.rsplit(".", 1)[0]
    generated, _ = service.download(result.locator)
    assert source_page_numbers(generated) == [2]


def test_failed_metadata_write_leaves_no_output(service, storage, monkeypatch):
    upload = service.upload("report.pdf", make_pdf(2), "application/pdf")

    def failing_save(metadata):
        raise OSError("disk full")

    monkeypatch.setattr(storage, "_save_metadata", failing_save)
    with pytest.raises(StorageError):
        service.extract_pages(upload.locator, [1])

    assert generated_files(storage) == []


def test_same_millisecond_extractions_get_distinct_names(storage):
    naming = NamingStrategy(token_factory=TimestampToken(clock=lambda: 1700000000.0))
    service = PageExtractionService(storage, naming=naming)
    upload = service.upload("report.pdf", make_pdf(3), "application/pdf")

    first = service.extract_pages(upload.locator, [1])
    second = service.extract_pages(upload.locator, [1])

    assert first.generated_name != second.generated_name
    assert len(generated_files(storage)) == 2


def test_chained_extraction_keeps_base_name(service):
    upload = service.upload("report.pdf", make_pdf(4), "application/pdf")
    first = service.extract_pages(upload.locator, [4, 2, 3])
    second = service.extract_pages(first.locator, [1])

    assert GeneratedName.parse(second.generated_name).base == "report"
    data, _ = service.download(second.locator)
    assert source_page_numbers(data) == [2]


def test_child_key_refuses_nested_names(service):
    for name in ("", ".", "..", "a/b.pdf", "a\\b.pdf"):
        with pytest.raises(InvalidReferenceError):
            service.child_key("uploads", name)


def test_from_config(storage):
    config = ServiceConfig(
        selection_policy="preserve",
        name_token="timestamp",
        upload_prefix="in/",
        generated_prefix="/out",
    )
    service = PageExtractionService.from_config(config, storage)

    assert service.extractor.policy == SelectionPolicy.PRESERVE
    assert isinstance(service.naming.token_factory, TimestampToken)
    upload = service.upload("report.pdf", make_pdf(3), "application/pdf")
    assert upload.key == "in/report.pdf"

    result = service.extract_pages(upload.locator, [3, 1])
    assert result.locator.startswith("out/report-")
    data, _ = service.download(result.locator)
    assert source_page_numbers(data) == [3, 1]
