"""
Page Extraction API

FastAPI application exposing upload, page extraction and retrieval.
Run with: uvicorn src.api.app:create_app --factory
"""

import logging
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, File, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from src.common.config import ServiceConfig
from src.common.errors import DocumentServiceError
from src.extraction.service import PageExtractionService
from src.storage.factory import create_storage
from src.storage.storage_interface import StorageInterface
from .models import ErrorResponse, ExtractPagesRequest, FilePathResponse, HealthResponse


UPLOAD_SUCCESS = "File Uploaded Successfully"
UPLOAD_FAILURE = "Error uploading file"
EXTRACT_SUCCESS = "New PDF Created Successfully"
EXTRACT_FAILURE = "Error creating new PDF"
DOWNLOAD_FAILURE = "Error retrieving file"


class PageExtractionAPI:
    """
    FastAPI application for document upload and page extraction.

    Features:
    - Single-file PDF upload
    - New PDF from selected pages of an uploaded one
    - Retrieval of uploaded and generated files through the storage backend
    - Uniform {message, error, kind} failure bodies
    """

    def __init__(self, service: PageExtractionService, config: Optional[ServiceConfig] = None):
        """
        Initialize the API.

        Args:
            service: Page extraction service bound to a storage backend
            config: Service configuration (CORS origins)
        """
        self.service = service
        self.config = config or ServiceConfig()
        self.logger = logging.getLogger(__name__)
        self.app = self._create_app()

    def _error_response(self, message: str, error: Exception) -> JSONResponse:
        """Turn a failure into a JSON error body with the matching status."""
        if isinstance(error, DocumentServiceError):
            status_code, kind = error.status_code, error.kind
            if error.is_client_error:
                self.logger.warning(f"{message}: {error}")
            else:
                self.logger.error(f"{message}: {error}")
        else:
            status_code, kind = 500, "internal_error"
            self.logger.error(f"{message}: {error}", exc_info=error)

        body = ErrorResponse(message=message, error=str(error), kind=kind)
        return JSONResponse(status_code=status_code, content=body.model_dump())

    def _file_response(self, data: bytes, content_type: str, key: str) -> Response:
        filename = key.rsplit("/", 1)[-1]
        return Response(
            content=data,
            media_type=content_type,
            headers={"Content-Disposition": f"inline; filename*=UTF-8''{quote(filename)}"}
        )

    async def _serve_key(self, key_builder, *args) -> Response:
        try:
            key = key_builder(*args)
            data, metadata = await run_in_threadpool(self.service.download_key, key)
            return self._file_response(data, metadata.content_type, key)
        except Exception as e:
            return self._error_response(DOWNLOAD_FAILURE, e)

    def _create_app(self) -> FastAPI:
        """Create and configure FastAPI application."""
        app = FastAPI(
            title="PDF Page Extraction API",
            description="Upload PDFs and build new PDFs from selected pages",
            version="1.0.0"
        )
        app.state.service = self.service

        app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @app.exception_handler(RequestValidationError)
        async def validation_error_handler(request: Request, exc: RequestValidationError):
            details = "; ".join(
                f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
                for err in exc.errors()
            )
            self.logger.warning(f"Invalid request to {request.url.path}: {details}")
            body = ErrorResponse(message="Invalid request", error=details, kind="invalid_request")
            return JSONResponse(status_code=422, content=body.model_dump())

        @app.get("/health", response_model=HealthResponse, tags=["Health"])
        async def health_check():
            """Health check endpoint."""
            return HealthResponse(
                status="healthy",
                timestamp=datetime.now().isoformat(),
                storage_backend=self.service.storage.backend_type.value,
            )

        @app.post("/api/upload", response_model=FilePathResponse, tags=["Documents"])
        async def upload_pdf(pdf: UploadFile = File(...)):
            """Upload a single PDF under the form field ``pdf``."""
            try:
                data = await pdf.read()
                result = await run_in_threadpool(
                    self.service.upload, pdf.filename, data, pdf.content_type
                )
                return FilePathResponse(message=UPLOAD_SUCCESS, filePath=result.locator)
            except Exception as e:
                return self._error_response(UPLOAD_FAILURE, e)

        @app.post("/api/extract-pages", response_model=FilePathResponse, tags=["Documents"])
        async def extract_pages(request: ExtractPagesRequest):
            """Create a new PDF from selected pages of an uploaded one."""
            try:
                result = await run_in_threadpool(
                    self.service.extract_pages, request.originalPdfPath, request.selectedPages
                )
                return FilePathResponse(message=EXTRACT_SUCCESS, filePath=result.locator)
            except Exception as e:
                return self._error_response(EXTRACT_FAILURE, e)

        @app.get("/api/pdf/{filename}", tags=["Files"])
        async def download_uploaded(filename: str):
            """Download an uploaded PDF by filename."""
            return await self._serve_key(self.service.child_key, self.service.upload_prefix, filename)

        @app.get("/api/download", tags=["Files"])
        async def download_by_reference(reference: str = Query(..., description="Locator of a stored file")):
            """Download any stored file by the locator the API returned."""
            return await self._serve_key(self.service.resolver.resolve, reference)

        @app.get(f"/{self.service.upload_prefix}/{{filename}}", tags=["Files"])
        async def serve_upload(filename: str):
            return await self._serve_key(self.service.child_key, self.service.upload_prefix, filename)

        @app.get(f"/{self.service.generated_prefix}/{{filename}}", tags=["Files"])
        async def serve_generated(filename: str):
            return await self._serve_key(self.service.child_key, self.service.generated_prefix, filename)

        return app


def create_app(
    config: Optional[ServiceConfig] = None,
    storage: Optional[StorageInterface] = None
) -> FastAPI:
    """
    Factory function to create the API app.

    Usage:
        uvicorn src.api.app:create_app --factory
    """
    config = config or ServiceConfig.from_env()
    storage = storage or create_storage(config)
    service = PageExtractionService.from_config(config, storage)
    logging.getLogger(__name__).info(f"Starting API with {config.describe()}")
    return PageExtractionAPI(service, config).app
