"""Pydantic request/response models for the HTTP API."""

from typing import List

from pydantic import BaseModel, Field, StrictInt


class ExtractPagesRequest(BaseModel):
    """Request model for page extraction."""
    originalPdfPath: str = Field(..., description="Locator returned by /api/upload")
    selectedPages: List[StrictInt] = Field(..., description="1-based page numbers")


class FilePathResponse(BaseModel):
    """Response model for upload and extraction."""
    message: str
    filePath: str


class ErrorResponse(BaseModel):
    """Response model for failures."""
    message: str
    error: str
    kind: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    storage_backend: str
