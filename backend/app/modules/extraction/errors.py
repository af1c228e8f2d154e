"""Exceptions raised while turning one document into an ExtractionResult.

All of them are caught at the orchestrator's per-file boundary and reported
as a failed result, so a single bad document never aborts a batch.
"""

from __future__ import annotations

from typing import Any


class ExtractionError(Exception):
    """Base exception for the document extraction pipeline."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class UnsupportedFormat(ExtractionError):
    """Neither the declared MIME type nor the file extension is supported."""

    def __init__(self, file_type: str) -> None:
        super().__init__(f"Unsupported file type: {file_type}", {"file_type": file_type})
        self.file_type = file_type


class ParseError(ExtractionError):
    """A format decoder (PDF, DOCX, TXT) failed."""

    def __init__(self, format: str, message: str) -> None:
        super().__init__(f"Failed to parse {format}: {message}", {"format": format})
        self.format = format


class InsufficientText(ExtractionError):
    """Normalized document text is too short to be worth sending to the LLM."""

    def __init__(self, length: int, min_length: int) -> None:
        super().__init__(
            "Document contains insufficient text for extraction",
            {"length": length, "min_length": min_length},
        )


class ServiceError(ExtractionError):
    """Transport or provider failure while calling the LLM."""


class MalformedResponse(ExtractionError):
    """The LLM reply contained no parseable JSON object."""
