"""Project Intake Extraction API — /extraction/ endpoints.

Pipelines:
  - /extract        — single document -> ExtractionResult
  - /extract-batch  — several documents, processed sequentially, then merged
  - /merge          — re-merge a client-side accumulated result list

Nothing is persisted: every response is computed from the request alone.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.core.config import settings
from app.modules.extraction.agents.orchestrator import DocumentExtractionOrchestrator
from app.modules.extraction.agents.service_client import ExtractionServiceClient
from app.modules.extraction.mapper import build_project_patch
from app.modules.extraction.schemas import (
    BatchExtractionResponse,
    DocumentFile,
    ExtractionResult,
    MergeRequest,
    MergeResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/extraction", tags=["extraction"])


def get_service_client() -> ExtractionServiceClient:
    """Dependency: LLM client built from settings (overridden in tests)."""
    return ExtractionServiceClient()


async def _read_upload(upload: UploadFile) -> DocumentFile:
    """Read an upload into a DocumentFile, enforcing the size limit."""
    content = await upload.read()
    size_mb = len(content) / (1024 * 1024)
    if size_mb > settings.extraction_max_file_size_mb:
        raise HTTPException(
            status_code=413,
            detail=(
                f"File too large: {upload.filename} ({size_mb:.1f} MB, "
                f"max {settings.extraction_max_file_size_mb} MB)."
            ),
        )
    return DocumentFile(
        name=upload.filename or "document",
        mime_type=upload.content_type or "",
        content=content,
    )


@router.post("/extract", response_model=ExtractionResult)
async def extract_document(
    file: UploadFile = File(..., description="Project document (PDF, DOCX, DOC or TXT)"),
    client: ExtractionServiceClient = Depends(get_service_client),
) -> ExtractionResult:
    """Upload one document and extract structured project data.

    Pipeline: bytes → text → normalize → LLM → ExtractionResult.
    Document-level failures come back as ``success: false`` with a 200.
    """
    document = await _read_upload(file)
    logger.info("Extraction request", filename=document.name, size=document.size)

    orchestrator = DocumentExtractionOrchestrator(client)
    return await orchestrator.process_document(document)


@router.post("/extract-batch", response_model=BatchExtractionResponse)
async def extract_document_batch(
    files: list[UploadFile] = File(..., description="Multiple project documents"),
    client: ExtractionServiceClient = Depends(get_service_client),
) -> BatchExtractionResponse:
    """Upload several documents, extract each one, and merge the results.

    Documents are processed one after another in upload order, which is
    also the order the merger uses to decide which value wins.
    """
    start = time.monotonic()

    # --- Validate ---
    max_files = settings.extraction_max_batch_files
    if len(files) == 0:
        raise HTTPException(status_code=400, detail="No files uploaded.")
    if len(files) > max_files:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files: {len(files)} (max {max_files}).",
        )

    logger.info("Batch extraction request", file_count=len(files))

    documents = [await _read_upload(upload) for upload in files]

    orchestrator = DocumentExtractionOrchestrator(client)
    results = await orchestrator.process(documents)
    merge, project_data = build_project_patch(results)

    successful = sum(1 for r in results if r.success)
    total_ms = int((time.monotonic() - start) * 1000)

    logger.info(
        "Batch extraction complete",
        successful=successful,
        failed=len(results) - successful,
        has_conflicts=merge.has_conflicts,
        duration_ms=total_ms,
    )

    return BatchExtractionResponse(
        results=results,
        merge=merge,
        project_data=project_data,
        successful_count=successful,
        failed_count=len(results) - successful,
        total_processing_time_ms=total_ms,
    )


@router.post("/merge", response_model=MergeResponse)
async def merge_results(request: MergeRequest) -> MergeResponse:
    """Merge an accumulated list of results into a project patch.

    Clients that add documents one at a time keep the result list
    themselves and post the whole list here after every addition.
    """
    merge, project_data = build_project_patch(request.results)
    return MergeResponse(merge=merge, project_data=project_data)
