"""Project Intake Pipeline Orchestrator.

Pure Python controller — the only LLM traffic goes through the injected
ExtractionServiceClient. Routes documents through the pipeline:

  Single-document pipeline:
    DocumentFile -> Parse -> Normalize -> Prompt -> LLM -> Parse reply -> ExtractionResult

  Batch pipeline:
    For each document, strictly one after another: single-document pipeline

Progress checkpoints per document:
    parsing(25) -> extracting(50) -> processing(75) -> complete(100)
A document that fails at any stage reports ``failed`` at the last progress
value it reached and comes back as a failed ExtractionResult; the batch
carries on with the next document.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Sequence
from typing import Union

import structlog

from app.modules.extraction.agents.prompts import build_extraction_prompt
from app.modules.extraction.agents.service_client import ExtractionServiceClient
from app.modules.extraction.document_parser import extract_text, normalize_text
from app.modules.extraction.schemas import (
    DocumentFile,
    ExtractionResult,
    ProgressEvent,
    ProgressStatus,
)

logger = structlog.get_logger()

ProgressCallback = Callable[[ProgressEvent], Union[None, Awaitable[None]]]
BatchProgressCallback = Callable[[int, ProgressEvent], Union[None, Awaitable[None]]]


async def _notify(callback: Callable[..., object] | None, *args: object) -> None:
    """Invoke a progress callback on the caller's loop; await it if async.

    A failing callback is logged and otherwise ignored: progress reporting
    never changes a document's result or stops the batch.
    """
    if callback is None:
        return
    try:
        outcome = callback(*args)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception as e:
        logger.warning(
            "Orchestrator: progress callback failed",
            progress_event=repr(args[-1]) if args else None,
            error_type=type(e).__name__,
            error=str(e),
        )


class DocumentExtractionOrchestrator:
    """Pipeline controller.

    Coordinates parse -> normalize -> LLM -> reply parsing for one or many
    documents. Documents in a batch never run concurrently, so whichever
    document comes first in the input also comes first in the results.
    """

    def __init__(
        self,
        client: ExtractionServiceClient,
        *,
        min_text_length: int | None = None,
    ) -> None:
        self.client = client
        self.min_text_length = min_text_length

    # ------------------------------------------------------------------
    # Single-document pipeline
    # ------------------------------------------------------------------

    async def process_document(
        self,
        file: DocumentFile,
        on_progress: ProgressCallback | None = None,
    ) -> ExtractionResult:
        """Process one document through the full pipeline.

        Steps:
          1. Extract raw text (PDF / DOCX / TXT) and normalize it
          2. Build the instruction and call the LLM
          3. Locate + narrow the JSON in the reply
          4. Return a successful ExtractionResult

        Never raises for document-level problems: every failure becomes
        ``ExtractionResult(success=False, error=...)``.
        """
        progress = 0

        async def checkpoint(status: ProgressStatus, value: int) -> None:
            nonlocal progress
            progress = value
            await _notify(on_progress, ProgressEvent(status=status, progress=value))

        logger.info("Orchestrator: processing document", file=file.name, bytes=file.size)

        try:
            # Step 1: Parse + normalize
            await checkpoint("parsing", 25)
            raw_text = await extract_text(file)
            text = normalize_text(raw_text, self.min_text_length)

            # Step 2: Call the LLM
            await checkpoint("extracting", 50)
            prompt = build_extraction_prompt(text, file.name)
            reply = await self.client.complete(prompt, file_name=file.name)

            # Step 3: Parse the reply
            await checkpoint("processing", 75)
            extracted = self.client.parse_response(reply)

        except Exception as e:
            logger.error(
                "Orchestrator: document failed",
                file=file.name,
                error_type=type(e).__name__,
                error=str(e),
            )
            result = ExtractionResult.failed(file.name, str(e))
            await _notify(on_progress, ProgressEvent(status="failed", progress=progress))
            return result

        result = ExtractionResult.succeeded(
            file.name,
            extracted,
            document_length=len(text),
            model=self.client.model,
        )
        await checkpoint("complete", 100)

        logger.info(
            "Orchestrator: document processed",
            file=file.name,
            document_length=len(text),
            populated=sorted(extracted.model_dump(exclude_none=True)),
        )
        return result

    # ------------------------------------------------------------------
    # Batch pipeline
    # ------------------------------------------------------------------

    async def process(
        self,
        files: Sequence[DocumentFile],
        on_progress: BatchProgressCallback | None = None,
    ) -> list[ExtractionResult]:
        """Process documents sequentially, results in input order.

        Call it again with only newly selected files to extend a session;
        the caller appends the returned results to its accumulated list.

        Args:
            files: Documents to process.
            on_progress: Optional ``(index, ProgressEvent)`` callback, index
                         being the file's position in ``files``.
        """
        results: list[ExtractionResult] = []
        total = len(files)

        for idx, file in enumerate(files):
            logger.info(f"Orchestrator: batch [{idx + 1}/{total}]", file=file.name)

            def per_file(event: ProgressEvent, _idx: int = idx) -> Awaitable[None]:
                return _notify(on_progress, _idx, event)

            results.append(await self.process_document(file, per_file))

        logger.info(
            "Orchestrator: batch complete",
            total=total,
            successful=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
        )
        return results
