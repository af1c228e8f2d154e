"""Unit tests for the per-document pipeline and sequential batch processing."""

from __future__ import annotations

import json
from unittest.mock import patch

from app.modules.extraction import document_parser
from app.modules.extraction.agents.orchestrator import DocumentExtractionOrchestrator
from app.modules.extraction.errors import ServiceError
from app.modules.extraction.schemas import DocumentFile, ExtractionResult, ProgressEvent

LONG_TEXT = (
    b"PROJECT AGREEMENT. Client: Acme Corporation. Project Name: Website Redesign. "
    b"Budget: $50,000. Timeline: 3 months."
)


def _txt(name: str, content: bytes = LONG_TEXT) -> DocumentFile:
    return DocumentFile(name=name, mime_type="text/plain", content=content)


def _reply(**fields: object) -> str:
    return json.dumps(fields)


def _assert_outcome_invariant(result: ExtractionResult) -> None:
    if result.success:
        assert result.extracted_data is not None and result.error is None
    else:
        assert result.extracted_data is None and result.error


# ---------------------------------------------------------------------------
# Single document
# ---------------------------------------------------------------------------


async def test_successful_document(fake_llm) -> None:
    fake_llm.replies = [_reply(projectName="Website Redesign", budget="$50,000")]
    orchestrator = DocumentExtractionOrchestrator(fake_llm)

    result = await orchestrator.process_document(_txt("contract.txt"))

    assert result.success is True
    assert result.file_name == "contract.txt"
    assert result.extracted_data.project_name == "Website Redesign"
    assert result.extracted_data.budget == "$50,000"
    assert result.metadata.model == "fake-model"
    assert result.metadata.document_length == len(LONG_TEXT)
    assert result.metadata.extracted_at
    _assert_outcome_invariant(result)


async def test_prompt_carries_normalized_text_and_name(fake_llm) -> None:
    fake_llm.replies = [_reply(projectName="X")]
    orchestrator = DocumentExtractionOrchestrator(fake_llm)

    await orchestrator.process_document(_txt("notes.txt", b"Kickoff   notes\n\n" + LONG_TEXT))

    prompt = fake_llm.prompts[0]
    assert "Document: notes.txt" in prompt
    assert "Kickoff notes PROJECT AGREEMENT." in prompt


async def test_progress_checkpoints_in_order(fake_llm) -> None:
    fake_llm.replies = [_reply(projectName="Test Project")]
    events: list[ProgressEvent] = []
    orchestrator = DocumentExtractionOrchestrator(fake_llm)

    await orchestrator.process_document(_txt("a.txt"), events.append)

    assert [(e.status, e.progress) for e in events] == [
        ("parsing", 25),
        ("extracting", 50),
        ("processing", 75),
        ("complete", 100),
    ]


async def test_async_progress_callback_is_awaited(fake_llm) -> None:
    fake_llm.replies = [_reply(projectName="Test Project")]
    seen: list[str] = []

    async def on_progress(event: ProgressEvent) -> None:
        seen.append(event.status)

    await DocumentExtractionOrchestrator(fake_llm).process_document(_txt("a.txt"), on_progress)

    assert seen == ["parsing", "extracting", "processing", "complete"]


async def test_insufficient_text_fails_before_llm(fake_llm) -> None:
    events: list[ProgressEvent] = []
    orchestrator = DocumentExtractionOrchestrator(fake_llm)

    result = await orchestrator.process_document(_txt("short.txt", b"Short"), events.append)

    assert result.success is False
    assert "insufficient text" in result.error
    assert fake_llm.prompts == []
    assert [(e.status, e.progress) for e in events] == [("parsing", 25), ("failed", 25)]
    _assert_outcome_invariant(result)


async def test_malformed_reply_fails_at_processing(fake_llm) -> None:
    fake_llm.replies = ["This is not JSON at all"]
    events: list[ProgressEvent] = []

    result = await DocumentExtractionOrchestrator(fake_llm).process_document(_txt("a.txt"), events.append)

    assert result.success is False
    assert "Failed to extract JSON" in result.error
    assert events[-1] == ProgressEvent(status="failed", progress=75)


async def test_service_error_becomes_failed_result(fake_llm) -> None:
    fake_llm.replies = [ServiceError("Extraction service request failed: 529 overloaded")]

    result = await DocumentExtractionOrchestrator(fake_llm).process_document(_txt("a.txt"))

    assert result.success is False
    assert result.error == "Extraction service request failed: 529 overloaded"
    assert result.metadata.document_length is None


async def test_unsupported_format_becomes_failed_result(fake_llm) -> None:
    file = DocumentFile(name="photo.png", mime_type="image/png", content=b"\x89PNG")

    result = await DocumentExtractionOrchestrator(fake_llm).process_document(file)

    assert result.success is False
    assert result.error == "Unsupported file type: image/png"


async def test_min_text_length_override(fake_llm) -> None:
    fake_llm.replies = [_reply(projectName="Tiny")]
    orchestrator = DocumentExtractionOrchestrator(fake_llm, min_text_length=3)

    result = await orchestrator.process_document(_txt("tiny.txt", b"Tiny doc"))

    assert result.success is True


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


async def test_batch_preserves_input_order(fake_llm) -> None:
    fake_llm.replies = [_reply(projectName="Project 1"), _reply(projectName="Project 2")]
    orchestrator = DocumentExtractionOrchestrator(fake_llm)

    results = await orchestrator.process([_txt("file1.txt"), _txt("file2.txt")])

    assert [r.file_name for r in results] == ["file1.txt", "file2.txt"]
    assert results[0].extracted_data.project_name == "Project 1"
    assert results[1].extracted_data.project_name == "Project 2"


async def test_batch_isolates_decode_failure(fake_llm) -> None:
    def boom(_: bytes) -> str:
        raise RuntimeError("PDF parsing failed")

    fake_llm.replies = [_reply(projectName="Survivor")]
    files = [
        DocumentFile(name="broken.pdf", mime_type="application/pdf", content=b"%PDF"),
        _txt("good.txt"),
    ]

    with patch.dict(document_parser._DECODERS, {"PDF": boom}):
        results = await DocumentExtractionOrchestrator(fake_llm).process(files)

    assert len(results) == 2
    assert results[0].success is False
    assert results[0].error == "Failed to parse PDF: PDF parsing failed"
    assert results[1].success is True
    assert results[1].extracted_data.project_name == "Survivor"
    for r in results:
        _assert_outcome_invariant(r)


async def test_batch_progress_is_tagged_with_file_index(fake_llm) -> None:
    fake_llm.replies = [_reply(projectName="A"), _reply(projectName="B")]
    seen: list[tuple[int, str]] = []

    await DocumentExtractionOrchestrator(fake_llm).process(
        [_txt("a.txt"), _txt("b.txt")],
        lambda idx, event: seen.append((idx, event.status)),
    )

    assert seen == [
        (0, "parsing"), (0, "extracting"), (0, "processing"), (0, "complete"),
        (1, "parsing"), (1, "extracting"), (1, "processing"), (1, "complete"),
    ]


async def test_batch_runs_documents_one_at_a_time(fake_llm) -> None:
    # The second document must not start before the first one has a result.
    fake_llm.replies = [_reply(projectName="A"), _reply(projectName="B")]
    timeline: list[tuple[int, str]] = []

    await DocumentExtractionOrchestrator(fake_llm).process(
        [_txt("a.txt"), _txt("b.txt")],
        lambda idx, event: timeline.append((idx, event.status)),
    )

    first_done = timeline.index((0, "complete"))
    second_start = timeline.index((1, "parsing"))
    assert first_done < second_start


async def test_raising_progress_callback_does_not_abort_batch(fake_llm) -> None:
    fake_llm.replies = [_reply(projectName="A"), _reply(projectName="B")]
    seen: list[tuple[int, str]] = []

    def on_progress(idx: int, event: ProgressEvent) -> None:
        seen.append((idx, event.status))
        if idx == 0 and event.status == "complete":
            raise RuntimeError("ui glitch")

    results = await DocumentExtractionOrchestrator(fake_llm).process(
        [_txt("a.txt"), _txt("b.txt")], on_progress
    )

    assert [r.success for r in results] == [True, True]
    assert results[1].extracted_data.project_name == "B"
    assert (1, "complete") in seen


async def test_raising_callback_does_not_change_document_result(fake_llm) -> None:
    fake_llm.replies = [_reply(projectName="Kept")]

    async def on_progress(event: ProgressEvent) -> None:
        raise RuntimeError(f"callback broke at {event.status}")

    result = await DocumentExtractionOrchestrator(fake_llm).process_document(
        _txt("a.txt"), on_progress
    )

    assert result.success is True
    assert result.extracted_data.project_name == "Kept"


async def test_raising_callback_on_failed_event_still_returns_result(fake_llm) -> None:
    def on_progress(event: ProgressEvent) -> None:
        if event.status == "failed":
            raise RuntimeError("ui glitch")

    result = await DocumentExtractionOrchestrator(fake_llm).process_document(
        _txt("short.txt", b"Short"), on_progress
    )

    assert result.success is False
    assert "insufficient text" in result.error


async def test_empty_batch(fake_llm) -> None:
    assert await DocumentExtractionOrchestrator(fake_llm).process([]) == []


async def test_incremental_batches_append_to_caller_list(fake_llm) -> None:
    fake_llm.replies = [_reply(projectName="First"), _reply(budget="$10")]
    orchestrator = DocumentExtractionOrchestrator(fake_llm)
    accumulated: list[ExtractionResult] = []

    new = await orchestrator.process([_txt("one.txt")])
    assert len(new) == 1
    accumulated.extend(new)

    new = await orchestrator.process([_txt("two.txt")])
    assert [r.file_name for r in new] == ["two.txt"]
    accumulated.extend(new)

    assert [r.file_name for r in accumulated] == ["one.txt", "two.txt"]
