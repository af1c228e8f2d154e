#!/usr/bin/env python3
"""Project Intake Document Extraction Runner.

Runs local project documents through the extraction pipeline:
  1. Parse each document (PDF / DOCX / TXT) and extract fields via the LLM
  2. Merge all successful extractions (first document wins, conflicts flagged)
  3. Map the merged record onto the project patch

Usage:
    # Extract and merge a set of documents
    python -m scripts.extract_documents contract.pdf specs.docx notes.txt

    # Every supported document in a folder
    python -m scripts.extract_documents --input-dir ./intake

    # Specific provider/model, write JSON to a file
    python -m scripts.extract_documents contract.pdf --provider openai --model gpt-4.1 --output out.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path

# Add backend to path for imports
_backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_backend))

# Load .env before importing app modules
from dotenv import load_dotenv
load_dotenv(_backend / ".env")

import structlog

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

from app.modules.extraction.agents.orchestrator import DocumentExtractionOrchestrator
from app.modules.extraction.agents.service_client import ExtractionServiceClient
from app.modules.extraction.mapper import build_project_patch
from app.modules.extraction.schemas import DocumentFile, ProgressEvent

logger = structlog.get_logger()

SUPPORTED_SUFFIXES = {".pdf", ".docx", ".doc", ".txt"}


# ---------------------------------------------------------------------------
# Document discovery
# ---------------------------------------------------------------------------


def discover_documents(paths: list[Path], input_dir: Path | None) -> list[Path]:
    """Explicit paths first, then supported files under ``input_dir`` (sorted)."""
    found: list[Path] = []
    for p in paths:
        if p.is_file():
            found.append(p)
        else:
            logger.error("Document not found", path=str(p))
    if input_dir is not None:
        if not input_dir.exists():
            logger.error("Input directory not found", path=str(input_dir))
        else:
            found.extend(
                p for p in sorted(input_dir.iterdir())
                if p.is_file()
                and p.suffix.lower() in SUPPORTED_SUFFIXES
                and not p.name.startswith((".", "~"))
            )
    return found


def load_document(path: Path) -> DocumentFile:
    mime_type, _ = mimetypes.guess_type(path.name)
    return DocumentFile(name=path.name, mime_type=mime_type or "", content=path.read_bytes())


def load_documents(paths: list[Path]) -> list[DocumentFile]:
    """Read every path; unreadable files are logged and left out."""
    documents = []
    for path in paths:
        try:
            documents.append(load_document(path))
        except OSError as e:
            logger.error("Document unreadable", path=str(path), error=str(e))
    return documents


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def _print_progress(index: int, event: ProgressEvent, names: list[str]) -> None:
    print(f"  [{index + 1}/{len(names)}] {names[index]}: {event.status} ({event.progress}%)")


async def run(args: argparse.Namespace) -> int:
    paths = discover_documents(args.files, args.input_dir)

    print(f"\n{'='*60}")
    print(f"  PROJECT INTAKE EXTRACTION")
    print(f"{'='*60}")
    print(f"  Documents:     {len(paths)}")
    print(f"  Provider:      {args.provider or 'default'}")
    print(f"  Model:         {args.model or 'default'}")
    print(f"{'='*60}\n")

    if not paths:
        print("No documents found.")
        return 1

    documents = load_documents(paths)
    if not documents:
        print("No readable documents.")
        return 1
    names = [d.name for d in documents]

    client = ExtractionServiceClient(provider=args.provider, model=args.model)
    orchestrator = DocumentExtractionOrchestrator(client)
    results = await orchestrator.process(
        documents,
        lambda idx, event: _print_progress(idx, event, names),
    )

    merge, project_data = build_project_patch(results)

    print(f"\n{'='*60}")
    print(f"  DOCUMENTS")
    print(f"{'='*60}")
    for r in results:
        status = "OK" if r.success else f"FAIL: {r.error}"
        print(f"  {r.file_name}: {status}")

    if merge.has_conflicts:
        print(f"\n{'='*60}")
        print(f"  CONFLICTS")
        print(f"{'='*60}")
        for field_name, entries in merge.conflicts.items():
            values = ", ".join(f"{e.value!r} ({e.source})" for e in entries)
            print(f"  {field_name}: {values}")
    print(f"{'='*60}\n")

    payload = {
        "results": [r.model_dump(mode="json", by_alias=True) for r in results],
        "merge": merge.model_dump(mode="json", by_alias=True),
        "projectData": project_data.model_dump(mode="json", by_alias=True),
    }
    if args.output:
        args.output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info(f"Results exported: {args.output}")
    else:
        print(json.dumps(payload["projectData"], indent=2))

    return 0 if any(r.success for r in results) else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Project Intake Document Extraction")
    parser.add_argument("files", nargs="*", type=Path,
                        help="Documents to process, in merge order")
    parser.add_argument("--input-dir", type=Path, default=None,
                        help="Also process every supported document in this folder")
    parser.add_argument("--provider", type=str, default=None,
                        help="LLM provider (anthropic, openai, google)")
    parser.add_argument("--model", type=str, default=None,
                        help="LLM model name")
    parser.add_argument("--output", type=Path, default=None,
                        help="Write results, merge and project patch as JSON")

    args = parser.parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
