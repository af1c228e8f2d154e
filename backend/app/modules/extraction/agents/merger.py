"""Project Intake Merger — combines per-document extractions into one record.

This agent is PURELY PROGRAMMATIC — no LLM calls needed.

Merge Strategy (first writer wins):
  - Results are reduced in arrival order; failed results are skipped.
  - Scalar fields: the first non-null value is kept and its file recorded in
    ``sources``. A later, different value is never applied; it is surfaced
    in the conflict map next to the retained value.
  - Sequence fields: concatenated across documents, then deduplicated by
    structural equality keeping first-occurrence order.

The merge is recomputed from the full result list every time. It never
raises and never mutates its input.
"""

from __future__ import annotations

from collections.abc import Sequence
from copy import deepcopy
from typing import Any

import structlog

from app.modules.extraction.schemas import (
    CANONICAL_FIELDS,
    SCALAR_FIELDS,
    SEQUENCE_FIELDS,
    ConflictEntry,
    ExtractionResult,
    MergedData,
    MergeResult,
    SourceAttribution,
    wire_name,
)

logger = structlog.get_logger()


def _dedupe(items: list[Any]) -> list[Any]:
    """Drop structural duplicates, keeping first occurrence (O(k^2))."""
    unique: list[Any] = []
    for item in items:
        if item not in unique:
            unique.append(item)
    return unique


def merge_extracted_data(results: Sequence[ExtractionResult]) -> MergeResult:
    """Merge extracted data from multiple documents.

    Args:
        results: Every ExtractionResult collected so far, in document
                 arrival order.

    Returns:
        MergeResult with the merged record, the conflict map (keyed by
        camelCase field name) and ``has_conflicts``.
    """
    scalars: dict[str, Any] = {name: None for name in SCALAR_FIELDS}
    sequences: dict[str, list[Any]] = {name: [] for name in SEQUENCE_FIELDS}
    sources: list[SourceAttribution] = []
    source_by_field: dict[str, str] = {}
    conflicts: dict[str, list[ConflictEntry]] = {}

    for result in results:
        if not result.success or result.extracted_data is None:
            continue

        data = result.extracted_data
        source = result.file_name

        for name in CANONICAL_FIELDS:
            value = getattr(data, name)
            if value is None:
                continue

            # Sequences: combine and deduplicate
            if name in SEQUENCE_FIELDS:
                if isinstance(value, list):
                    sequences[name] = _dedupe(sequences[name] + deepcopy(value))
                continue

            # Scalars: first writer wins, disagreements become conflicts
            key = wire_name(name)
            current = scalars[name]
            if current is None:
                scalars[name] = value
                source_by_field[key] = source
                sources.append(SourceAttribution(field=key, source=source))
            elif value != current:
                if key not in conflicts:
                    conflicts[key] = [
                        ConflictEntry(value=current, source=source_by_field.get(key))
                    ]
                conflicts[key].append(ConflictEntry(value=value, source=source))

    merged = MergedData(**scalars, **sequences, sources=sources)

    if conflicts:
        logger.info(
            "Merger: conflicting values detected",
            fields=sorted(conflicts),
            documents=len(results),
        )

    return MergeResult(
        merged_data=merged,
        conflicts=conflicts,
        has_conflicts=bool(conflicts),
    )
