"""Map the merged extraction record onto the project record's own schema."""

from __future__ import annotations

from collections.abc import Sequence

from app.modules.extraction.agents.merger import merge_extracted_data
from app.modules.extraction.schemas import (
    ExtractedFields,
    ExtractionResult,
    MergeResult,
    ProjectDataPatch,
    ScalarValue,
)


def _text(value: ScalarValue | None) -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return value if isinstance(value, str) else str(value)


def map_to_project_data(extracted: ExtractedFields) -> ProjectDataPatch:
    """Build a fresh ProjectDataPatch; missing values become "" or []."""
    return ProjectDataPatch(
        name=_text(extracted.project_name),
        client_name=_text(extracted.client_name) or _text(extracted.client_company),
        budget=_text(extracted.budget),
        timeline=_text(extracted.timeline),
        start_date=_text(extracted.start_date),
        end_date=_text(extracted.end_date),
        deliverables=list(extracted.deliverables or []),
        scope=_text(extracted.scope_of_work),
        objectives=list(extracted.objectives or []),
        stakeholders=[s.model_copy() for s in extracted.key_stakeholders or []],
        payment_terms=_text(extracted.payment_terms),
        milestones=[m.model_copy() for m in extracted.milestones or []],
    )


def build_project_patch(
    results: Sequence[ExtractionResult],
) -> tuple[MergeResult, ProjectDataPatch]:
    """Merge every accumulated result, then map the merged record."""
    merge = merge_extracted_data(results)
    return merge, map_to_project_data(merge.merged_data)
