"""Project Intake Extraction — Pydantic schemas for the 13 canonical project fields.

Wire names are camelCase (``projectName``, ``keyStakeholders``) so the JSON the
LLM returns and the JSON the API emits share one vocabulary; Python attributes
stay snake_case.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Scalar values the service may hand back (budget is often numeric)
ScalarValue = Union[str, int, float]


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Input document
# ---------------------------------------------------------------------------


class DocumentFile(CamelModel):
    """One uploaded document. Immutable; the pipeline only reads it."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    name: str
    mime_type: str = ""
    content: bytes = Field(..., repr=False)

    @property
    def size(self) -> int:
        return len(self.content)


# ---------------------------------------------------------------------------
# Canonical extraction shape (13 fields)
# ---------------------------------------------------------------------------


class Stakeholder(CamelModel):
    name: str | None = None
    role: str | None = None
    email: str | None = None


class Milestone(CamelModel):
    name: str | None = None
    date: str | None = None


class ExtractedFields(CamelModel):
    """Structured project data pulled from a single document."""

    project_name: str | None = None
    client_name: str | None = None
    client_company: str | None = None
    budget: ScalarValue | None = None
    timeline: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    deliverables: list[str] | None = None
    scope_of_work: str | None = None
    objectives: list[str] | None = None
    key_stakeholders: list[Stakeholder] | None = None
    payment_terms: str | None = None
    milestones: list[Milestone] | None = None


# Canonical field order as presented to the LLM (snake_case attribute names)
CANONICAL_FIELDS: tuple[str, ...] = tuple(ExtractedFields.model_fields)

SEQUENCE_FIELDS: frozenset[str] = frozenset(
    {"deliverables", "objectives", "key_stakeholders", "milestones"}
)

SCALAR_FIELDS: tuple[str, ...] = tuple(
    f for f in CANONICAL_FIELDS if f not in SEQUENCE_FIELDS
)


def wire_name(field_name: str) -> str:
    """snake_case attribute -> camelCase wire name (``scope_of_work`` -> ``scopeOfWork``)."""
    return to_camel(field_name)


# ---------------------------------------------------------------------------
# Per-document result
# ---------------------------------------------------------------------------


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ExtractionMetadata(CamelModel):
    document_length: int | None = None
    extracted_at: str = Field(default_factory=_utc_now_iso)
    model: str | None = None


class ExtractionResult(CamelModel):
    """Outcome of running one document through the extraction pipeline.

    ``success`` is tied to the payload: a successful result always carries
    ``extracted_data`` and no ``error``; a failed one carries an ``error`` and
    no data.
    """

    success: bool
    file_name: str
    extracted_data: ExtractedFields | None = None
    error: str | None = None
    metadata: ExtractionMetadata = Field(default_factory=ExtractionMetadata)

    @model_validator(mode="after")
    def _check_outcome(self) -> ExtractionResult:
        if self.success:
            if self.extracted_data is None or self.error is not None:
                raise ValueError("successful result requires extracted_data and no error")
        elif self.extracted_data is not None or self.error is None:
            raise ValueError("failed result requires an error and no extracted_data")
        return self

    @classmethod
    def succeeded(
        cls,
        file_name: str,
        extracted_data: ExtractedFields,
        *,
        document_length: int | None = None,
        model: str | None = None,
    ) -> ExtractionResult:
        return cls(
            success=True,
            file_name=file_name,
            extracted_data=extracted_data,
            metadata=ExtractionMetadata(document_length=document_length, model=model),
        )

    @classmethod
    def failed(cls, file_name: str, error: str) -> ExtractionResult:
        return cls(
            success=False,
            file_name=file_name,
            error=error or "Unknown extraction error",
        )


# ---------------------------------------------------------------------------
# Merge output
# ---------------------------------------------------------------------------


class SourceAttribution(CamelModel):
    """Which document first supplied a field's retained value."""

    field: str
    source: str


class ConflictEntry(CamelModel):
    value: ScalarValue | None = None
    source: str | None = None


class MergedData(ExtractedFields):
    """All successful extractions reduced into one record."""

    deliverables: list[str] = Field(default_factory=list)
    objectives: list[str] = Field(default_factory=list)
    key_stakeholders: list[Stakeholder] = Field(default_factory=list)
    milestones: list[Milestone] = Field(default_factory=list)
    sources: list[SourceAttribution] = Field(default_factory=list)

    def source_of(self, field_name: str) -> str | None:
        """Return the file that supplied ``field_name`` (wire or attribute name)."""
        key = wire_name(field_name) if field_name in ExtractedFields.model_fields else field_name
        for attribution in self.sources:
            if attribution.field == key:
                return attribution.source
        return None


ConflictMap = dict[str, list[ConflictEntry]]


class MergeResult(CamelModel):
    merged_data: MergedData
    conflicts: ConflictMap = Field(default_factory=dict)
    has_conflicts: bool = False


# ---------------------------------------------------------------------------
# Canonical project record patch
# ---------------------------------------------------------------------------


class ProjectDataPatch(CamelModel):
    """Patch applied to the application's project record."""

    name: str = ""
    client_name: str = ""
    budget: str = ""
    timeline: str = ""
    start_date: str = ""
    end_date: str = ""
    deliverables: list[str] = Field(default_factory=list)
    scope: str = ""
    objectives: list[str] = Field(default_factory=list)
    stakeholders: list[Stakeholder] = Field(default_factory=list)
    payment_terms: str = ""
    milestones: list[Milestone] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Progress reporting
# ---------------------------------------------------------------------------

ProgressStatus = Literal["parsing", "extracting", "processing", "complete", "failed"]


class ProgressEvent(CamelModel):
    status: ProgressStatus
    progress: int = Field(..., ge=0, le=100)


# ---------------------------------------------------------------------------
# API request / response schemas
# ---------------------------------------------------------------------------


class MergeRequest(CamelModel):
    """Body for POST /extraction/merge: the caller's accumulated results."""

    results: list[ExtractionResult]


class MergeResponse(CamelModel):
    merge: MergeResult
    project_data: ProjectDataPatch


class BatchExtractionResponse(CamelModel):
    """Response envelope for POST /extraction/extract-batch."""

    results: list[ExtractionResult]
    merge: MergeResult
    project_data: ProjectDataPatch
    successful_count: int = 0
    failed_count: int = 0
    total_processing_time_ms: int = 0
