"""Extraction instruction sent to the LLM for every document."""

from __future__ import annotations

from app.modules.extraction.schemas import CANONICAL_FIELDS, wire_name

# One-line semantics per canonical field (keyed by attribute name)
CANONICAL_FIELD_DESCRIPTIONS: dict[str, str] = {
    "project_name": "The name or title of the project",
    "client_name": "The client or company name",
    "client_company": "The client's company/organization",
    "budget": "Project budget or cost (as a number if possible, or string with currency)",
    "timeline": "Project timeline, deadline, or duration",
    "start_date": "Project start date",
    "end_date": "Project end date or deadline",
    "deliverables": "List of project deliverables (array of strings)",
    "scope_of_work": "Description of the project scope",
    "objectives": "Project goals or objectives (array of strings)",
    "key_stakeholders": (
        "List of stakeholders or contacts (array of objects with name, role, email if available)"
    ),
    "payment_terms": "Payment schedule or terms",
    "milestones": "Project milestones (array of objects with name and date if available)",
}

_PROMPT_TEMPLATE = """\
You are a precise data extraction assistant. Extract the following information from this project document if present. Return ONLY valid JSON with no additional text.

Document: {document_name}

Extract these fields (use null for missing values):
{field_list}

Document text:
\"\"\"
{document_text}
\"\"\"

Return JSON only:"""


def _field_list() -> str:
    return "\n".join(
        f"- {wire_name(name)}: {CANONICAL_FIELD_DESCRIPTIONS[name]}"
        for name in CANONICAL_FIELDS
    )


def build_extraction_prompt(document_text: str, document_name: str) -> str:
    """Compose the single user instruction for one normalized document."""
    return _PROMPT_TEMPLATE.format(
        document_name=document_name,
        field_list=_field_list(),
        document_text=document_text,
    )
