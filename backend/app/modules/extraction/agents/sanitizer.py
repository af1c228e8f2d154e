"""Project Intake Sanitizer — Post-processing of LLM extraction output.

The LLM reply is untrusted free text. This module:
  1. Locates the JSON object inside surrounding prose or markdown code
     fences (first '{' to last '}'; fences never contain braces)
  2. Narrows the decoded object into the 13 canonical fields:
     - unknown keys are dropped
     - fields wrapped in {"value": ...} dicts are unwrapped
     - numbers in text fields become strings; blank strings become null
     - list fields given as a bare string become one-element lists
     - stakeholders / milestones given as strings become {"name": ...}

Limitation: a reply holding two separate JSON objects yields a span covering
both, which then fails to decode.
"""

from __future__ import annotations

from typing import Any

from app.modules.extraction.schemas import (
    CANONICAL_FIELDS,
    ExtractedFields,
    Milestone,
    Stakeholder,
    wire_name,
)


# ---------------------------------------------------------------------------
# Helpers: locate the JSON span in LLM output
# ---------------------------------------------------------------------------


def locate_json_object(text: str) -> str | None:
    """Return the slice from the first '{' to the last '}', or None."""
    start = text.find("{")
    if start == -1:
        return None
    end = text.rfind("}")
    if end < start:
        return None
    return text[start:end + 1]


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def _to_text(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dict):
        # LLM wrapped the value, e.g. {"value": "X", "confidence": "high"}
        return _to_text(value.get("value")) if "value" in value else None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        parts = [t for t in (_to_text(v) for v in value) if t]
        return "; ".join(parts) if parts else None
    text = str(value).strip()
    return text or None


def _to_budget(value: Any) -> str | int | float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return _to_text(value)


def _as_list(value: Any) -> list[Any] | None:
    if value is None:
        return None
    if isinstance(value, list):
        return value
    return [value]


def _to_string_list(value: Any) -> list[str] | None:
    items = _as_list(value)
    if items is None:
        return None
    return [t for t in (_to_text(item) for item in items) if t]


def _to_stakeholders(value: Any) -> list[Stakeholder] | None:
    items = _as_list(value)
    if items is None:
        return None
    stakeholders = []
    for item in items:
        if isinstance(item, dict):
            person = Stakeholder(
                name=_to_text(item.get("name")),
                role=_to_text(item.get("role")),
                email=_to_text(item.get("email")),
            )
        else:
            person = Stakeholder(name=_to_text(item))
        if person.name or person.role or person.email:
            stakeholders.append(person)
    return stakeholders


def _to_milestones(value: Any) -> list[Milestone] | None:
    items = _as_list(value)
    if items is None:
        return None
    milestones = []
    for item in items:
        if isinstance(item, dict):
            milestone = Milestone(name=_to_text(item.get("name")), date=_to_text(item.get("date")))
        else:
            milestone = Milestone(name=_to_text(item))
        if milestone.name or milestone.date:
            milestones.append(milestone)
    return milestones


_COERCERS = {
    "budget": _to_budget,
    "deliverables": _to_string_list,
    "objectives": _to_string_list,
    "key_stakeholders": _to_stakeholders,
    "milestones": _to_milestones,
}


# ---------------------------------------------------------------------------
# Core sanitizer
# ---------------------------------------------------------------------------


def sanitize_extracted_fields(data: dict[str, Any]) -> ExtractedFields:
    """Narrow an arbitrary decoded JSON object into ExtractedFields.

    Keys are looked up by their camelCase wire name first, then by the
    snake_case attribute name. Anything else in ``data`` is ignored.
    """
    values: dict[str, Any] = {}
    for name in CANONICAL_FIELDS:
        key = wire_name(name)
        raw = data.get(key, data.get(name))
        coerce = _COERCERS.get(name, _to_text)
        values[name] = coerce(raw)
    return ExtractedFields(**values)
