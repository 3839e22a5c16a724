"""
Parsing and validation of the model's insight payload.

The payload must be one JSON object with every section in INSIGHT_SECTIONS,
each an object with non-empty `title` and `body` strings. Anything less is
rejected as a whole.
"""

import json
from typing import Any

from mhp.models.domain.insights_domain import INSIGHT_SECTIONS


def parse_json_object(raw: str | None) -> dict[str, Any] | None:
    """
    Strict parse, then one retry on the first-`{`-to-last-`}` substring.
    Returns None when neither yields a JSON object.
    """
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text:
        return None

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            parsed = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            return None

    return parsed if isinstance(parsed, dict) else None


def normalize_insights(payload: Any) -> dict[str, dict[str, str]] | None:
    """Return the seven trimmed sections, or None if any is missing or empty."""
    if not isinstance(payload, dict):
        return None

    insights: dict[str, dict[str, str]] = {}
    for section in INSIGHT_SECTIONS:
        value = payload.get(section)
        if not isinstance(value, dict):
            return None
        title = value.get("title")
        body = value.get("body")
        if not isinstance(title, str) or not isinstance(body, str):
            return None
        title, body = title.strip(), body.strip()
        if not title or not body:
            return None
        insights[section] = {"title": title, "body": body}

    return insights


def parse_insights(raw: str | None) -> dict[str, dict[str, str]] | None:
    return normalize_insights(parse_json_object(raw))


def truncate_raw(raw: str | None, limit: int) -> str | None:
    if raw is None:
        return None
    if len(raw) <= limit:
        return raw
    return raw[:limit] + "…"
