"""Classification of the ``business_analysis`` enrichment payload.

Enrichment collaborators store either a structured profile or a placeholder
saying that nothing useful could be found. The flag computed here is written
alongside the entity so later stages never have to look at the payload again.
"""

import json
from typing import Any

INSUFFICIENT_MARKERS = ("insufficient information",)
PLACEHOLDER_VALUES = {"unknown", "n/a", "none", "null"}


def is_substantive_analysis(payload: Any) -> bool:
    """Return True if ``payload`` is a real profile rather than a sentinel."""
    if payload is None:
        return False

    if isinstance(payload, str):
        text = payload.strip()
        if not text or text.lower() in PLACEHOLDER_VALUES:
            return False
        # Some rows hold the profile as a JSON string
        if text[:1] in "{[":
            try:
                return is_substantive_analysis(json.loads(text))
            except ValueError:
                pass
        return not _has_marker(text)

    if isinstance(payload, (dict, list, tuple)):
        if not payload:
            return False
        try:
            serialized = json.dumps(payload, default=str)
        except (TypeError, ValueError):
            serialized = str(payload)
        return not _has_marker(serialized)

    return bool(payload)


def _has_marker(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in INSUFFICIENT_MARKERS)
