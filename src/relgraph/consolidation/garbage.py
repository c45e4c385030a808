"""Detection of malformed entity names left behind by bulk imports."""

import re
from typing import Optional

# Characters that only show up when several values were imported into one name
SEPARATORS = (";", "<", ">", "|")

GENERIC_LABELS = frozenset(
    label.lower()
    for label in (
        "CEO", "CTO", "CFO", "COO",
        "Founder", "Co-Founder", "Advisor", "Board Member",
        "Investor", "Partner", "Principal", "Director", "Manager",
        "Vice President", "President", "Chairman", "Head of",
        "Lead", "Senior", "Junior",
        "PhD", "MBA", "CFA", "CPA", "JD", "MD",
    )
)

ROLE_SUFFIX_LABELS = (
    "CEO", "CTO", "CFO", "COO", "Founder", "Co-Founder",
    "Advisor", "Manager", "Director", "Partner", "Investor",
)
_ROLE_SUFFIX_RE = re.compile(
    r"(?:^|[\s(])(?:" + "|".join(re.escape(r) for r in ROLE_SUFFIX_LABELS) + r")\)\s*$",
    re.IGNORECASE,
)

REASON_SEPARATOR = "separator"
REASON_GENERIC_LABEL = "generic_label"
REASON_ROLE_SUFFIX = "role_suffix"


def classify_garbage(name: Optional[str]) -> Optional[str]:
    """Return why ``name`` is garbage, or None when it is a usable name."""
    if not name:
        return None
    text = name.strip()
    if any(sep in text for sep in SEPARATORS):
        return REASON_SEPARATOR
    if " ".join(text.split()).lower() in GENERIC_LABELS:
        return REASON_GENERIC_LABEL
    if _ROLE_SUFFIX_RE.search(text):
        return REASON_ROLE_SUFFIX
    return None


def is_garbage_name(name: Optional[str]) -> bool:
    return classify_garbage(name) is not None
