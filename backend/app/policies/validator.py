import re
from typing import List, Tuple

from ..safety.emergency import check_emergency

HARMFUL_ADVICE_PATTERNS = (
    re.compile(r"take\s+\d+\s*(pills?|tablets?|mg)", re.I),
    re.compile(r"don'?t\s+(see|visit|consult)\s+a?\s*doctor", re.I),
    re.compile(r"guaranteed\s+cure", re.I),
    re.compile(r"100%\s+effective", re.I),
)

EMERGENCY_MARKERS = ("emergency", "112", "911", "988")


def validate_response(response: str, original_query: str) -> Tuple[bool, List[str]]:
    """Check a final assistant response against harmful-advice heuristics.

    Advisory only: callers log the issues, they never hold the message back.

    Returns (ok, issues)
    """
    issues: List[str] = []
    text = response or ""

    for pattern in HARMFUL_ADVICE_PATTERNS:
        if pattern.search(text):
            issues.append(f"Potentially harmful advice detected: {pattern.pattern}")

    # An emergency query must get an answer that points at emergency help
    if check_emergency(original_query).is_emergency:
        lowered = text.lower()
        if not any(m in lowered for m in EMERGENCY_MARKERS):
            issues.append("Emergency not properly addressed")

    return (len(issues) == 0, issues)
