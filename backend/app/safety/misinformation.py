from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Pattern, Tuple

# Ordered health misinformation rules. Patterns carry their own IGNORECASE flag
# and run against the original text.
MISINFORMATION_RULES: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"vaccines?\s+(cause|causes)\s+(autism|death)", re.I), "Anti-vaccine misinformation"),
    (re.compile(r"covid.*(hoax|fake|doesn't exist)", re.I), "COVID-19 misinformation"),
    (re.compile(r"cure\s+(cancer|diabetes|hiv)\s+naturally", re.I), "Unproven cure claims"),
    (re.compile(r"doctors?\s+(hide|hiding|don't want)", re.I), "Medical conspiracy theory"),
    (re.compile(r"bleach.*drink|drink.*bleach", re.I), "Dangerous remedy"),
)


@dataclass(frozen=True)
class MisinformationResult:
    flagged: bool = False
    reasons: List[str] = field(default_factory=list)


def check_medical_misinformation(text: str | None) -> MisinformationResult:
    """Collect one reason per rule that matches. Severity is the caller's call."""
    original = text or ""
    reasons = [reason for pattern, reason in MISINFORMATION_RULES if pattern.search(original)]
    return MisinformationResult(flagged=bool(reasons), reasons=reasons)
