from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Tuple

from .guard import DENY_SEVERITY, FLAG_SEVERITY

# Keyword tiers: (tier name, max severity, reason, keywords). Lowercase, literal.
SEVERE_KEYWORDS: Tuple[str, ...] = (
    "kill yourself",
    "go die",
    "suicide method",
    "how to make bomb",
    "how to poison",
    "child abuse",
    "child porn",
)

MODERATE_KEYWORDS: Tuple[str, ...] = (
    "fake medicine",
    "miracle cure",
    "doctors hate this",
    "guaranteed weight loss",
    "instant cure",
)

SPAM_KEYWORDS: Tuple[str, ...] = (
    "click here now",
    "limited time offer",
    "act now",
    "congratulations you won",
    "nigerian prince",
)

TIERS: Tuple[Tuple[str, int, str, Tuple[str, ...]], ...] = (
    ("severe", 10, "Blocked keyword detected: severe content", SEVERE_KEYWORDS),
    ("moderate", 7, "Potentially misleading health claim", MODERATE_KEYWORDS),
    ("spam", 5, "Spam patterns detected", SPAM_KEYWORDS),
)


@dataclass(frozen=True)
class LexiconResult:
    blocked: bool = False
    flagged: bool = False
    severity: int = 0
    reasons: List[str] = field(default_factory=list)
    tiers: Tuple[str, ...] = ()


def check_blocklist(text: str | None) -> LexiconResult:
    """Match text against the keyword tiers.

    Case-insensitive substring containment. One reason per matched tier,
    severity is the max over matched tiers.
    """
    lowered = (text or "").lower()
    if not lowered.strip():
        return LexiconResult()

    reasons: List[str] = []
    matched: List[str] = []
    severity = 0
    for tier, tier_severity, reason, keywords in TIERS:
        if any(k in lowered for k in keywords):
            matched.append(tier)
            reasons.append(reason)
            severity = max(severity, tier_severity)

    return LexiconResult(
        blocked=severity >= DENY_SEVERITY,
        flagged=severity >= FLAG_SEVERITY,
        severity=severity,
        reasons=reasons,
        tiers=tuple(matched),
    )


_SANITIZE_PATTERN = re.compile(
    "|".join(re.escape(k) for k in SEVERE_KEYWORDS + MODERATE_KEYWORDS),
    re.I,
)


def sanitize_text(text: str | None) -> str:
    """Replace severe and moderate tier phrases with a placeholder."""
    return _SANITIZE_PATTERN.sub("[removed]", text or "")
