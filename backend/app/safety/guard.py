from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class VerdictAction(str, Enum):
    ALLOW = "ALLOW"
    FLAG = "FLAG"
    DENY = "DENY"


class DetectionStage(str, Enum):
    """Which moderation stage produced the final decision."""

    KEYWORD = "keyword"
    MISINFORMATION = "misinformation"
    ML_MODEL = "ml_model"
    COMBINED = "combined"


# Severity thresholds shared by the keyword stages
DENY_SEVERITY = 7
FLAG_SEVERITY = 5


@dataclass
class Verdict:
    action: VerdictAction
    severity: int = 0
    reasons: List[str] = field(default_factory=list)
    method: DetectionStage = DetectionStage.COMBINED
    # Internal note when the pipeline failed open; never shown to end users
    diagnostic: Optional[str] = None

    @classmethod
    def allow(cls, diagnostic: Optional[str] = None) -> "Verdict":
        return cls(VerdictAction.ALLOW, 0, [], DetectionStage.COMBINED, diagnostic)

    @property
    def blocked(self) -> bool:
        return self.action == VerdictAction.DENY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "severity": int(self.severity),
            "reasons": list(self.reasons),
            "method": self.method.value,
        }
