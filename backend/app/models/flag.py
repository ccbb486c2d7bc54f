from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .base import BaseDBModel

SNIPPET_MAX_CHARS = 500
DETAILS_MAX_CHARS = 1000


class FlaggedBy(str, Enum):
    SYSTEM = "system"
    USER = "user"
    MODERATOR = "moderator"


class FlagReason(str, Enum):
    HARMFUL_CONTENT = "harmful_content"
    MEDICAL_MISINFORMATION = "medical_misinformation"
    INAPPROPRIATE_LANGUAGE = "inappropriate_language"
    SPAM = "spam"
    HARASSMENT = "harassment"
    PRIVACY_VIOLATION = "privacy_violation"
    EMERGENCY_DETECTED = "emergency_detected"
    OTHER = "other"


class FlagAction(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    REMOVED = "removed"
    DISMISSED = "dismissed"
    ESCALATED = "escalated"


# Actions a reviewer may set
REVIEW_ACTIONS = frozenset({
    FlagAction.REVIEWED,
    FlagAction.REMOVED,
    FlagAction.DISMISSED,
    FlagAction.ESCALATED,
})


class DetectionMethod(str, Enum):
    KEYWORD = "keyword"
    ML_MODEL = "ml_model"
    USER_REPORT = "user_report"
    MANUAL = "manual"


def _clip(value: Optional[str], limit: int) -> Optional[str]:
    if value is None:
        return None
    return str(value)[:limit]


class FlagCreate(BaseModel):
    """A flag about to be written to the ledger.

    Exactly one of content_id / conversation_id must be set; validation fails
    otherwise, before any write is attempted.
    """

    content_id: Optional[str] = None
    conversation_id: Optional[str] = None
    message_index: Optional[int] = None
    flagged_by: FlaggedBy
    user_id: Optional[str] = None
    reason: FlagReason
    reason_details: Optional[str] = None
    severity: int = Field(5, ge=0, le=10)
    text_snippet: Optional[str] = None
    detection_method: DetectionMethod = DetectionMethod.KEYWORD
    detection_score: Optional[float] = Field(None, ge=0.0, le=1.0)

    @field_validator("text_snippet", mode="before")
    @classmethod
    def _truncate_snippet(cls, v):
        return _clip(v, SNIPPET_MAX_CHARS)

    @field_validator("reason_details", mode="before")
    @classmethod
    def _truncate_details(cls, v):
        return _clip(v, DETAILS_MAX_CHARS)

    @model_validator(mode="after")
    def _exactly_one_target(self) -> "FlagCreate":
        if bool(self.content_id) == bool(self.conversation_id):
            raise ValueError("Flag must reference exactly one of content or conversation")
        return self


class FlagRecord(BaseDBModel):
    content_id: Optional[str] = None
    conversation_id: Optional[str] = None
    message_index: Optional[int] = None
    flagged_by: FlaggedBy
    user_id: Optional[str] = None
    reason: FlagReason
    reason_details: Optional[str] = None
    severity: int = 5
    text_snippet: Optional[str] = None
    action: FlagAction = FlagAction.PENDING
    detection_method: DetectionMethod = DetectionMethod.KEYWORD
    detection_score: Optional[float] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
