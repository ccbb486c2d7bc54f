from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

# Base class for SQLAlchemy models
Base = declarative_base()


def generate_uuid():
    return str(uuid4())


def utcnow():
    return datetime.now(timezone.utc)


class Flag(Base):
    """Append-only moderation ledger entry. Only review fields change after insert."""

    __tablename__ = "flags"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    content_id = Column(String(64), nullable=True, index=True)
    conversation_id = Column(String(64), nullable=True, index=True)
    message_index = Column(Integer, nullable=True)
    flagged_by = Column(String(20), nullable=False)  # system | user | moderator
    user_id = Column(String(64), nullable=True, index=True)
    reason = Column(String(40), nullable=False)
    reason_details = Column(String(1000), nullable=True)
    severity = Column(Integer, nullable=False, default=5)
    text_snippet = Column(String(500), nullable=True)
    action = Column(String(20), nullable=False, default="pending")
    reviewed_by = Column(String(64), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_notes = Column(Text, nullable=True)
    detection_method = Column(String(20), nullable=False, default="keyword")
    detection_score = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow, nullable=True)

    __table_args__ = (
        Index("ix_flags_action_severity", "action", "severity"),
        Index("ix_flags_reason_action", "reason", "action"),
    )

    def __repr__(self):
        return f"<Flag(id='{self.id}', reason='{self.reason}', action='{self.action}')>"
