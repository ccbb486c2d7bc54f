from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class BaseDBModel(BaseModel):
    """Base model for ledger records read back from the database."""

    id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True,
    )

    @field_serializer("created_at", "updated_at", when_used="always")
    def _serialize_datetimes(self, v: Optional[datetime]) -> Optional[str]:
        return v.isoformat() if v else None
