from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentMetrics(BaseModel):
    views: int = 0
    likes: int = 0
    shares: int = 0


class ContentRecord(BaseModel):
    """An approved content item as handed to the feed ranker."""

    id: str
    title: str = ""
    type: str = "health"
    tags: List[str] = Field(default_factory=list)
    language: str = "en"
    verified: bool = False
    created_at: datetime
    metrics: ContentMetrics = Field(default_factory=ContentMetrics)
    summary: Optional[str] = None
    body_markdown: Optional[str] = None
    source_url: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class PreferenceVector(BaseModel):
    topics: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    voice_enabled: bool = False


class Interaction(BaseModel):
    """A view or like, reduced to what interest profiling needs."""

    content_type: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    language: Optional[str] = None
