from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ....config import Settings, get_settings
from ....models.content import ContentRecord, Interaction, PreferenceVector
from ....ranking.profile import build_interest_profile, merge_preferences
from ....ranking.scoring import fetch_size, rank_page

router = APIRouter(prefix="/feed", tags=["feed"])


class FeedRequest(BaseModel):
    candidates: List[ContentRecord]
    preferences: PreferenceVector = Field(default_factory=PreferenceVector)
    interactions: List[Interaction] = Field(default_factory=list)
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1)
    now: Optional[datetime] = None


@router.post("")
async def personalized_feed(body: FeedRequest, settings: Settings = Depends(get_settings)):
    limit = min(body.limit, settings.FEED_MAX_LIMIT)
    preferences = body.preferences
    if body.interactions:
        preferences = merge_preferences(preferences, build_interest_profile(body.interactions))

    # Candidates arrive newest first; only the fetch window is scored
    pool = body.candidates[: fetch_size(body.page * limit, settings.FEED_FETCH_MULTIPLIER)]
    items, pagination = rank_page(pool, preferences, page=body.page, limit=limit, now=body.now)
    return {"items": items, "pagination": pagination}
