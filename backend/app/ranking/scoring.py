from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models.content import ContentRecord, PreferenceVector

RECENCY_WINDOW_DAYS = 30.0
POPULARITY_SATURATION = 1000.0
LIKE_WEIGHT = 3  # a like counts as three views


@dataclass(frozen=True)
class RankingWeights:
    topic_match: float = 3.0
    language_match: float = 2.0
    recency: float = 1.0
    popularity: float = 0.5
    verified_bonus: float = 0.5


DEFAULT_WEIGHTS = RankingWeights()


@dataclass(frozen=True)
class ScoredContent:
    content: ContentRecord
    score: float


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def topic_overlap(content: ContentRecord, preferences: PreferenceVector) -> int:
    """Count (preferred topic, tag) pairs where one contains the other, case-insensitive."""
    topics = [t.lower() for t in preferences.topics if t]
    tags = [t.lower() for t in content.tags if t]
    return sum(1 for topic in topics for tag in tags if topic in tag or tag in topic)


def score(
    content: ContentRecord,
    preferences: PreferenceVector,
    now: datetime,
    weights: RankingWeights = DEFAULT_WEIGHTS,
) -> float:
    total = 0.0

    total += topic_overlap(content, preferences) * weights.topic_match
    if content.type in preferences.topics:
        total += weights.topic_match

    if content.language in preferences.languages:
        total += weights.language_match

    # Linear decay to zero at 30 days; future timestamps count as brand new
    age_days = max(0.0, (_as_utc(now) - _as_utc(content.created_at)).total_seconds() / 86400.0)
    total += max(0.0, RECENCY_WINDOW_DAYS - age_days) / RECENCY_WINDOW_DAYS * weights.recency

    views = max(0, content.metrics.views)
    likes = max(0, content.metrics.likes)
    total += min(1.0, (views + likes * LIKE_WEIGHT) / POPULARITY_SATURATION) * weights.popularity

    if content.verified:
        total += weights.verified_bonus

    return total


def score_all(
    candidates: Sequence[ContentRecord],
    preferences: PreferenceVector,
    now: datetime,
    min_score: Optional[float] = None,
    weights: RankingWeights = DEFAULT_WEIGHTS,
) -> List[ScoredContent]:
    scored = [ScoredContent(c, score(c, preferences, now, weights)) for c in candidates]
    if min_score is not None:
        scored = [s for s in scored if s.score >= min_score]
    # sorted() is stable, equal scores keep their input order
    return sorted(scored, key=lambda s: s.score, reverse=True)


def rank(
    candidates: Sequence[ContentRecord],
    preferences: PreferenceVector,
    limit: int = 20,
    min_score: Optional[float] = None,
    now: Optional[datetime] = None,
    weights: RankingWeights = DEFAULT_WEIGHTS,
) -> List[ContentRecord]:
    """Order candidates for a personalized feed. Scores stay internal."""
    now = now or datetime.now(timezone.utc)
    ranked = score_all(candidates, preferences, now, min_score, weights)
    return [s.content for s in ranked[: max(0, int(limit))]]


def fetch_size(limit: int, multiplier: int = 3) -> int:
    """How many candidates to pull from storage before scoring one page."""
    return max(1, int(limit)) * max(1, int(multiplier))


def rank_page(
    candidates: Sequence[ContentRecord],
    preferences: PreferenceVector,
    page: int = 1,
    limit: int = 20,
    now: Optional[datetime] = None,
    weights: RankingWeights = DEFAULT_WEIGHTS,
) -> Tuple[List[ContentRecord], Dict[str, Any]]:
    now = now or datetime.now(timezone.utc)
    page = max(1, int(page))
    limit = max(1, int(limit))
    ranked = score_all(candidates, preferences, now, None, weights)
    start = (page - 1) * limit
    items = [s.content for s in ranked[start:start + limit]]
    pagination = {
        "page": page,
        "limit": limit,
        "total": len(ranked),
        "pages": math.ceil(len(ranked) / limit),
    }
    return items, pagination
