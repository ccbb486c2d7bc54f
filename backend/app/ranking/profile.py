from __future__ import annotations

from collections import Counter
from typing import Iterable

from ..models.content import Interaction, PreferenceVector

MAX_PROFILE_TOPICS = 10
MAX_MERGED_TOPICS = 15


def build_interest_profile(interactions: Iterable[Interaction]) -> PreferenceVector:
    """Aggregate interactions into topic and language preferences.

    Only counts are kept. Ties keep first-seen order.
    """
    topic_counts: Counter = Counter()
    language_counts: Counter = Counter()
    for it in interactions:
        if it.content_type:
            topic_counts[it.content_type] += 1
        for tag in it.tags:
            topic_counts[tag] += 1
        if it.language:
            language_counts[it.language] += 1

    return PreferenceVector(
        topics=[t for t, _ in topic_counts.most_common(MAX_PROFILE_TOPICS)],
        languages=[lang for lang, _ in language_counts.most_common()],
    )


def merge_preferences(explicit: PreferenceVector, inferred: PreferenceVector) -> PreferenceVector:
    # Explicit topics first, then inferred, without duplicates
    topics = list(dict.fromkeys([*explicit.topics, *inferred.topics]))[:MAX_MERGED_TOPICS]
    languages = list(explicit.languages) if explicit.languages else list(inferred.languages)
    return PreferenceVector(topics=topics, languages=languages, voice_enabled=explicit.voice_enabled)
