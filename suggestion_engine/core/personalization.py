"""
Personalization signals from interaction history.

Derives frequent categories, common keywords and a coarse preference
label from a user's past queries.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from suggestion_engine.storage.models import UserInteraction

# Below this many interactions there is too little signal to personalize
MIN_INTERACTIONS = 3
MAX_HISTORY = 50

STOP_WORDS = frozenset({'the', 'and', 'for', 'with', 'that', 'this', 'from'})
BUSINESS_TERMS = ('business', 'marketing', 'revenue', 'growth', 'strategy')
PERSONAL_TERMS = ('personal', 'goal', 'skill', 'development', 'learning')

BUSINESS_FOCUSED = "business-focused"
PERSONAL_DEVELOPMENT = "personal-development"


@dataclass(frozen=True)
class UserProfile:
    """Signals injected into the personalized generation prompt."""
    frequent_categories: List[str] = field(default_factory=list)
    common_keywords: List[str] = field(default_factory=list)
    preferences: List[str] = field(default_factory=list)


def frequent_categories(interactions: Sequence[UserInteraction], top: int = 3) -> List[str]:
    """Most used categories, ties kept in first-seen order."""
    counts = Counter(i.category for i in interactions if i.category)
    return [category for category, _ in counts.most_common(top)]


def common_keywords(interactions: Sequence[UserInteraction], top: int = 10) -> List[str]:
    """Most frequent query words longer than three letters."""
    counts: Counter = Counter()
    for interaction in interactions:
        for word in interaction.query.lower().split():
            if len(word) > 3 and word not in STOP_WORDS:
                counts[word] += 1
    return [word for word, _ in counts.most_common(top)]


def infer_preferences(interactions: Sequence[UserInteraction]) -> List[str]:
    """Label the history as business or personal-development focused.

    Each term found in a query counts once for that query. Equal scores
    produce no label.
    """
    business = 0
    personal = 0
    for interaction in interactions:
        query = interaction.query.lower()
        business += sum(1 for term in BUSINESS_TERMS if term in query)
        personal += sum(1 for term in PERSONAL_TERMS if term in query)

    if business > personal:
        return [BUSINESS_FOCUSED]
    if personal > business:
        return [PERSONAL_DEVELOPMENT]
    return []


def build_profile(interactions: Sequence[UserInteraction]) -> Optional[UserProfile]:
    """Build a profile, or None when the history is too short."""
    if len(interactions) < MIN_INTERACTIONS:
        return None
    return UserProfile(
        frequent_categories=frequent_categories(interactions),
        common_keywords=common_keywords(interactions),
        preferences=infer_preferences(interactions),
    )


def append_interaction(
    history: Sequence[UserInteraction],
    interaction: UserInteraction,
    limit: int = MAX_HISTORY,
) -> List[UserInteraction]:
    """Prepend an interaction to a newest-first history, capped at limit."""
    return [interaction, *history][:limit]
