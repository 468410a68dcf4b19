"""
Intent Classifier — keyword heuristic mapping message text to a coarse intent.

Lower-cases the text and checks substring membership against fixed keyword
lists. Categories are tested in a fixed priority order and the first match
wins; no match means `general`. There is no scoring, so the same text always
yields the same intent.
"""

from enum import Enum
from typing import List, Tuple


class Intent(str, Enum):
    GENERAL = "general"
    CONTENT = "content"
    SEO = "seo"
    MARKETING = "marketing"
    SUPPORT = "support"
    ANALYTICS = "analytics"
    CUSTOM = "custom"  # Never produced by classify(); selectable by callers


# Priority order matters: "write an email" is content, not marketing.
INTENT_KEYWORDS: List[Tuple[Intent, Tuple[str, ...]]] = [
    (Intent.CONTENT, ("write", "post", "blog", "article", "content", "social media", "tweet")),
    (Intent.SEO, ("seo", "keyword", "ranking", "google", "search", "optimize")),
    (Intent.MARKETING, ("marketing", "ad", "advertisement", "campaign", "email", "copy")),
    (Intent.SUPPORT, ("help", "support", "faq", "question", "issue", "problem", "ticket")),
    (Intent.ANALYTICS, ("analytics", "report", "data", "chart", "stats", "metrics")),
]


def classify(text: str) -> Intent:
    """Classify message text. Keywords are plain substrings ("ad" matches "read")."""
    lower_text = (text or "").lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(kw in lower_text for kw in keywords):
            return intent
    return Intent.GENERAL
