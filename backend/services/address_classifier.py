"""
Keyword/location classifier for postcode candidates.
Decides whether an address on a listing page is the property itself, an agent
office, a developer/company address, or footer boilerplate.
"""
from enum import Enum
from typing import Dict, Tuple

from services.regions import Region


class Category(str, Enum):
    PROPERTY = "PROPERTY"
    AGENT_OFFICE = "AGENT_OFFICE"
    DEVELOPER = "DEVELOPER"
    FOOTER = "FOOTER"
    UNKNOWN = "UNKNOWN"


# category -> (indicator keywords, score per keyword hit)
SCORING_TABLE: Dict[Category, Tuple[Tuple[str, ...], int]] = {
    Category.PROPERTY: (
        (
            "property", "flat", "apartment", "studio", "bedroom", "bed", "bath",
            "to let", "for rent", "available", "pcm", "pw", "per month", "per week",
            "tenancy", "tenant", "move in", "unfurnished", "furnished",
            "living room", "kitchen", "balcony", "terrace", "parking",
        ),
        15,
    ),
    Category.AGENT_OFFICE: (
        (
            "office", "branch", "contact us", "visit us", "call us", "speak to",
            "our address", "find us", "opening hours", "open monday", "sales office",
            "lettings office", "viewing office", "show flat", "showroom",
        ),
        20,
    ),
    Category.DEVELOPER: (
        (
            "head office", "headquarters", "registered office", "company registration",
            "ltd", "limited", "plc", "holdings", "group", "developments",
            "developer", "management company", "managing agent",
        ),
        20,
    ),
    Category.FOOTER: (
        (
            "copyright", "©", "all rights reserved", "terms", "privacy",
            "cookie", "social media", "follow us", "newsletter",
        ),
        15,
    ),
}

# Where an address sits on the page shifts the scores
LOCATION_ADJUSTMENTS: Dict[Region, Dict[Category, int]] = {
    Region.FOOTER: {Category.FOOTER: 40, Category.PROPERTY: -30},
    Region.MAIN_CONTENT: {Category.PROPERTY: 30},
    Region.SIDEBAR: {Category.AGENT_OFFICE: 20, Category.PROPERTY: -10},
    Region.NAVIGATION: {Category.AGENT_OFFICE: 20, Category.PROPERTY: -10},
}

BASE_CONFIDENCE = 50
MAX_CONFIDENCE = 95

# Unclassified postcodes on a listing page are assumed to be the property
DEFAULT_CATEGORY = Category.PROPERTY


def keyword_score(context: str, category: Category) -> int:
    """Score for one category: weight times the number of distinct keywords present."""
    keywords, weight = SCORING_TABLE[category]
    lower = (context or "").lower()
    return sum(weight for kw in keywords if kw in lower)


def score_context(context: str, region: Region) -> Dict[Category, int]:
    """Raw scores per category, after the location adjustment. May be negative."""
    scores = {category: keyword_score(context, category) for category in SCORING_TABLE}
    for category, delta in LOCATION_ADJUSTMENTS.get(region, {}).items():
        scores[category] += delta
    return scores


def classify_context(context: str, region: Region) -> Tuple[Category, int]:
    """
    Return (category, confidence) for an address context.
    Highest score wins, ties go to the earlier category in SCORING_TABLE order.
    All-zero scores fall back to DEFAULT_CATEGORY at base confidence.
    """
    scores = score_context(context, region)
    best = max(scores.values())
    if best == 0:
        return DEFAULT_CATEGORY, BASE_CONFIDENCE
    winner = next(category for category, score in scores.items() if score == best)
    confidence = min(MAX_CONFIDENCE, BASE_CONFIDENCE + best)
    return winner, max(0, confidence)
