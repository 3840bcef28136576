"""
Sage Router - Marketing Reasoning Patterns

Follow-up aspects used to focus refinement turns, keyed by the kind of
marketing question being asked.
"""

import re
from enum import Enum
from typing import Dict, List, Tuple


class QueryType(str, Enum):
    CAMPAIGN_ANALYSIS = "campaign_analysis"
    BRAND_STRATEGY = "brand_strategy"
    TREND_RESEARCH = "trend_research"
    CREATIVE_ANALYSIS = "creative_analysis"


MARKETING_PATTERNS: Dict[QueryType, Tuple[str, ...]] = {
    QueryType.CAMPAIGN_ANALYSIS: (
        "performance metrics and ROI data",
        "competitive campaign context",
        "target audience demographics and response",
        "creative strategy and execution details",
    ),
    QueryType.BRAND_STRATEGY: (
        "market positioning and differentiation",
        "brand perception and sentiment analysis",
        "competitive landscape and market share",
        "audience insights and behavior patterns",
    ),
    QueryType.TREND_RESEARCH: (
        "adoption rates and market penetration",
        "demographic and psychographic breakdowns",
        "industry impact and business implications",
        "future projections and growth potential",
    ),
    QueryType.CREATIVE_ANALYSIS: (
        "engagement metrics and performance data",
        "cultural context and relevance factors",
        "viral mechanics and shareability factors",
        "brand impact and attribution metrics",
    ),
}

# Checked in order; campaign wording wins over brand wording
_TYPE_KEYWORDS: List[Tuple[QueryType, Tuple[str, ...]]] = [
    (QueryType.CAMPAIGN_ANALYSIS, ("campaign", "campaigns", "advertising", "ad", "ads")),
    (QueryType.BRAND_STRATEGY, ("brand", "brands", "strategy", "positioning")),
    (QueryType.TREND_RESEARCH, ("trend", "trends", "emerging", "future")),
    (QueryType.CREATIVE_ANALYSIS, ("creative", "design", "visual", "visuals")),
]

KNOWN_BRANDS = {
    "Nike", "Adidas", "Apple", "Google", "Microsoft", "Amazon",
    "Facebook", "Meta", "Tesla", "Coca-Cola", "Pepsi", "McDonald's",
}

_STOP_WORDS = {
    "The", "And", "For", "With", "This", "That", "Why", "What", "How",
    "When", "Where", "Compare", "Analyze", "Create", "Write",
}


def identify_query_type(query: str) -> QueryType:
    """Marketing query type; campaign analysis when nothing matches."""
    words = set(re.findall(r"[a-z]+", query.lower()))
    for query_type, keywords in _TYPE_KEYWORDS:
        if words.intersection(keywords):
            return query_type
    return QueryType.CAMPAIGN_ANALYSIS


def extract_entities(query: str) -> List[str]:
    """
    Likely brand or subject names in a query.

    Known brands come first, then other capitalized words longer than
    two characters. Returns ["the brand"] when nothing is found.
    """
    words = [w.strip(".,;:!?\"'()") for w in query.split()]
    brands = [w for w in words if w in KNOWN_BRANDS]
    capitalized = [
        w for w in words
        if len(w) > 2 and w[0].isupper() and w not in _STOP_WORDS
    ]
    entities: List[str] = []
    for word in brands + capitalized:
        if word not in entities:
            entities.append(word)
    return entities or ["the brand"]


def aspects_for(query: str) -> List[str]:
    return list(MARKETING_PATTERNS[identify_query_type(query)])
