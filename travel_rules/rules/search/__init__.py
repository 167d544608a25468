"""
Rule search: text normalization, bilingual matching, relevance scoring
and ranking.
"""

from travel_rules.rules.search.engine import RuleSearchEngine, RuleStore
from travel_rules.rules.search.normalizer import matches, normalize, rule_matches
from travel_rules.rules.search.schemas import SearchQuery, SearchResult, SearchResults
from travel_rules.rules.search.scorer import RelevanceScorer

__all__ = [
    "RuleSearchEngine",
    "RuleStore",
    "RelevanceScorer",
    "SearchQuery",
    "SearchResult",
    "SearchResults",
    "matches",
    "normalize",
    "rule_matches",
]
