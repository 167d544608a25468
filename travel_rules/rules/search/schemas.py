"""
Data schemas for rule search.

Defines structures for search queries, scored results and the search
outcome.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from travel_rules.rules.schemas import Rule, SearchFilters


@dataclass
class SearchQuery:
    """
    Search query for finding rules.

    Country and category narrow the candidate set by exact match before
    any text matching happens.
    """

    query_text: str
    country_code: Optional[str] = None
    category: Optional[str] = None
    limit: int = 50

    @property
    def filters(self) -> SearchFilters:
        """Validated exact-match filters for the rule store."""
        return SearchFilters(country_code=self.country_code, category=self.category)

    def __str__(self) -> str:
        """String representation."""
        parts = [f"'{self.query_text}'"]
        if self.country_code:
            parts.append(f"country={self.country_code}")
        if self.category:
            parts.append(f"category={self.category}")
        return f"SearchQuery({', '.join(parts)})"


@dataclass
class SearchResult:
    """
    Single search result with relevance scoring.

    Score components are kept so callers can see why a rule ranked where it
    did. The overall score is unbounded and only meaningful for ordering.
    """

    rule: Rule
    relevance_score: float
    title_score: float = 0.0
    description_score: float = 0.0
    details_score: float = 0.0
    severity_score: float = 0.0
    popularity_score: float = 0.0
    explanation: str = ""

    @property
    def rule_id(self) -> str:
        """Get rule ID."""
        return self.rule.id

    def get_score_breakdown(self) -> Dict[str, float]:
        """Get breakdown of score components."""
        return {
            "overall": self.relevance_score,
            "title": self.title_score,
            "description": self.description_score,
            "details": self.details_score,
            "severity": self.severity_score,
            "popularity": self.popularity_score,
        }

    def __str__(self) -> str:
        """String representation."""
        return f"SearchResult(rule_id={self.rule_id}, relevance={self.relevance_score:.2f})"


@dataclass
class SearchResults:
    """
    Outcome of one search.

    ``error`` is set when the rule store could not be queried; results are
    then empty. This separates "search unavailable" from "no matches".
    """

    query: SearchQuery
    results: List[SearchResult] = field(default_factory=list)
    total_searched: int = 0
    search_time_ms: float = 0.0
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def ok(self) -> bool:
        """False when the search failed."""
        return self.error is None

    @property
    def count(self) -> int:
        """Number of results returned."""
        return len(self.results)

    @property
    def top_result(self) -> Optional[SearchResult]:
        """Get highest-scoring result."""
        return self.results[0] if self.results else None

    @property
    def avg_relevance(self) -> float:
        """Average relevance score."""
        if not self.results:
            return 0.0
        return sum(r.relevance_score for r in self.results) / len(self.results)

    def get_rules(self) -> List[Rule]:
        """Extract just the rules from results."""
        return [r.rule for r in self.results]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "query": str(self.query),
            "ok": self.ok,
            "error": self.error,
            "count": self.count,
            "total_searched": self.total_searched,
            "avg_relevance": self.avg_relevance,
            "search_time_ms": self.search_time_ms,
            "results": [
                {
                    "rule_id": r.rule_id,
                    "title": r.rule.content.en.title,
                    "relevance_score": r.relevance_score,
                    "explanation": r.explanation,
                }
                for r in self.results[:5]  # Top 5
            ],
        }

    def __str__(self) -> str:
        """String representation."""
        if not self.ok:
            return f"SearchResults(failed: {self.error})"
        return (
            f"SearchResults({self.count} results, "
            f"avg_relevance={self.avg_relevance:.2f})"
        )
