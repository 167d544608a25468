"""
Relevance scoring for search results.

Scores are additive and unbounded; they only order results.
"""

import logging
from typing import Dict, List, Optional

from travel_rules.rules.schemas import Rule, Severity
from travel_rules.rules.search.normalizer import iter_fields, matches
from travel_rules.rules.search.schemas import SearchResult

logger = logging.getLogger(__name__)

DEFAULT_SEVERITY_BONUS: Dict[Severity, float] = {
    Severity.CRITICAL: 3.0,
    Severity.HIGH: 2.0,
    Severity.MEDIUM: 1.0,
    Severity.LOW: 0.0,
}


class RelevanceScorer:
    """
    Calculate relevance scores for rules matching a query.

    Combines:
    - Text matches, counted once per language for each field
      (title 10, description 5, details 2 by default)
    - Severity bonus (critical 3, high 2, medium 1, low 0)
    - Popularity bonus ``min(views / views_per_point, max_popularity_bonus)``

    Severity and popularity are capped well below a title match so they
    only break ties between similar text matches.
    """

    def __init__(
        self,
        title_weight: float = 10.0,
        description_weight: float = 5.0,
        details_weight: float = 2.0,
        severity_bonus: Optional[Dict[Severity, float]] = None,
        views_per_point: float = 100.0,
        max_popularity_bonus: float = 5.0,
    ):
        """
        Initialize scorer with weighting factors.

        Args:
            title_weight: Points per language whose title matches
            description_weight: Points per language whose description matches
            details_weight: Points per language whose details match
            severity_bonus: Points per severity level
            views_per_point: Views needed for one popularity point
            max_popularity_bonus: Cap on the popularity bonus
        """
        if views_per_point <= 0:
            raise ValueError("views_per_point must be positive")

        self.field_weights = {
            "title": title_weight,
            "description": description_weight,
            "details": details_weight,
        }
        self.severity_bonus = severity_bonus or dict(DEFAULT_SEVERITY_BONUS)
        self.views_per_point = views_per_point
        self.max_popularity_bonus = max_popularity_bonus

    def score(self, rule: Rule, query: str) -> SearchResult:
        """
        Calculate relevance score for a rule given a query.

        Args:
            rule: Rule to score
            query: Search text

        Returns:
            SearchResult with score components
        """
        field_scores = {name: 0.0 for name in self.field_weights}
        matched_fields: List[str] = []

        for language, field_name, text in iter_fields(rule):
            if matches(text, query):
                field_scores[field_name] += self.field_weights[field_name]
                matched_fields.append(f"{field_name}_{language.value}")

        severity_score = self.severity_bonus.get(rule.severity, 0.0)
        popularity_score = self._calculate_popularity_score(rule)

        overall = sum(field_scores.values()) + severity_score + popularity_score

        return SearchResult(
            rule=rule,
            relevance_score=overall,
            title_score=field_scores["title"],
            description_score=field_scores["description"],
            details_score=field_scores["details"],
            severity_score=severity_score,
            popularity_score=popularity_score,
            explanation=self._generate_explanation(
                matched_fields, severity_score, popularity_score
            ),
        )

    def score_value(self, rule: Rule, query: str) -> float:
        """Overall score only."""
        return self.score(rule, query).relevance_score

    def _calculate_popularity_score(self, rule: Rule) -> float:
        return min(rule.views / self.views_per_point, self.max_popularity_bonus)

    def _generate_explanation(
        self,
        matched_fields: List[str],
        severity_score: float,
        popularity_score: float,
    ) -> str:
        """
        Generate human-readable explanation of score.

        Args:
            matched_fields: Field/language pairs that matched, e.g. "title_en"
            severity_score: Severity bonus
            popularity_score: Popularity bonus

        Returns:
            Explanation string
        """
        parts = []

        if matched_fields:
            parts.append(f"Matched in: {', '.join(matched_fields)}")
        else:
            parts.append("No text match")

        if severity_score > 0:
            parts.append(f"severity +{severity_score:g}")
        if popularity_score > 0:
            parts.append(f"popularity +{popularity_score:.2f}")

        return "; ".join(parts)
