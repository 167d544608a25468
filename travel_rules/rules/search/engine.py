"""
Rule search engine.

Fetches an over-sized candidate batch from the rule store, keeps the rules
whose text matches the query in either language, ranks them and truncates
to the requested limit.
"""

import logging
import time
from typing import List, Optional, Protocol

from travel_rules.errors import get_error_message
from travel_rules.rules.schemas import Rule
from travel_rules.rules.search.normalizer import normalize, rule_matches
from travel_rules.rules.search.schemas import SearchQuery, SearchResults
from travel_rules.rules.search.scorer import RelevanceScorer

logger = logging.getLogger(__name__)


class RuleStore(Protocol):
    """Anything that can hand out filtered candidate rules."""

    def fetch_rules(
        self,
        country_code: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Rule]: ...


class RuleSearchEngine:
    """
    Search engine for finding travel rules by free text.

    Store failures never propagate: ``search`` reports them through
    ``SearchResults.error`` and ``search_rules`` returns an empty list.

    Known limitation: only ``overfetch_factor * limit`` candidates are read,
    so when many of them fail to match, later matching rows are never seen
    and the result under-counts.
    """

    def __init__(
        self,
        store: RuleStore,
        scorer: Optional[RelevanceScorer] = None,
        overfetch_factor: int = 2,
        min_query_length: int = 3,
    ):
        """
        Initialize search engine.

        Args:
            store: Rule store providing ``fetch_rules``
            scorer: Relevance scorer (uses default if not provided)
            overfetch_factor: Candidates fetched per result slot
            min_query_length: Shortest query accepted by ``is_valid_query``
        """
        if overfetch_factor < 1:
            raise ValueError("overfetch_factor must be at least 1")

        self.store = store
        self.scorer = scorer or RelevanceScorer()
        self.overfetch_factor = overfetch_factor
        self.min_query_length = min_query_length

    def is_valid_query(self, query_text: str) -> bool:
        """Whether a query is long enough to search for."""
        return len(normalize(query_text)) >= self.min_query_length

    def search(self, query: SearchQuery) -> SearchResults:
        """
        Search for rules matching a query.

        Args:
            query: Search text, filters and limit

        Returns:
            SearchResults ranked by relevance, stable for equal scores
        """
        start_time = time.time()

        logger.info(f"Searching for rules: {query}")

        if query.limit <= 0:
            return SearchResults(query=query)

        try:
            candidates = self.store.fetch_rules(
                **query.filters.model_dump(mode="json"),
                limit=query.limit * self.overfetch_factor,
            )
        except Exception as e:
            logger.error(f"Rule search failed for {query}: {get_error_message(e)}")
            return SearchResults(
                query=query,
                error=get_error_message(e),
                search_time_ms=(time.time() - start_time) * 1000,
            )

        if not candidates:
            logger.debug("Rule store returned no candidates")
            return SearchResults(query=query)

        scored_results = [
            self.scorer.score(rule, query.query_text)
            for rule in candidates
            if rule_matches(rule, query.query_text)
        ]

        # sorted() is stable: equal scores keep store order
        scored_results = sorted(
            scored_results, key=lambda r: r.relevance_score, reverse=True
        )[: query.limit]

        search_time_ms = (time.time() - start_time) * 1000

        logger.info(
            f"Search complete: {len(scored_results)} results from "
            f"{len(candidates)} candidates in {search_time_ms:.1f}ms"
        )

        return SearchResults(
            query=query,
            results=scored_results,
            total_searched=len(candidates),
            search_time_ms=search_time_ms,
        )

    def search_rules(
        self,
        query: str,
        country_code: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 50,
    ) -> List[Rule]:
        """
        Search and return just the rules, best first.

        Returns an empty list both when nothing matches and when the store
        failed; use ``search`` to tell the two apart.
        """
        results = self.search(
            SearchQuery(
                query_text=query,
                country_code=country_code,
                category=category,
                limit=limit,
            )
        )
        return results.get_rules()
