"""
Travel rules knowledge base.

Persistent storage for country-specific rules with bilingual content,
seed import, rendering, and free-text search over both languages.
"""

from travel_rules.rules.schemas import (
    Category,
    Language,
    LocalizedContent,
    Rule,
    RuleContent,
    RuleCreate,
    SearchFilters,
    Severity,
)
from travel_rules.rules.database import RuleDatabase
from travel_rules.rules.search import RuleSearchEngine, SearchQuery, SearchResults

__all__ = [
    "RuleDatabase",
    "RuleSearchEngine",
    "SearchQuery",
    "SearchResults",
    "Rule",
    "RuleContent",
    "LocalizedContent",
    "RuleCreate",
    "SearchFilters",
    "Language",
    "Severity",
    "Category",
]
