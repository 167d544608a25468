"""
Text normalization and bilingual matching for rule search.

Matching is run against every text field of both language bundles, no
matter which language the user reads the bot in.
"""

import re
from typing import Iterator, Tuple

from travel_rules.rules.schemas import Language, Rule

_PUNCTUATION = re.compile(r"[.,!?;:()]")
_WHITESPACE = re.compile(r"\s+")

# Fields matched, in scoring order
TEXT_FIELDS = ("title", "description", "details")


def normalize(text: str) -> str:
    """
    Lowercase, strip ``.,!?;:()``, collapse whitespace and trim.

    Args:
        text: Free text, possibly None

    Returns:
        Normalized text ("" for empty input)
    """
    if not text:
        return ""
    text = _PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def matches(text: str, query: str) -> bool:
    """
    Check whether ``text`` satisfies ``query``.

    The normalized query matches as a substring, or else every one of its
    words must appear somewhere in the text, in any order. An empty query
    matches everything; callers enforce a minimum query length.

    Args:
        text: Text to search in
        query: User query

    Returns:
        True if the text matches
    """
    normalized_text = normalize(text)
    normalized_query = normalize(query)

    if normalized_query in normalized_text:
        return True

    words = [word for word in normalized_query.split(" ") if word]
    return all(word in normalized_text for word in words)


def iter_fields(rule: Rule) -> Iterator[Tuple[Language, str, str]]:
    """Yield ``(language, field_name, text)`` for every searchable field."""
    for language in Language:
        content = rule.content.for_language(language)
        for field_name in TEXT_FIELDS:
            yield language, field_name, getattr(content, field_name) or ""


def rule_matches(rule: Rule, query: str) -> bool:
    """Whether any title, description or details, in either language, matches."""
    return any(matches(text, query) for _, _, text in iter_fields(rule))
