"""
Pagination of ordered sequences into fixed-size pages.
"""

import math
from dataclasses import dataclass, field
from typing import Generic, List, Sequence, TypeVar

from travel_rules.rules.schemas import Language

T = TypeVar("T")


@dataclass
class PaginationResult(Generic[T]):
    """One page of a sequence plus navigation metadata."""

    items: List[T] = field(default_factory=list)
    current_page: int = 1
    total_pages: int = 0
    has_next: bool = False
    has_prev: bool = False
    start_index: int = 0
    end_index: int = 0


def paginate(
    items: Sequence[T],
    page: int = 1,
    items_per_page: int = 5,
) -> PaginationResult[T]:
    """
    Slice ``items`` and return the requested page.

    The page number is clamped to at least 1 and at most the last page. An
    empty sequence yields page 1 with total_pages 0; page counters display
    max(total_pages, 1).

    Args:
        items: Full ordered sequence
        page: Page number, starting at 1
        items_per_page: Page size, clamped to at least 1

    Returns:
        PaginationResult for the clamped page
    """
    items_per_page = max(1, items_per_page)
    valid_page = max(1, page)
    total_pages = math.ceil(len(items) / items_per_page)
    current_page = min(valid_page, total_pages or 1)

    start_index = (current_page - 1) * items_per_page
    end_index = min(start_index + items_per_page, len(items))

    return PaginationResult(
        items=list(items[start_index:end_index]),
        current_page=current_page,
        total_pages=total_pages,
        has_next=current_page < total_pages,
        has_prev=current_page > 1,
        start_index=start_index,
        end_index=end_index,
    )


def format_page_counter(
    current_page: int, total_pages: int, language: Language = Language.EN
) -> str:
    """Format "Page 1/3" (or the Russian equivalent) for display."""
    label = "Страница" if Language(language) is Language.RU else "Page"
    return f"{label} {current_page}/{max(total_pages, 1)}"
