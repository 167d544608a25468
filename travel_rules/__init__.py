"""
travel-rules - country-specific travel regulations for a Telegram bot

Rule storage, bilingual free-text search with relevance ranking,
pagination and an in-memory TTL cache.
"""

__version__ = "0.1.0"

# Configuration is available at top level for convenience
from travel_rules.config import config

__all__ = ["config", "__version__"]
