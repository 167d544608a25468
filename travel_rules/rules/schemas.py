"""
Pydantic schemas for the travel rules knowledge base.

Defines the read-only Rule domain model with its bilingual content, plus
validation schemas for creating rules, recording feedback and reporting
statistics.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Language(str, Enum):
    """Languages rule content is written in."""

    EN = "en"
    RU = "ru"


class Severity(str, Enum):
    """How serious breaking a rule is. Ordered low < medium < high < critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position in the severity order, 0 for low up to 3 for critical."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class Category(str, Enum):
    """Rule categories shown in the bot menu."""

    TRANSPORT = "transport"
    ALCOHOL_SMOKING = "alcohol_smoking"
    DRONES = "drones"
    MEDICATIONS = "medications"
    CULTURAL = "cultural"


class Country(BaseModel):
    """A supported destination country."""

    code: str
    name_en: str
    name_ru: str
    emoji: str

    model_config = ConfigDict(frozen=True)

    def name(self, language: Language) -> str:
        return self.name_ru if Language(language) is Language.RU else self.name_en


SUPPORTED_COUNTRIES: List[Country] = [
    Country(code="IT", name_en="Italy", name_ru="Италия", emoji="🇮🇹"),
    Country(code="TR", name_en="Turkey", name_ru="Турция", emoji="🇹🇷"),
    Country(code="AE", name_en="UAE", name_ru="ОАЭ", emoji="🇦🇪"),
    Country(code="TH", name_en="Thailand", name_ru="Таиланд", emoji="🇹🇭"),
    Country(code="ES", name_en="Spain", name_ru="Испания", emoji="🇪🇸"),
    Country(code="DE", name_en="Germany", name_ru="Германия", emoji="🇩🇪"),
]


class LocalizedContent(BaseModel):
    """Rule text in one language."""

    title: str = ""
    description: str = ""
    details: str = ""

    model_config = ConfigDict(frozen=True)

    @field_validator("title", "description", "details", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class RuleContent(BaseModel):
    """Rule text in every supported language."""

    en: LocalizedContent = Field(default_factory=LocalizedContent)
    ru: LocalizedContent = Field(default_factory=LocalizedContent)

    model_config = ConfigDict(frozen=True)

    def for_language(self, language: Language) -> LocalizedContent:
        """Content for ``language``."""
        language = Language(language)
        if language is Language.EN:
            return self.en
        if language is Language.RU:
            return self.ru
        raise ValueError(f"Unsupported language: {language!r}")


class RuleSource(BaseModel):
    """Where a rule comes from (law text, embassy page, ...)."""

    type: str = "link"
    url: str
    title: str

    model_config = ConfigDict(frozen=True)


class Rule(BaseModel):
    """
    A single jurisdiction-specific regulation with bilingual text.

    Rules are immutable once loaded: search, scoring and formatting only
    read them.
    """

    id: str
    country_code: str
    category: str
    severity: Severity = Severity.MEDIUM
    content: RuleContent = Field(default_factory=RuleContent)
    views: int = Field(0, ge=0)
    fine_min: Optional[float] = None
    fine_max: Optional[float] = None
    fine_currency: Optional[str] = None
    sources: List[RuleSource] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_row(cls, row: Any) -> "Rule":
        """Build a Rule from a ``RuleRow`` ORM object (flattened columns)."""
        return cls(
            id=row.id,
            country_code=row.country_code,
            category=row.category,
            severity=row.severity,
            content=RuleContent(
                en=LocalizedContent(
                    title=row.title_en,
                    description=row.description_en,
                    details=row.details_en,
                ),
                ru=LocalizedContent(
                    title=row.title_ru,
                    description=row.description_ru,
                    details=row.details_ru,
                ),
            ),
            views=row.views or 0,
            fine_min=row.fine_min,
            fine_max=row.fine_max,
            fine_currency=row.fine_currency,
            sources=row.sources or [],
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class RuleCreate(BaseModel):
    """Schema for creating a new rule."""

    id: str = Field(..., min_length=1, max_length=64, description="Rule ID")
    country_code: str = Field(..., min_length=2, max_length=2)
    category: Category
    severity: Severity = Severity.MEDIUM
    content: RuleContent
    views: int = Field(0, ge=0)
    fine_min: Optional[float] = Field(None, ge=0.0)
    fine_max: Optional[float] = Field(None, ge=0.0)
    fine_currency: Optional[str] = Field(None, max_length=10)
    sources: List[RuleSource] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "IT_TRANSPORT_001",
                "country_code": "IT",
                "category": "transport",
                "severity": "high",
                "content": {
                    "en": {
                        "title": "ZTL limited traffic zones",
                        "description": "Driving into a ZTL without a permit is fined",
                    },
                    "ru": {
                        "title": "Зоны ZTL",
                        "description": "Въезд в зону ZTL без разрешения штрафуется",
                    },
                },
                "fine_min": 80,
                "fine_max": 335,
                "fine_currency": "EUR",
            }
        }
    )

    @field_validator("country_code")
    @classmethod
    def _upper_country(cls, value: str) -> str:
        return value.upper()


class SearchFilters(BaseModel):
    """Exact-match filters narrowing the candidate set."""

    country_code: Optional[str] = Field(None, min_length=2, max_length=2)
    category: Optional[Category] = None

    @field_validator("country_code")
    @classmethod
    def _upper_country(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value


class FeedbackType(str, Enum):
    """Kinds of feedback a user can leave."""

    HELPFUL = "helpful"
    NOT_HELPFUL = "not_helpful"
    OUTDATED = "outdated"
    INCORRECT = "incorrect"
    SUGGESTION = "suggestion"
    GENERAL = "general"


class FeedbackCreate(BaseModel):
    """Schema for submitting feedback."""

    user_id: int
    rule_id: Optional[str] = None  # None for feedback about the bot itself
    feedback_type: FeedbackType
    message: Optional[str] = Field(None, max_length=4000)
    user_contact: Optional[str] = Field(None, max_length=100)
    priority: int = Field(5, ge=1, le=10)


class EventType(str, Enum):
    """Analytics events written by the bot layer."""

    USER_STARTED = "user_started"
    LANGUAGE_SELECTED = "language_selected"
    COUNTRY_SELECTED = "country_selected"
    CATEGORY_SELECTED = "category_selected"
    RULE_VIEWED = "rule_viewed"
    SEARCH_PERFORMED = "search_performed"
    FEEDBACK_SUBMITTED = "feedback_submitted"


class DatabaseStats(BaseModel):
    """Overall knowledge base usage statistics."""

    total_rules: int
    active_rules: int
    rules_by_country: Dict[str, int]
    rules_by_category: Dict[str, int]
    total_views: int
    total_feedback: int
    total_events: int


class ImportResult(BaseModel):
    """Result of importing seed rule files."""

    files_processed: int
    rules_imported: int
    rules_skipped: int
    errors: int
    error_messages: List[str] = Field(default_factory=list)
