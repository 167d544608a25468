"""
SQLAlchemy ORM models for the travel rules database.

Defines the schema for rules, user feedback and analytics events.
"""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import JSON, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class RuleRow(Base):
    """
    Persistent storage for a travel rule.

    Bilingual content is stored in flattened ``*_en`` / ``*_ru`` columns and
    reassembled into ``schemas.Rule`` on read.
    """

    __tablename__ = "rules"

    # Primary key, e.g. IT_TRANSPORT_001
    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)

    # Classification
    country_code: Mapped[str] = mapped_column(sa.String(2), index=True)
    category: Mapped[str] = mapped_column(sa.String(50), index=True)
    severity: Mapped[str] = mapped_column(sa.String(20), default="medium")

    # Content
    title_en: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    title_ru: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    description_en: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    description_ru: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    details_en: Mapped[Optional[str]] = mapped_column(sa.Text)
    details_ru: Mapped[Optional[str]] = mapped_column(sa.Text)

    # Fines
    fine_min: Mapped[Optional[float]] = mapped_column(sa.Float)
    fine_max: Mapped[Optional[float]] = mapped_column(sa.Float)
    fine_currency: Mapped[Optional[str]] = mapped_column(sa.String(10))

    sources: Mapped[Optional[list]] = mapped_column(JSON)  # [{type, url, title}]

    # Popularity
    views: Mapped[int] = mapped_column(sa.Integer, default=0, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime)

    __table_args__ = (
        Index("idx_rules_country_category", "country_code", "category"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<RuleRow(id={self.id}, country={self.country_code}, category={self.category})>"


class FeedbackRow(Base):
    """User feedback about a rule, or about the bot when rule_id is NULL."""

    __tablename__ = "feedback"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.BigInteger, index=True)
    rule_id: Mapped[Optional[str]] = mapped_column(
        sa.String(64), sa.ForeignKey("rules.id"), index=True
    )
    feedback_type: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(sa.Text)
    user_contact: Mapped[Optional[str]] = mapped_column(sa.String(100))
    status: Mapped[str] = mapped_column(sa.String(20), default="pending")
    priority: Mapped[int] = mapped_column(sa.Integer, default=5)  # 1 = most urgent

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # One rating per user and rule
    __table_args__ = (UniqueConstraint("user_id", "rule_id", name="uq_feedback_user_rule"),)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "rule_id": self.rule_id,
            "feedback_type": self.feedback_type,
            "message": self.message,
            "user_contact": self.user_contact,
            "status": self.status,
            "priority": self.priority,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        """String representation."""
        return f"<FeedbackRow(id={self.id}, rule_id={self.rule_id}, type={self.feedback_type})>"


class AnalyticsEventRow(Base):
    """A fire-and-forget usage event."""

    __tablename__ = "analytics_events"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.BigInteger, index=True)
    event_type: Mapped[str] = mapped_column(sa.String(50), index=True)
    event_data: Mapped[Optional[dict]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime, default=datetime.utcnow, nullable=False, index=True
    )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "event_data": self.event_data or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        """String representation."""
        return f"<AnalyticsEventRow(user_id={self.user_id}, type={self.event_type})>"
