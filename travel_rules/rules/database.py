"""
Persistent store for travel rules.

Provides rule CRUD, the filtered candidate query used by search, cached
listing queries, user feedback and fire-and-forget analytics events.
"""

from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from loguru import logger
from sqlalchemy import case, create_engine, desc, event, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from travel_rules.config import config
from travel_rules.errors import classify_database_error
from travel_rules.retry import with_retry
from travel_rules.rules.models import AnalyticsEventRow, Base, FeedbackRow, RuleRow
from travel_rules.rules.schemas import (
    DatabaseStats,
    EventType,
    FeedbackCreate,
    Rule,
    RuleCreate,
)
from travel_rules.utils.cache import CacheKeys, TTLCache

# Severity as a sortable number, critical first when ordered descending
_SEVERITY_ORDER = case(
    {"critical": 4, "high": 3, "medium": 2, "low": 1},
    value=RuleRow.severity,
    else_=0,
)

# Latest events counted when picking a user's favourite country or category
FAVORITE_WINDOW = 100


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class RuleDatabase:
    """
    Persistent store for travel rules.

    Rows are read back as immutable ``Rule`` objects. Listing queries that
    the bot repeats on every menu screen are memoized in an injected
    ``TTLCache``; without one they always hit the database.

    Example:
        >>> db = RuleDatabase("sqlite:///travel_rules.db", cache=TTLCache())
        >>> db.add_rule(RuleCreate(id="IT_TRANSPORT_001", ...))
        >>> candidates = db.fetch_rules(country_code="IT", limit=100)
    """

    def __init__(
        self,
        database_url: str = "sqlite:///travel_rules.db",
        echo: bool = False,
        cache: Optional[TTLCache] = None,
        popular_rules_ttl: Optional[int] = None,
        rules_list_ttl: Optional[int] = None,
    ):
        """
        Initialize database connection.

        Args:
            database_url: SQLAlchemy database URL
            echo: Whether to echo SQL statements (for debugging)
            cache: Cache for listing queries, or None to disable caching
            popular_rules_ttl: Lifetime of cached popular rules in seconds
            rules_list_ttl: Lifetime of cached country/category lists in seconds
        """
        self.database_url = database_url
        self.engine = create_engine(database_url, echo=echo)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.SessionLocal = sessionmaker(bind=self.engine)
        self.cache = cache
        self.popular_rules_ttl = (
            popular_rules_ttl
            if popular_rules_ttl is not None
            else config.cache.popular_rules_ttl
        )
        self.rules_list_ttl = (
            rules_list_ttl if rules_list_ttl is not None else config.cache.rules_list_ttl
        )

        # Create tables if they don't exist
        Base.metadata.create_all(self.engine)

        logger.info(f"Initialized RuleDatabase: {database_url}")

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def add_rule(self, rule: RuleCreate) -> str:
        """
        Add a new rule to the database.

        Args:
            rule: Validated rule data

        Returns:
            ID of the created rule

        Raises:
            ValueError: If a rule with the same ID already exists
        """
        with self.SessionLocal() as session:
            existing = session.get(RuleRow, rule.id)
            if existing:
                raise ValueError(f"Rule already exists: {rule.id}")

            row = RuleRow(
                id=rule.id,
                country_code=rule.country_code,
                category=rule.category.value,
                severity=rule.severity.value,
                title_en=rule.content.en.title,
                title_ru=rule.content.ru.title,
                description_en=rule.content.en.description,
                description_ru=rule.content.ru.description,
                details_en=rule.content.en.details or None,
                details_ru=rule.content.ru.details or None,
                fine_min=rule.fine_min,
                fine_max=rule.fine_max,
                fine_currency=rule.fine_currency,
                sources=[source.model_dump() for source in rule.sources] or None,
                views=rule.views,
            )

            session.add(row)
            session.commit()

        self._invalidate_rule_lists()
        logger.info(
            f"Added rule {rule.id} ({rule.country_code}/{rule.category.value})"
        )

        return rule.id

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        """
        Retrieve a rule by ID.

        Args:
            rule_id: Rule ID

        Returns:
            Rule, or None if not found or deleted
        """
        with self.SessionLocal() as session:
            row = (
                session.query(RuleRow)
                .filter(RuleRow.id == rule_id, RuleRow.deleted_at.is_(None))
                .first()
            )
            return Rule.from_row(row) if row else None

    @with_retry(
        max_retries=config.database.max_retries,
        base_delay=config.database.retry_base_delay,
        operation_name="fetch_rules",
    )
    def fetch_rules(
        self,
        country_code: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Rule]:
        """
        Fetch raw candidate rules, optionally filtered by exact match.

        Rows come back in ascending ID order so repeated calls see the same
        candidate sequence.

        Args:
            country_code: Filter by country
            category: Filter by category
            limit: Maximum number of rows
            offset: Number of rows to skip

        Returns:
            List of rules
        """
        with self.SessionLocal() as session:
            query = session.query(RuleRow).filter(RuleRow.deleted_at.is_(None))

            if country_code:
                query = query.filter(RuleRow.country_code == country_code)
            if category:
                query = query.filter(RuleRow.category == category)

            rows = query.order_by(RuleRow.id).limit(limit).offset(offset).all()

            return [Rule.from_row(row) for row in rows]

    def get_rules_by_country_and_category(
        self, country_code: str, category: str
    ) -> List[Rule]:
        """
        List rules for one country and category, most severe first.

        Cached for ``rules_list_ttl`` seconds when a cache is configured.
        """
        key = CacheKeys.rules_by_country_category(country_code, category)
        return self._cached(
            key,
            lambda: self._query_country_category(country_code, category),
            self.rules_list_ttl,
        )

    def _query_country_category(self, country_code: str, category: str) -> List[Rule]:
        with self.SessionLocal() as session:
            rows = (
                session.query(RuleRow)
                .filter(
                    RuleRow.country_code == country_code,
                    RuleRow.category == category,
                    RuleRow.deleted_at.is_(None),
                )
                .order_by(desc(_SEVERITY_ORDER), RuleRow.id)
                .all()
            )
            return [Rule.from_row(row) for row in rows]

    def get_popular_rules(self, limit: int = 5) -> List[Rule]:
        """
        Get the most viewed rules.

        Args:
            limit: Number of rules to return

        Returns:
            Rules ordered by views, descending
        """
        return self._cached(
            CacheKeys.popular_rules(limit),
            lambda: self._query_popular(limit),
            self.popular_rules_ttl,
        )

    def _query_popular(self, limit: int) -> List[Rule]:
        with self.SessionLocal() as session:
            rows = (
                session.query(RuleRow)
                .filter(RuleRow.deleted_at.is_(None))
                .order_by(desc(RuleRow.views), RuleRow.id)
                .limit(limit)
                .all()
            )
            return [Rule.from_row(row) for row in rows]

    def increment_views(self, rule_id: str) -> bool:
        """
        Bump the view counter of a rule.

        Best effort: a failure is logged and reported as False, never raised,
        so a broken counter cannot break showing the rule.

        Returns:
            True if the counter was updated
        """
        try:
            with self.SessionLocal() as session:
                updated = (
                    session.query(RuleRow)
                    .filter(RuleRow.id == rule_id, RuleRow.deleted_at.is_(None))
                    .update({RuleRow.views: RuleRow.views + 1})
                )
                session.commit()
                return updated > 0
        except Exception as e:
            logger.warning(f"Failed to increment views for {rule_id}: {e}")
            return False

    def soft_delete_rule(self, rule_id: str) -> bool:
        """
        Hide a rule from every query without removing the row.

        Returns:
            True if deleted, False if rule not found
        """
        with self.SessionLocal() as session:
            row = session.get(RuleRow, rule_id)

            if not row or row.deleted_at is not None:
                return False

            row.deleted_at = datetime.utcnow()
            session.commit()

        self._invalidate_rule_lists()
        logger.info(f"Soft-deleted rule {rule_id}")

        return True

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def submit_feedback(self, feedback: FeedbackCreate) -> Optional[int]:
        """
        Record user feedback.

        Args:
            feedback: Validated feedback data

        Returns:
            Feedback ID, or None if this user already rated this rule

        Raises:
            DatabaseError: If the insert fails for another reason, e.g. an
                unknown rule_id (foreign key violation, code 23503)
        """
        with self.SessionLocal() as session:
            row = FeedbackRow(
                user_id=feedback.user_id,
                rule_id=feedback.rule_id,
                feedback_type=feedback.feedback_type.value,
                message=feedback.message,
                user_contact=feedback.user_contact,
                priority=feedback.priority,
                status="pending",
            )
            session.add(row)

            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                error = classify_database_error(e)

                if error.code == "23505":
                    logger.info(
                        f"Duplicate feedback from user {feedback.user_id} "
                        f"for rule {feedback.rule_id}"
                    )
                    return None

                logger.error(
                    f"Failed to store feedback from user {feedback.user_id} "
                    f"for rule {feedback.rule_id}: {error.message}"
                )
                raise error from e

            logger.info(
                f"Feedback {row.id} ({feedback.feedback_type.value}) "
                f"from user {feedback.user_id}"
            )
            return row.id

    def has_feedback(self, user_id: int, rule_id: str) -> bool:
        """Whether the user already left feedback for the rule."""
        with self.SessionLocal() as session:
            count = (
                session.query(func.count(FeedbackRow.id))
                .filter(FeedbackRow.user_id == user_id, FeedbackRow.rule_id == rule_id)
                .scalar()
            )
            return bool(count)

    def get_feedback_stats(self, rule_id: str) -> Dict[str, int]:
        """
        Count feedback for a rule by type.

        Returns:
            Mapping of feedback type to count
        """
        with self.SessionLocal() as session:
            rows = (
                session.query(FeedbackRow.feedback_type, func.count(FeedbackRow.id))
                .filter(FeedbackRow.rule_id == rule_id)
                .group_by(FeedbackRow.feedback_type)
                .all()
            )
            return {feedback_type: count for feedback_type, count in rows}

    def get_user_feedback(self, user_id: int, limit: int = 20) -> List[dict]:
        """Feedback left by a user, newest first."""
        with self.SessionLocal() as session:
            rows = (
                session.query(FeedbackRow)
                .filter(FeedbackRow.user_id == user_id)
                .order_by(desc(FeedbackRow.created_at), desc(FeedbackRow.id))
                .limit(limit)
                .all()
            )
            return [row.to_dict() for row in rows]

    def get_pending_feedback(self, limit: int = 50) -> List[dict]:
        """
        Feedback waiting for review.

        Args:
            limit: Maximum number of entries

        Returns:
            Pending feedback, most urgent (lowest priority number) first,
            oldest first within a priority
        """
        with self.SessionLocal() as session:
            rows = (
                session.query(FeedbackRow)
                .filter(FeedbackRow.status == "pending")
                .order_by(FeedbackRow.priority, FeedbackRow.created_at, FeedbackRow.id)
                .limit(limit)
                .all()
            )
            return [row.to_dict() for row in rows]

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def track_event(
        self,
        user_id: int,
        event_type: Union[EventType, str],
        event_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Record an analytics event.

        Fire-and-forget: failures are logged and dropped.
        """
        event_name = (
            event_type.value if isinstance(event_type, EventType) else str(event_type)
        )
        try:
            with self.SessionLocal() as session:
                session.add(
                    AnalyticsEventRow(
                        user_id=user_id,
                        event_type=event_name,
                        event_data=event_data or {},
                    )
                )
                session.commit()
        except Exception as e:
            logger.warning(f"Failed to track event {event_name} for {user_id}: {e}")

    def get_user_events(self, user_id: int, limit: int = 50) -> List[dict]:
        """Most recent events of a user, newest first."""
        with self.SessionLocal() as session:
            rows = (
                session.query(AnalyticsEventRow)
                .filter(AnalyticsEventRow.user_id == user_id)
                .order_by(desc(AnalyticsEventRow.created_at), desc(AnalyticsEventRow.id))
                .limit(limit)
                .all()
            )
            return [row.to_dict() for row in rows]

    def get_user_event_stats(self, user_id: int) -> Dict[str, int]:
        """Count a user's events by type."""
        with self.SessionLocal() as session:
            rows = (
                session.query(AnalyticsEventRow.event_type, func.count(AnalyticsEventRow.id))
                .filter(AnalyticsEventRow.user_id == user_id)
                .group_by(AnalyticsEventRow.event_type)
                .all()
            )
            return {event_type: count for event_type, count in rows}

    def get_user_favorite_country(self, user_id: int) -> Optional[str]:
        """Country the user picked most often recently, or None."""
        return self._most_frequent_choice(
            user_id, EventType.COUNTRY_SELECTED, "country"
        )

    def get_user_favorite_category(self, user_id: int) -> Optional[str]:
        """Category the user picked most often recently, or None."""
        return self._most_frequent_choice(
            user_id, EventType.CATEGORY_SELECTED, "category"
        )

    def _most_frequent_choice(
        self, user_id: int, event_type: EventType, data_key: str
    ) -> Optional[str]:
        """
        Most common ``event_data[data_key]`` among the user's latest events.

        Only the newest ``FAVORITE_WINDOW`` events of ``event_type`` count.
        Ties go to the value seen most recently.
        """
        with self.SessionLocal() as session:
            rows = (
                session.query(AnalyticsEventRow.event_data)
                .filter(
                    AnalyticsEventRow.user_id == user_id,
                    AnalyticsEventRow.event_type == event_type.value,
                )
                .order_by(desc(AnalyticsEventRow.created_at), desc(AnalyticsEventRow.id))
                .limit(FAVORITE_WINDOW)
                .all()
            )

        counts = Counter(
            data[data_key] for (data,) in rows if data and data.get(data_key)
        )
        if not counts:
            return None
        return counts.most_common(1)[0][0]

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_database_stats(self) -> DatabaseStats:
        """
        Get overall database statistics.

        Returns:
            DatabaseStats with overall metrics
        """
        with self.SessionLocal() as session:
            total_rules = session.query(func.count(RuleRow.id)).scalar() or 0
            active = session.query(RuleRow).filter(RuleRow.deleted_at.is_(None))
            active_rules = active.count()

            by_country = (
                session.query(RuleRow.country_code, func.count(RuleRow.id))
                .filter(RuleRow.deleted_at.is_(None))
                .group_by(RuleRow.country_code)
                .all()
            )
            by_category = (
                session.query(RuleRow.category, func.count(RuleRow.id))
                .filter(RuleRow.deleted_at.is_(None))
                .group_by(RuleRow.category)
                .all()
            )
            total_views = (
                session.query(func.sum(RuleRow.views))
                .filter(RuleRow.deleted_at.is_(None))
                .scalar()
                or 0
            )
            total_feedback = session.query(func.count(FeedbackRow.id)).scalar() or 0
            total_events = session.query(func.count(AnalyticsEventRow.id)).scalar() or 0

            return DatabaseStats(
                total_rules=total_rules,
                active_rules=active_rules,
                rules_by_country=dict(by_country),
                rules_by_category=dict(by_category),
                total_views=int(total_views),
                total_feedback=total_feedback,
                total_events=total_events,
            )

    def _cached(
        self, key: str, loader: Callable[[], List[Rule]], ttl: int
    ) -> List[Rule]:
        if self.cache is None:
            return loader()
        # Callers get their own list; the cached one is never handed out
        return list(self.cache.get_or_set(key, loader, ttl))

    def _invalidate_rule_lists(self) -> None:
        """Drop cached listings after the rule set changed."""
        if self.cache is None:
            return
        for key in self.cache.keys():
            if key.startswith(("rules:", "popular_rules:")):
                self.cache.delete(key)

    def close(self) -> None:
        """Close database connection."""
        self.engine.dispose()
        logger.info("Closed RuleDatabase connection")
