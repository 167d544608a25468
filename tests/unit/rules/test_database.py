"""
Unit tests for the rule database.
"""

import pytest
from sqlalchemy.exc import OperationalError

from travel_rules.errors import DatabaseError
from travel_rules.rules.database import RuleDatabase
from travel_rules.rules.models import FeedbackRow, RuleRow
from travel_rules.rules.schemas import (
    EventType,
    FeedbackCreate,
    FeedbackType,
    LocalizedContent,
    RuleContent,
    RuleCreate,
    RuleSource,
    Severity,
)
from travel_rules.utils.cache import TTLCache


def make_rule(
    rule_id: str,
    country_code: str = "IT",
    category: str = "transport",
    severity: Severity = Severity.MEDIUM,
    title: str = "Rule",
    views: int = 0,
    **kwargs,
) -> RuleCreate:
    """Build a rule with English and Russian titles."""
    return RuleCreate(
        id=rule_id,
        country_code=country_code,
        category=category,
        severity=severity,
        views=views,
        content=RuleContent(
            en=LocalizedContent(title=title, description=f"{title} description"),
            ru=LocalizedContent(title=f"{title} ru", description="описание"),
        ),
        **kwargs,
    )


@pytest.fixture
def temp_db(tmp_path):
    """Create temporary database for testing."""
    db_path = tmp_path / "test_rules.db"
    db = RuleDatabase(f"sqlite:///{db_path}")
    yield db
    db.close()


@pytest.fixture
def cache():
    """Fresh cache."""
    return TTLCache()


@pytest.fixture
def cached_db(tmp_path, cache):
    """Database with an injected cache."""
    db_path = tmp_path / "test_cached_rules.db"
    db = RuleDatabase(f"sqlite:///{db_path}", cache=cache)
    yield db
    db.close()


def _set_title(db: RuleDatabase, rule_id: str, title: str) -> None:
    """Change a row behind the database object's back."""
    with db.SessionLocal() as session:
        session.get(RuleRow, rule_id).title_en = title
        session.commit()


class TestRules:
    """Tests for rule CRUD."""

    def test_add_and_get_rule(self, temp_db):
        """Test adding a rule and reading it back."""
        rule_id = temp_db.add_rule(
            make_rule(
                "IT_TRANSPORT_001",
                severity=Severity.HIGH,
                title="ZTL zones",
                fine_min=80,
                fine_max=335,
                fine_currency="EUR",
                sources=[RuleSource(type="law", url="https://example.it", title="Codice")],
            )
        )

        rule = temp_db.get_rule(rule_id)

        assert rule is not None
        assert rule.id == "IT_TRANSPORT_001"
        assert rule.severity is Severity.HIGH
        assert rule.content.en.title == "ZTL zones"
        assert rule.content.ru.title == "ZTL zones ru"
        assert rule.content.en.details == ""
        assert rule.fine_min == 80
        assert rule.fine_currency == "EUR"
        assert rule.sources[0].title == "Codice"
        assert rule.created_at is not None

    def test_add_duplicate_raises(self, temp_db):
        """Test duplicate IDs are rejected."""
        temp_db.add_rule(make_rule("IT_1"))

        with pytest.raises(ValueError, match="already exists"):
            temp_db.add_rule(make_rule("IT_1"))

    def test_get_missing_rule(self, temp_db):
        """Test unknown IDs return None."""
        assert temp_db.get_rule("NOPE") is None

    def test_fetch_rules_filters_and_orders(self, temp_db):
        """Test candidate fetch applies exact filters in ID order."""
        temp_db.add_rule(make_rule("TH_2", country_code="TH", category="drones"))
        temp_db.add_rule(make_rule("IT_2", category="alcohol_smoking"))
        temp_db.add_rule(make_rule("IT_1"))
        temp_db.add_rule(make_rule("TH_1", country_code="TH"))

        assert [r.id for r in temp_db.fetch_rules()] == ["IT_1", "IT_2", "TH_1", "TH_2"]
        assert [r.id for r in temp_db.fetch_rules(country_code="TH")] == ["TH_1", "TH_2"]
        assert [r.id for r in temp_db.fetch_rules(category="transport")] == ["IT_1", "TH_1"]
        assert [
            r.id for r in temp_db.fetch_rules(country_code="TH", category="drones")
        ] == ["TH_2"]

    def test_fetch_rules_limit_offset(self, temp_db):
        """Test candidate fetch pagination."""
        for i in range(5):
            temp_db.add_rule(make_rule(f"IT_{i}"))

        assert [r.id for r in temp_db.fetch_rules(limit=2)] == ["IT_0", "IT_1"]
        assert [r.id for r in temp_db.fetch_rules(limit=2, offset=3)] == ["IT_3", "IT_4"]

    def test_fetch_rules_retries_transient_errors(self, temp_db, monkeypatch):
        """Test connection drops are retried."""
        sleeps = []
        monkeypatch.setattr("travel_rules.retry.time.sleep", sleeps.append)
        temp_db.add_rule(make_rule("IT_1"))

        real_session = temp_db.SessionLocal
        failures = {"left": 2}

        def flaky_session():
            if failures["left"]:
                failures["left"] -= 1
                raise OperationalError("SELECT", {}, Exception("connection lost"))
            return real_session()

        monkeypatch.setattr(temp_db, "SessionLocal", flaky_session)

        assert [r.id for r in temp_db.fetch_rules()] == ["IT_1"]
        assert len(sleeps) == 2

    def test_country_category_list_ordered_by_severity(self, temp_db):
        """Test listings put the most severe rules first."""
        temp_db.add_rule(make_rule("IT_A", severity=Severity.LOW))
        temp_db.add_rule(make_rule("IT_B", severity=Severity.CRITICAL))
        temp_db.add_rule(make_rule("IT_C", severity=Severity.MEDIUM))
        temp_db.add_rule(make_rule("IT_D", severity=Severity.CRITICAL))
        temp_db.add_rule(make_rule("IT_E", category="drones", severity=Severity.HIGH))

        rules = temp_db.get_rules_by_country_and_category("IT", "transport")

        assert [r.id for r in rules] == ["IT_B", "IT_D", "IT_C", "IT_A"]

    def test_popular_rules(self, temp_db):
        """Test popular rules are ordered by views."""
        temp_db.add_rule(make_rule("IT_1", views=10))
        temp_db.add_rule(make_rule("IT_2", views=500))
        temp_db.add_rule(make_rule("IT_3", views=50))

        assert [r.id for r in temp_db.get_popular_rules(limit=2)] == ["IT_2", "IT_3"]

    def test_increment_views(self, temp_db):
        """Test the view counter."""
        temp_db.add_rule(make_rule("IT_1"))

        assert temp_db.increment_views("IT_1") is True
        assert temp_db.increment_views("IT_1") is True
        assert temp_db.get_rule("IT_1").views == 2

    def test_increment_views_missing_rule(self, temp_db):
        """Test incrementing an unknown rule reports False."""
        assert temp_db.increment_views("NOPE") is False

    def test_increment_views_never_raises(self, temp_db, monkeypatch):
        """Test counter failures are swallowed."""

        def broken_session():
            raise OperationalError("UPDATE", {}, Exception("database is locked"))

        monkeypatch.setattr(temp_db, "SessionLocal", broken_session)

        assert temp_db.increment_views("IT_1") is False

    def test_increment_views_skips_deleted_rule(self, temp_db):
        """Test hidden rules do not collect views."""
        temp_db.add_rule(make_rule("IT_1"))
        temp_db.soft_delete_rule("IT_1")

        assert temp_db.increment_views("IT_1") is False

        with temp_db.SessionLocal() as session:
            assert session.get(RuleRow, "IT_1").views == 0

    def test_fetch_rules_schema_errors_not_retried(self, temp_db, monkeypatch):
        """Test a missing table fails at once instead of being retried."""
        sleeps = []
        monkeypatch.setattr("travel_rules.retry.time.sleep", sleeps.append)
        RuleRow.__table__.drop(temp_db.engine)

        with pytest.raises(DatabaseError) as exc_info:
            temp_db.fetch_rules()

        assert exc_info.value.code == "42P01"
        assert sleeps == []

    def test_soft_delete(self, temp_db):
        """Test deleted rules disappear from every query."""
        temp_db.add_rule(make_rule("IT_1", views=100))
        temp_db.add_rule(make_rule("IT_2"))

        assert temp_db.soft_delete_rule("IT_1") is True
        assert temp_db.soft_delete_rule("IT_1") is False
        assert temp_db.soft_delete_rule("NOPE") is False

        assert temp_db.get_rule("IT_1") is None
        assert [r.id for r in temp_db.fetch_rules()] == ["IT_2"]
        assert [r.id for r in temp_db.get_popular_rules()] == ["IT_2"]
        assert temp_db.get_database_stats().total_rules == 2
        assert temp_db.get_database_stats().active_rules == 1


class TestCaching:
    """Tests for cached listing queries."""

    def test_listing_served_from_cache(self, cached_db, cache):
        """Test a cached listing ignores later row changes."""
        cached_db.add_rule(make_rule("IT_1", title="Old"))

        first = cached_db.get_rules_by_country_and_category("IT", "transport")
        assert first[0].content.en.title == "Old"
        _set_title(cached_db, "IT_1", "New")

        cached = cached_db.get_rules_by_country_and_category("IT", "transport")
        assert cached[0].content.en.title == "Old"
        assert "rules:IT:transport" in cache.keys()

        cache.clear()
        fresh = cached_db.get_rules_by_country_and_category("IT", "transport")
        assert fresh[0].content.en.title == "New"

    def test_cached_listing_not_shared_with_callers(self, cached_db):
        """Test changing a returned list leaves the cached listing intact."""
        for rule_id in ("IT_1", "IT_2", "IT_3"):
            cached_db.add_rule(make_rule(rule_id))

        first = cached_db.get_popular_rules(3)
        first.clear()
        assert len(cached_db.get_popular_rules(3)) == 3

        listing = cached_db.get_rules_by_country_and_category("IT", "transport")
        listing.pop()
        listing.reverse()
        assert [
            r.id for r in cached_db.get_rules_by_country_and_category("IT", "transport")
        ] == ["IT_1", "IT_2", "IT_3"]

    def test_popular_rules_cached_per_limit(self, cached_db, cache):
        """Test popular rules use one key per limit."""
        cached_db.add_rule(make_rule("IT_1"))

        cached_db.get_popular_rules(3)
        cached_db.get_popular_rules(5)

        assert {"popular_rules:3", "popular_rules:5"} <= set(cache.keys())

    def test_rule_changes_invalidate_listings(self, cached_db, cache):
        """Test adding or deleting rules drops cached listings."""
        cached_db.add_rule(make_rule("IT_1"))
        cached_db.get_popular_rules(5)
        cached_db.get_rules_by_country_and_category("IT", "transport")
        cache.set("user_stats:1", {"views": 3})

        cached_db.add_rule(make_rule("IT_2"))

        assert cache.keys() == ["user_stats:1"]
        assert len(cached_db.get_popular_rules(5)) == 2

        cached_db.soft_delete_rule("IT_2")
        assert len(cached_db.get_popular_rules(5)) == 1

    def test_configured_ttl(self, tmp_path):
        """Test listing TTLs can be set per database."""
        db = RuleDatabase(
            f"sqlite:///{tmp_path / 'ttl.db'}",
            cache=TTLCache(),
            popular_rules_ttl=30,
            rules_list_ttl=10,
        )
        assert db.popular_rules_ttl == 30
        assert db.rules_list_ttl == 10
        db.close()


class TestFeedback:
    """Tests for user feedback."""

    def test_submit_feedback(self, temp_db):
        """Test feedback is stored."""
        temp_db.add_rule(make_rule("IT_1"))

        feedback_id = temp_db.submit_feedback(
            FeedbackCreate(user_id=7, rule_id="IT_1", feedback_type=FeedbackType.HELPFUL)
        )

        assert isinstance(feedback_id, int)
        assert temp_db.has_feedback(7, "IT_1") is True
        assert temp_db.has_feedback(8, "IT_1") is False

    def test_duplicate_feedback_returns_none(self, temp_db):
        """Test one rating per user and rule."""
        temp_db.add_rule(make_rule("IT_1"))
        feedback = FeedbackCreate(
            user_id=7, rule_id="IT_1", feedback_type=FeedbackType.HELPFUL
        )

        assert temp_db.submit_feedback(feedback) is not None
        assert temp_db.submit_feedback(feedback) is None

    def test_general_feedback_not_limited(self, temp_db):
        """Test feedback about the bot itself can be repeated."""
        feedback = FeedbackCreate(
            user_id=7, feedback_type=FeedbackType.SUGGESTION, message="Add Japan"
        )

        assert temp_db.submit_feedback(feedback) is not None
        assert temp_db.submit_feedback(feedback) is not None

    def test_feedback_stats(self, temp_db):
        """Test counts by feedback type."""
        temp_db.add_rule(make_rule("IT_1"))
        for user_id, kind in [(1, "helpful"), (2, "helpful"), (3, "outdated")]:
            temp_db.submit_feedback(
                FeedbackCreate(user_id=user_id, rule_id="IT_1", feedback_type=kind)
            )

        assert temp_db.get_feedback_stats("IT_1") == {"helpful": 2, "outdated": 1}
        assert temp_db.get_feedback_stats("IT_2") == {}


    def test_feedback_for_unknown_rule_raises(self, temp_db):
        """Test a foreign key violation is not mistaken for a duplicate."""
        feedback = FeedbackCreate(
            user_id=7, rule_id="NOPE", feedback_type=FeedbackType.INCORRECT
        )

        with pytest.raises(DatabaseError) as exc_info:
            temp_db.submit_feedback(feedback)

        assert exc_info.value.code == "23503"
        assert temp_db.get_user_feedback(7) == []

    def test_user_feedback_newest_first(self, temp_db):
        """Test a user's feedback history."""
        temp_db.add_rule(make_rule("IT_1"))
        temp_db.add_rule(make_rule("IT_2"))
        for rule_id in ("IT_1", "IT_2"):
            temp_db.submit_feedback(
                FeedbackCreate(user_id=7, rule_id=rule_id, feedback_type="helpful")
            )
        temp_db.submit_feedback(
            FeedbackCreate(user_id=8, rule_id="IT_1", feedback_type="outdated")
        )

        history = temp_db.get_user_feedback(7)

        assert [entry["rule_id"] for entry in history] == ["IT_2", "IT_1"]
        assert history[0]["status"] == "pending"
        assert history[0]["priority"] == 5
        assert len(temp_db.get_user_feedback(7, limit=1)) == 1

    def test_pending_feedback_by_priority_then_age(self, temp_db):
        """Test the review queue puts urgent and old feedback first."""
        for user_id, priority in [(1, 5), (2, 1), (3, 5), (4, 3)]:
            temp_db.submit_feedback(
                FeedbackCreate(
                    user_id=user_id, feedback_type="suggestion", priority=priority
                )
            )
        with temp_db.SessionLocal() as session:
            session.query(FeedbackRow).filter(FeedbackRow.user_id == 4).update(
                {FeedbackRow.status: "resolved"}
            )
            session.commit()

        pending = temp_db.get_pending_feedback()

        assert [entry["user_id"] for entry in pending] == [2, 1, 3]
        first_two = temp_db.get_pending_feedback(limit=2)
        assert [entry["user_id"] for entry in first_two] == [2, 1]


class TestAnalytics:
    """Tests for analytics events."""

    def test_track_and_read_events(self, temp_db):
        """Test events are stored newest first."""
        temp_db.track_event(1, EventType.USER_STARTED)
        temp_db.track_event(1, EventType.SEARCH_PERFORMED, {"query": "drone"})
        temp_db.track_event(1, "search_performed", {"query": "alcohol"})
        temp_db.track_event(2, EventType.RULE_VIEWED, {"rule_id": "IT_1"})

        events = temp_db.get_user_events(1)

        assert len(events) == 3
        assert events[0]["event_data"] == {"query": "alcohol"}
        assert events[-1]["event_type"] == "user_started"
        assert temp_db.get_user_event_stats(1) == {
            "user_started": 1,
            "search_performed": 2,
        }

    def test_track_event_never_raises(self, temp_db, monkeypatch):
        """Test tracking failures are swallowed."""

        def broken_session():
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(temp_db, "SessionLocal", broken_session)

        temp_db.track_event(1, EventType.USER_STARTED)


    def test_favorite_country_and_category(self, temp_db):
        """Test the most frequent recent choices."""
        for country in ("IT", "TH", "IT"):
            temp_db.track_event(1, EventType.COUNTRY_SELECTED, {"country": country})
        temp_db.track_event(1, EventType.CATEGORY_SELECTED, {"category": "drones"})
        temp_db.track_event(1, EventType.CATEGORY_SELECTED, {})
        temp_db.track_event(2, EventType.COUNTRY_SELECTED, {"country": "ES"})

        assert temp_db.get_user_favorite_country(1) == "IT"
        assert temp_db.get_user_favorite_category(1) == "drones"
        assert temp_db.get_user_favorite_country(2) == "ES"

    def test_favorite_none_without_events(self, temp_db):
        """Test users without selections have no favourites."""
        temp_db.track_event(1, EventType.USER_STARTED)

        assert temp_db.get_user_favorite_country(1) is None
        assert temp_db.get_user_favorite_category(1) is None

    def test_favorite_uses_latest_events_only(self, temp_db, monkeypatch):
        """Test old selections fall out of the window and ties go to the newest."""
        monkeypatch.setattr("travel_rules.rules.database.FAVORITE_WINDOW", 2)
        for country in ("IT", "IT", "IT", "TH", "ES"):
            temp_db.track_event(1, EventType.COUNTRY_SELECTED, {"country": country})

        assert temp_db.get_user_favorite_country(1) == "ES"


class TestStats:
    """Tests for database statistics."""

    def test_database_stats(self, temp_db):
        """Test overall counters."""
        temp_db.add_rule(make_rule("IT_1", views=10))
        temp_db.add_rule(make_rule("IT_2", category="drones", views=5))
        temp_db.add_rule(make_rule("TH_1", country_code="TH", views=1))
        temp_db.submit_feedback(
            FeedbackCreate(user_id=1, rule_id="IT_1", feedback_type="helpful")
        )
        temp_db.track_event(1, EventType.USER_STARTED)

        stats = temp_db.get_database_stats()

        assert stats.total_rules == 3
        assert stats.active_rules == 3
        assert stats.rules_by_country == {"IT": 2, "TH": 1}
        assert stats.rules_by_category == {"transport": 2, "drones": 1}
        assert stats.total_views == 16
        assert stats.total_feedback == 1
        assert stats.total_events == 1

    def test_empty_database_stats(self, temp_db):
        """Test statistics of an empty database."""
        stats = temp_db.get_database_stats()

        assert stats.total_rules == 0
        assert stats.total_views == 0
        assert stats.rules_by_country == {}
