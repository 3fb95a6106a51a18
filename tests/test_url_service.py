"""
Tests for URLService against a real (temporary SQLite) repository.

A FakeClock drives expiry so every boundary is deterministic.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from url_shortener.core.exceptions import (
    DatabaseError,
    DuplicateShortCodeError,
    InvalidShortCodeError,
    InvalidURLError,
    InvalidValidityError,
    ShortCodeConflictError,
    ShortCodeNotFoundError,
    ShortURLExpiredError,
    ShortURLInactiveError,
)
from url_shortener.core.validators import ensure_utc, is_expired
from url_shortener.db.models import AccessRecord, ShortURL
from url_shortener.db.repository import URLRepository
from url_shortener.services.url_service import ClientInfo, URLService, run_best_effort

BASE_URL = "http://short.test"


class FailingAnalyticsRepository(URLRepository):
    async def insert_access_record(self, record):
        raise DatabaseError("analytics table unavailable")


class FailingCounterRepository(URLRepository):
    async def update_access_info(self, short_code, accessed_at=None):
        raise DatabaseError("counter update failed")


class FailingDeactivateRepository(URLRepository):
    async def deactivate(self, short_code):
        raise DatabaseError("deactivate failed")


class RacingRepository(URLRepository):
    """Reports every code as free, as if another request inserted it in between."""

    async def code_exists(self, short_code):
        return False


@pytest.fixture
def service(repository, clock):
    return URLService(repository, base_url=BASE_URL, clock=clock)


async def count_access_records(session, short_code: str) -> int:
    result = await session.execute(
        select(func.count()).select_from(AccessRecord).where(AccessRecord.short_code == short_code)
    )
    return result.scalar_one()


class TestCreateShortURL:

    @pytest.mark.asyncio
    async def test_create_with_defaults(self, service, repository, clock):
        result = await service.create_short_url("https://example.com/page")

        assert result["shortLink"].startswith(f"{BASE_URL}/")
        short_code = result["shortLink"].rsplit("/", 1)[1]
        assert len(short_code) == 6
        assert datetime.fromisoformat(result["expiry"]) == clock.now + timedelta(minutes=30)

        stored = await repository.find_by_code(short_code)
        assert stored.original_url == "https://example.com/page"
        assert stored.is_active is True
        assert stored.access_count == 0
        assert stored.last_accessed is None
        assert ensure_utc(stored.created_at) == clock.now
        assert ensure_utc(stored.expires_at) > ensure_utc(stored.created_at)

    @pytest.mark.asyncio
    async def test_url_is_normalized(self, service, repository):
        await service.create_short_url("example.com", shortcode="norm1")
        stored = await repository.find_by_code("norm1")
        assert stored.original_url == "https://example.com"

    @pytest.mark.asyncio
    async def test_custom_code_and_validity(self, service, clock):
        result = await service.create_short_url("https://example.com", shortcode="Promo2026", validity=120)
        assert result == {
            "shortLink": f"{BASE_URL}/Promo2026",
            "expiry": (clock.now + timedelta(minutes=120)).isoformat(),
        }

    @pytest.mark.asyncio
    async def test_duplicate_custom_code_conflicts_and_keeps_first(self, service, repository):
        await service.create_short_url("https://first.example.com", shortcode="same1")

        with pytest.raises(ShortCodeConflictError):
            await service.create_short_url("https://second.example.com", shortcode="same1")

        stored = await repository.find_by_code("same1")
        assert stored.original_url == "https://first.example.com"

    @pytest.mark.asyncio
    async def test_codes_are_case_sensitive(self, service, repository):
        await service.create_short_url("https://lower.example.com", shortcode="abcd")
        await service.create_short_url("https://upper.example.com", shortcode="ABCD")

        assert (await repository.find_by_code("abcd")).original_url == "https://lower.example.com"
        assert (await repository.find_by_code("ABCD")).original_url == "https://upper.example.com"

    @pytest.mark.asyncio
    async def test_storage_unique_constraint_maps_to_conflict(self, session, clock):
        racing = URLService(RacingRepository(session), base_url=BASE_URL, clock=clock)
        await racing.create_short_url("https://a.example.com", shortcode="race1")

        with pytest.raises(ShortCodeConflictError):
            await racing.create_short_url("https://b.example.com", shortcode="race1")

    @pytest.mark.asyncio
    async def test_repository_surfaces_duplicate_distinctly(self, repository, clock):
        def make_row():
            return ShortURL(
                original_url="https://example.com",
                short_code="dup01",
                created_at=clock.now,
                expires_at=clock.now + timedelta(minutes=5),
            )

        await repository.insert_url(make_row())
        with pytest.raises(DuplicateShortCodeError):
            await repository.insert_url(make_row())

        # the session is usable again after the failed insert
        assert await repository.code_exists("dup01")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs, error", [
        ({"url": "http://localhost/admin"}, InvalidURLError),
        ({"url": "ftp://example.com"}, InvalidURLError),
        ({"url": "https://example.com", "validity": 0}, InvalidValidityError),
        ({"url": "https://example.com", "validity": 525601}, InvalidValidityError),
        ({"url": "https://example.com", "shortcode": "ab"}, InvalidShortCodeError),
        ({"url": "https://example.com", "shortcode": "Admin"}, InvalidShortCodeError),
    ])
    async def test_invalid_input_persists_nothing(self, service, session, kwargs, error):
        with pytest.raises(error):
            await service.create_short_url(**kwargs)

        result = await session.execute(select(func.count()).select_from(ShortURL))
        assert result.scalar_one() == 0

    @pytest.mark.asyncio
    async def test_expiry_round_trip(self, service, repository, clock):
        created_at = clock.now
        await service.create_short_url("https://example.com", shortcode="round1", validity=15)
        stored = await repository.find_by_code("round1")

        assert not is_expired(stored.expires_at, created_at + timedelta(minutes=14))
        assert is_expired(stored.expires_at, created_at + timedelta(minutes=16))


class TestGetOriginalURL:

    @pytest.mark.asyncio
    async def test_unknown_code(self, service):
        with pytest.raises(ShortCodeNotFoundError):
            await service.get_original_url("nothere")

    @pytest.mark.asyncio
    async def test_each_access_counts_exactly_once(self, service, repository, session, clock):
        await service.create_short_url("https://example.com/target", shortcode="count1")

        clock.advance(minutes=1)
        first_access = clock.now
        assert await service.get_original_url("count1") == "https://example.com/target"

        stored = await repository.find_by_code("count1")
        assert stored.access_count == 1
        assert ensure_utc(stored.last_accessed) == first_access

        clock.advance(minutes=1)
        await service.get_original_url("count1")

        stored = await repository.find_by_code("count1")
        assert stored.access_count == 2
        assert ensure_utc(stored.last_accessed) == clock.now
        assert await count_access_records(session, "count1") == 2

    @pytest.mark.asyncio
    async def test_client_info_is_recorded(self, service, repository):
        await service.create_short_url("https://example.com", shortcode="info1")
        await service.get_original_url(
            "info1",
            ClientInfo(ip="8.8.8.8", user_agent="pytest-agent", referrer="https://ref.example.com"),
        )

        records = await repository.list_access_records("info1")
        assert len(records) == 1
        assert records[0].ip_address == "8.8.8.8"
        assert records[0].user_agent == "pytest-agent"
        assert records[0].referrer == "https://ref.example.com"
        assert records[0].location == "North America"

    @pytest.mark.asyncio
    async def test_access_at_exact_expiry_still_redirects(self, service, clock):
        await service.create_short_url("https://example.com", shortcode="edge1", validity=5)
        clock.advance(minutes=5)
        assert await service.get_original_url("edge1") == "https://example.com"

    @pytest.mark.asyncio
    async def test_expired_then_inactive(self, service, repository, session, clock):
        await service.create_short_url("https://example.com", shortcode="old01", validity=5)
        clock.advance(minutes=6)

        with pytest.raises(ShortURLExpiredError):
            await service.get_original_url("old01")

        stored = await repository.find_by_code("old01")
        assert stored.is_active is False
        assert stored.access_count == 0
        assert await count_access_records(session, "old01") == 0

        with pytest.raises(ShortURLInactiveError):
            await service.get_original_url("old01")

    @pytest.mark.asyncio
    async def test_failed_deactivation_still_reports_expired(self, session, clock):
        service = URLService(FailingDeactivateRepository(session), base_url=BASE_URL, clock=clock)
        await service.create_short_url("https://example.com", shortcode="stuck1", validity=1)
        clock.advance(minutes=2)

        with pytest.raises(ShortURLExpiredError):
            await service.get_original_url("stuck1")
        # not deactivated, so the next attempt is again "expired"
        with pytest.raises(ShortURLExpiredError):
            await service.get_original_url("stuck1")

    @pytest.mark.asyncio
    async def test_analytics_failure_does_not_fail_redirect(self, session, clock):
        """access_count keeps counting even though no analytics rows exist."""
        service = URLService(FailingAnalyticsRepository(session), base_url=BASE_URL, clock=clock)
        await service.create_short_url("https://example.com", shortcode="lossy1")

        assert await service.get_original_url("lossy1") == "https://example.com"

        stats = await service.get_url_stats("lossy1")
        assert stats["totalClicks"] == 1
        assert stats["clickData"] == []

    @pytest.mark.asyncio
    async def test_counter_failure_surfaces_after_access_was_recorded(self, session, repository, clock):
        """
        Analytics insert and counter update are separate commits: when the
        counter update fails the access record is already stored.
        """
        service = URLService(FailingCounterRepository(session), base_url=BASE_URL, clock=clock)
        await service.create_short_url("https://example.com", shortcode="split1")

        with pytest.raises(DatabaseError):
            await service.get_original_url("split1")

        stored = await repository.find_by_code("split1")
        assert stored.access_count == 0
        assert await count_access_records(session, "split1") == 1


class TestGetURLStats:

    @pytest.mark.asyncio
    async def test_unknown_code(self, service):
        with pytest.raises(ShortCodeNotFoundError):
            await service.get_url_stats("nothere")

    @pytest.mark.asyncio
    async def test_stats_shape_and_order(self, service, clock):
        created_at = clock.now
        await service.create_short_url("https://example.com", shortcode="stat1", validity=60)

        clock.advance(minutes=1)
        await service.get_original_url("stat1", ClientInfo(ip="51.0.0.1", referrer="https://a.example.com"))
        clock.advance(minutes=1)
        await service.get_original_url("stat1")

        stats = await service.get_url_stats("stat1")

        assert stats["shortCode"] == "stat1"
        assert stats["originalUrl"] == "https://example.com"
        assert stats["createdAt"] == created_at.isoformat()
        assert stats["expiresAt"] == (created_at + timedelta(minutes=60)).isoformat()
        assert stats["totalClicks"] == 2

        newest, oldest = stats["clickData"]
        assert newest["timestamp"] == clock.now.isoformat()
        assert newest == {
            "timestamp": clock.now.isoformat(),
            "referrer": None,
            "location": "Local/Private Network",
            "ipAddress": "Unknown",
            "userAgent": "Unknown",
        }
        assert oldest["location"] == "Europe"
        assert oldest["ipAddress"] == "51.0.0.1"
        assert oldest["referrer"] == "https://a.example.com"

    @pytest.mark.asyncio
    async def test_stats_available_after_expiry(self, service, clock):
        await service.create_short_url("https://example.com", shortcode="hist1", validity=1)
        await service.get_original_url("hist1")
        clock.advance(minutes=5)

        with pytest.raises(ShortURLExpiredError):
            await service.get_original_url("hist1")

        stats = await service.get_url_stats("hist1")
        assert stats["totalClicks"] == 1
        assert len(stats["clickData"]) == 1


class TestRunBestEffort:

    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def succeed():
            return 42

        assert await run_best_effort("ok", succeed()) == 42

    @pytest.mark.asyncio
    async def test_swallows_database_errors(self):
        async def fail():
            raise DatabaseError("boom")

        assert await run_best_effort("fails", fail(), default=[]) == []

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        async def bug():
            raise KeyError("not a storage problem")

        with pytest.raises(KeyError):
            await run_best_effort("bug", bug())
