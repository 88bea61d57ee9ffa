from datetime import timedelta

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import OperationalError

from factories import FakeGeoIP, make_link
from quicklink.aggregators.reconciler import reconcile_click_counts
from quicklink.core.clock import utcnow
from quicklink.core.exceptions import LinkExpired, LinkNotFound
from quicklink.models import Click, Link
from quicklink.schemas.click import ClickContext
from quicklink.services import resolver
from quicklink.services.resolver import resolve

CONTEXT = ClickContext(ip_address="198.51.100.4", user_agent="curl/8.4.0")


async def click_count(session, link: Link) -> int:
    return await session.scalar(select(func.count(Click.id)).where(Click.link_id == link.id))


async def cached_count(session, link: Link) -> int:
    return await session.scalar(select(Link.click_count).where(Link.id == link.id))


class TestResolve:
    """Test the resolution state machine"""

    async def test_unknown_code_is_not_found(self, session):
        with pytest.raises(LinkNotFound):
            await resolve(session, "nope42", CONTEXT, geoip=FakeGeoIP())

    async def test_inactive_link_is_not_found(self, session):
        await make_link(session, "off001", is_active=False)

        with pytest.raises(LinkNotFound):
            await resolve(session, "off001", CONTEXT, geoip=FakeGeoIP())

    async def test_inactive_and_expired_link_is_not_found(self, session):
        await make_link(
            session,
            "off002",
            is_active=False,
            expires_at=utcnow() - timedelta(days=1),
        )

        with pytest.raises(LinkNotFound):
            await resolve(session, "off002", CONTEXT, geoip=FakeGeoIP())

    async def test_expired_link_reports_expiry(self, session):
        expires_at = utcnow() - timedelta(minutes=1)
        await make_link(session, "old001", expires_at=expires_at)

        with pytest.raises(LinkExpired) as exc_info:
            await resolve(session, "old001", CONTEXT, geoip=FakeGeoIP())

        assert exc_info.value.expires_at == expires_at
        assert exc_info.value.to_dict()["expires_at"] == expires_at.isoformat()

    async def test_link_before_expiry_resolves(self, session):
        await make_link(session, "soon01", expires_at=utcnow() + timedelta(hours=1))

        resolution = await resolve(session, "soon01", CONTEXT, geoip=FakeGeoIP())

        assert resolution.original_url == "https://example.com/"

    async def test_success_records_click_and_counter(self, session, fake_geoip):
        link = await make_link(session, "hit001", original_url="https://example.com/a?b=1")

        resolution = await resolve(session, "hit001", CONTEXT, geoip=fake_geoip)

        assert resolution.original_url == "https://example.com/a?b=1"
        assert resolution.click_recorded is True
        assert resolution.counter_updated is True
        assert await click_count(session, link) == 1
        assert await cached_count(session, link) == 1
        last_clicked = await session.scalar(select(Link.last_clicked_at).where(Link.id == link.id))
        assert last_clicked is not None

    async def test_n_resolutions_give_n_clicks(self, session):
        link = await make_link(session, "many01")

        for _ in range(5):
            await resolve(session, "many01", CONTEXT, geoip=FakeGeoIP())

        assert await click_count(session, link) == 5
        assert await cached_count(session, link) == 5


class TestResolveDegradation:
    """Test that storage failures never block the redirect"""

    async def test_click_write_failure_still_resolves(self, session):
        link = await make_link(session, "deg001")
        await session.execute(text("DROP TABLE clicks"))

        resolution = await resolve(session, "deg001", CONTEXT, geoip=FakeGeoIP())

        assert resolution.original_url == "https://example.com/"
        assert resolution.click_recorded is False
        assert resolution.counter_updated is False
        assert await cached_count(session, link) == 0

    async def test_counter_failure_converges_after_reconciliation(self, session, monkeypatch):
        link = await make_link(session, "deg002")

        async def failing_increment(*args, **kwargs):
            raise OperationalError("UPDATE links", {}, Exception("database is locked"))

        monkeypatch.setattr(resolver, "increment_click_count", failing_increment)

        resolution = await resolve(session, "deg002", CONTEXT, geoip=FakeGeoIP())

        assert resolution.click_recorded is True
        assert resolution.counter_updated is False
        assert await click_count(session, link) == 1
        assert await cached_count(session, link) == 0

        result = await reconcile_click_counts(session)

        assert result.links_updated == 1
        assert await cached_count(session, link) == 1
