"""Helpers for building test data directly in the database."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.core.clock import utcnow
from quicklink.models import Click, Link
from quicklink.services.geoip import GeoLocation


class FakeGeoIP:
    """GeoIP stand-in returning a fixed location."""

    def __init__(self, country: str | None = None, city: str | None = None):
        self.location = GeoLocation(country=country, city=city)
        self.lookups: list[str | None] = []

    async def lookup(self, ip_address: str | None) -> GeoLocation:
        self.lookups.append(ip_address)
        return self.location


async def make_link(
    session: AsyncSession,
    short_code: str,
    original_url: str = "https://example.com/",
    **fields,
) -> Link:
    """Insert a link directly, bypassing the service layer."""
    link = Link(short_code=short_code, original_url=original_url, **fields)
    session.add(link)
    await session.flush()
    return link


async def add_click(
    session: AsyncSession,
    link: Link,
    clicked_at: datetime | None = None,
    **fields,
) -> Click:
    """Insert a click event directly."""
    click = Click(link_id=link.id, clicked_at=clicked_at or utcnow(), **fields)
    session.add(click)
    await session.flush()
    return click
