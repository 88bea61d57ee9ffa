"""Click recording: classify the request and append a click event."""

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.core.clock import utcnow
from quicklink.core.observability import record_click_failed, record_click_recorded
from quicklink.models.click import Click
from quicklink.models.link import Link
from quicklink.schemas.click import ClickContext
from quicklink.services.geoip import GeoIPService, get_geoip_service

logger = structlog.get_logger()

# Checked in order; the first substring found wins.
MOBILE_MARKERS = ("mobile", "android", "iphone")
TABLET_MARKERS = ("tablet", "ipad")
BROWSER_MARKERS = (
    ("chrome", "Chrome"),
    ("firefox", "Firefox"),
    ("safari", "Safari"),
    ("edge", "Edge"),
)
OS_MARKERS = (
    ("windows", "Windows"),
    ("mac", "macOS"),
    ("linux", "Linux"),
    ("android", "Android"),
    ("ios", "iOS"),
    ("iphone", "iOS"),
    ("ipad", "iOS"),
)


@dataclass(frozen=True)
class DeviceInfo:
    device: str | None = None
    browser: str | None = None
    os: str | None = None


def classify_user_agent(user_agent: str | None) -> DeviceInfo:
    """Derive device type, browser and OS from a User-Agent header.

    Plain case-insensitive substring heuristics. A missing agent yields no
    classification at all.
    """
    if not user_agent:
        return DeviceInfo()

    agent = user_agent.lower()

    if any(marker in agent for marker in MOBILE_MARKERS):
        device = "Mobile"
    elif any(marker in agent for marker in TABLET_MARKERS):
        device = "Tablet"
    else:
        device = "Desktop"

    browser = next((name for marker, name in BROWSER_MARKERS if marker in agent), "Other")
    os_name = next((name for marker, name in OS_MARKERS if marker in agent), "Other")

    return DeviceInfo(device=device, browser=browser, os=os_name)


async def record_click(
    session: AsyncSession,
    link: Link,
    context: ClickContext,
    clicked_at: datetime | None = None,
    geoip: GeoIPService | None = None,
) -> Click | None:
    """Append a click event for ``link``.

    The insert runs in a savepoint. A database failure is logged and counted
    and None is returned, leaving the caller's transaction usable.
    """
    link_id, short_code = link.id, link.short_code
    geoip = geoip or get_geoip_service()
    location = await geoip.lookup(context.ip_address)
    info = classify_user_agent(context.user_agent)

    click = Click(
        link_id=link_id,
        clicked_at=clicked_at or utcnow(),
        ip_address=context.ip_address,
        user_agent=context.user_agent or None,
        referrer=context.referrer or None,
        country=location.country,
        city=location.city,
        device=info.device,
        browser=info.browser,
        os=info.os,
    )

    try:
        async with session.begin_nested():
            session.add(click)
            await session.flush()
    except SQLAlchemyError:
        logger.exception(
            "Failed to record click",
            link_id=str(link_id),
            short_code=short_code,
        )
        record_click_failed("event")
        return None

    record_click_recorded()
    logger.debug(
        "Click recorded",
        link_id=str(link_id),
        device=info.device,
        browser=info.browser,
        country=location.country,
    )
    return click
