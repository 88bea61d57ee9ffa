"""Short code resolution: the redirect path."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.core.clock import utcnow
from quicklink.core.exceptions import InternalFailure, LinkExpired, LinkNotFound
from quicklink.core.observability import record_click_failed
from quicklink.schemas.click import ClickContext
from quicklink.services.click_recorder import record_click
from quicklink.services.geoip import GeoIPService
from quicklink.services.link import get_link_by_short_code, increment_click_count

logger = structlog.get_logger()


@dataclass(frozen=True)
class Resolution:
    """Outcome of a successful resolution."""

    link_id: UUID
    short_code: str
    original_url: str
    click_recorded: bool
    counter_updated: bool


async def _bump_counter(session: AsyncSession, link_id: UUID, clicked_at: datetime) -> bool:
    try:
        async with session.begin_nested():
            await increment_click_count(session, link_id, clicked_at)
    except SQLAlchemyError:
        logger.exception("Failed to update click counter", link_id=str(link_id))
        record_click_failed("counter")
        return False
    return True


async def resolve(
    session: AsyncSession,
    short_code: str,
    context: ClickContext,
    geoip: GeoIPService | None = None,
) -> Resolution:
    """Resolve a short code to its redirect target.

    Steps, in order: look the link up, treat inactive as not found, reject
    expired links, append a click event, bump the cached counter, commit.
    Failures after the link has been found are logged and swallowed so the
    redirect is still honoured; the click log remains the source of truth
    for the counter.

    Raises:
        LinkNotFound: unknown or inactive short code.
        LinkExpired: the link is past ``expires_at``.
        InternalFailure: the link could not be read.
    """
    try:
        link = await get_link_by_short_code(session, short_code)
    except SQLAlchemyError as e:
        logger.exception("Link lookup failed", short_code=short_code)
        raise InternalFailure() from e

    if link is None:
        logger.info("Redirect blocked", short_code=short_code, reason="not_found")
        raise LinkNotFound()

    if not link.is_active:
        logger.info("Redirect blocked", short_code=short_code, reason="inactive")
        raise LinkNotFound()

    now = utcnow()
    if link.expired_at(now):
        logger.info(
            "Redirect blocked",
            short_code=short_code,
            reason="expired",
            expires_at=link.expires_at.isoformat(),
        )
        raise LinkExpired(link.expires_at)

    link_id = link.id
    target = link.original_url

    click = await record_click(session, link, context, clicked_at=now, geoip=geoip)
    recorded = click is not None
    counted = recorded and await _bump_counter(session, link_id, now)

    try:
        await session.commit()
    except SQLAlchemyError:
        logger.exception("Failed to commit click", short_code=short_code)
        record_click_failed("commit")
        await session.rollback()
        recorded = counted = False

    logger.info(
        "Redirect",
        short_code=short_code,
        link_id=str(link_id),
        click_recorded=recorded,
        counter_updated=counted,
    )
    return Resolution(
        link_id=link_id,
        short_code=short_code,
        original_url=target,
        click_recorded=recorded,
        counter_updated=counted,
    )
