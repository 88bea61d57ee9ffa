"""Administrative link operations."""

import csv
import io
import itertools
from collections.abc import Iterable, Iterator
from datetime import datetime
from typing import Literal
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.core.clock import utcnow
from quicklink.core.exceptions import LinkNotFound
from quicklink.core.observability import record_link_operation
from quicklink.models.click import Click
from quicklink.models.link import Link
from quicklink.services.link import delete_link, get_link_by_id

logger = structlog.get_logger()

SortField = Literal["created_at", "click_count", "short_code", "expires_at", "last_clicked_at"]

CSV_HEADERS = (
    "Short Code",
    "Original URL",
    "Description",
    "Clicks",
    "Created At",
    "Last Clicked",
    "Expiration",
    "Is Active",
)


async def list_links(
    session: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    search: str | None = None,
    sort_by: SortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
) -> tuple[list[Link], int]:
    """Get a page of links, optionally filtered by a search term.

    Returns tuple of (links, total_count).
    """
    query = select(Link)
    count_query = select(func.count(Link.id))

    if search:
        condition = or_(
            Link.short_code.icontains(search, autoescape=True),
            Link.original_url.icontains(search, autoescape=True),
            Link.description.icontains(search, autoescape=True),
        )
        query = query.where(condition)
        count_query = count_query.where(condition)

    total_result = await session.execute(count_query)
    total = total_result.scalar() or 0

    column = getattr(Link, sort_by)
    order = column.asc() if sort_order == "asc" else column.desc()
    offset = (page - 1) * page_size
    query = query.order_by(order, Link.id).offset(offset).limit(page_size)

    result = await session.execute(query)
    return list(result.scalars().all()), total


async def require_link_by_id(session: AsyncSession, link_id: UUID) -> Link:
    link = await get_link_by_id(session, link_id)
    if link is None:
        raise LinkNotFound()
    return link


async def toggle_link(session: AsyncSession, link_id: UUID) -> Link:
    """Flip a link's active flag."""
    link = await require_link_by_id(session, link_id)
    link.is_active = not link.is_active
    await session.flush()
    await session.refresh(link)

    record_link_operation("toggle")
    logger.info("Link toggled", short_code=link.short_code, is_active=link.is_active)
    return link


async def delete_link_by_id(session: AsyncSession, link_id: UUID) -> int:
    """Delete a link and its clicks by ID. Returns the number of clicks removed."""
    link = await require_link_by_id(session, link_id)
    return await delete_link(session, link)


async def cleanup_expired(session: AsyncSession) -> tuple[int, int]:
    """Delete every expired link and its clicks.

    Returns tuple of (links_deleted, clicks_deleted).
    """
    now = utcnow()
    is_expired = and_(Link.expires_at.is_not(None), Link.expires_at < now)

    clicks_result = await session.execute(
        delete(Click)
        .where(Click.link_id.in_(select(Link.id).where(is_expired)))
        .execution_options(synchronize_session=False)
    )
    links_result = await session.execute(
        delete(Link).where(is_expired).execution_options(synchronize_session=False)
    )

    links_deleted = links_result.rowcount
    clicks_deleted = clicks_result.rowcount
    record_link_operation("cleanup", links_deleted)
    logger.info(
        "Expired links cleaned up",
        links_deleted=links_deleted,
        clicks_deleted=clicks_deleted,
    )
    return links_deleted, clicks_deleted


def _isoformat(value: datetime | None) -> str:
    return value.isoformat() if value else ""


async def export_rows(session: AsyncSession) -> list[tuple]:
    """Fetch every link as a CSV row, newest first."""
    result = await session.scalars(select(Link).order_by(Link.created_at.desc()))
    return [
        (
            link.short_code,
            link.original_url,
            link.description,
            link.click_count,
            _isoformat(link.created_at),
            _isoformat(link.last_clicked_at),
            _isoformat(link.expires_at),
            str(link.is_active).lower(),
        )
        for link in result
    ]


def iter_csv(rows: Iterable[tuple]) -> Iterator[str]:
    """Render rows as CSV text under the export header, one chunk per row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    for row in itertools.chain([CSV_HEADERS], rows):
        writer.writerow(row)
        yield buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
