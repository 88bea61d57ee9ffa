"""Read-side click statistics.

Every function here is a pure read over the links and clicks tables. Time
windows are naive UTC; "today" and "this month" start at local wall-clock
boundaries (see ``quicklink.core.clock``).
"""

import math
from datetime import date, datetime, timedelta
from typing import Literal
from uuid import UUID

from sqlalchemy import func, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.core.clock import local_midnight_utc, local_month_start_utc, utcnow
from quicklink.core.config import full_short_url
from quicklink.models.click import Click
from quicklink.models.link import Link
from quicklink.schemas.admin import Demographics, SystemGrowth, SystemOverview, SystemStats
from quicklink.schemas.analytics import (
    CategoryStats,
    DailyPoint,
    DashboardOverview,
    LinkSummary,
    RecentClick,
    TopLink,
)

UNKNOWN = "Unknown"
DIRECT = "Direct"

Category = Literal["country", "device", "browser", "referrer"]
Period = Literal["all", "today", "week", "month"]


def percentage_change(current: int, previous: int) -> float:
    """Growth from ``previous`` to ``current`` in percent, 0 when previous is 0."""
    if previous == 0:
        return 0.0
    return round((current - previous) / previous * 100, 1)


def average_clicks(total_clicks: int, total_links: int) -> int:
    """Clicks per link rounded half up, 0 when there are no links."""
    if total_links == 0:
        return 0
    return math.floor(total_clicks / total_links + 0.5)


def _percentage(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def mask_ip(ip_address: str | None) -> str | None:
    """Hide the last IPv4 octet (or IPv6 group)."""
    if not ip_address:
        return ip_address
    separator = "." if "." in ip_address else ":"
    head, _, _ = ip_address.rpartition(separator)
    return f"{head}{separator}***" if head else ip_address


async def count_clicks(
    session: AsyncSession,
    link_id: UUID | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
) -> int:
    """Count click events, optionally for one link and within [since, until)."""
    query = select(func.count(Click.id))
    if link_id is not None:
        query = query.where(Click.link_id == link_id)
    if since is not None:
        query = query.where(Click.clicked_at >= since)
    if until is not None:
        query = query.where(Click.clicked_at < until)
    result = await session.execute(query)
    return result.scalar() or 0


async def count_links(
    session: AsyncSession,
    *conditions,
) -> int:
    query = select(func.count(Link.id))
    if conditions:
        query = query.where(*conditions)
    result = await session.execute(query)
    return result.scalar() or 0


async def daily_series(
    session: AsyncSession,
    link_id: UUID | None = None,
    days: int = 30,
    now: datetime | None = None,
) -> list[DailyPoint]:
    """Clicks and distinct IPs per UTC day over the last ``days`` days.

    Folds a time-ordered scan of the window; only days with clicks appear,
    ascending by date.
    """
    now = now or utcnow()
    query = (
        select(Click.clicked_at, Click.ip_address)
        .where(Click.clicked_at >= now - timedelta(days=days))
        .where(Click.clicked_at <= now)
        .order_by(Click.clicked_at)
    )
    if link_id is not None:
        query = query.where(Click.link_id == link_id)

    result = await session.execute(query)

    buckets: dict[date, tuple[int, set[str]]] = {}
    for clicked_at, ip_address in result.all():
        day = clicked_at.date()
        clicks, ips = buckets.setdefault(day, (0, set()))
        if ip_address:
            ips.add(ip_address)
        buckets[day] = (clicks + 1, ips)

    return [
        DailyPoint(date=day, clicks=clicks, unique_clicks=len(ips))
        for day, (clicks, ips) in buckets.items()
    ]


async def top_categories(
    session: AsyncSession,
    category: Category,
    link_id: UUID | None = None,
    limit: int | None = 10,
) -> list[CategoryStats]:
    """Most frequent values of a click attribute, by count descending.

    Missing values are grouped under "Unknown", or "Direct" for referrers.
    """
    column = getattr(Click, category)
    fallback = DIRECT if category == "referrer" else UNKNOWN
    # Constants render inline so the GROUP BY expression matches the select list
    name = func.coalesce(
        func.nullif(column, literal_column("''")), literal_column(f"'{fallback}'")
    ).label("name")
    clicks = func.count().label("clicks")

    query = select(name, clicks).group_by(name).order_by(clicks.desc(), name.asc())
    if link_id is not None:
        query = query.where(Click.link_id == link_id)
    if limit is not None:
        query = query.limit(limit)

    result = await session.execute(query)
    rows = result.all()
    total = await count_clicks(session, link_id=link_id)

    return [
        CategoryStats(name=row.name, clicks=row.clicks, percentage=_percentage(row.clicks, total))
        for row in rows
    ]


async def link_summary(session: AsyncSession, link_id: UUID) -> LinkSummary:
    """All-time click totals for one link."""
    query = select(
        func.count(Click.id).label("total_clicks"),
        func.count(func.distinct(Click.ip_address)).label("unique_clicks"),
        func.count(func.distinct(Click.country)).label("countries"),
        func.count(func.distinct(Click.device)).label("devices"),
        func.count(func.distinct(Click.browser)).label("browsers"),
        func.min(Click.clicked_at).label("first_click"),
        func.max(Click.clicked_at).label("last_click"),
    ).where(Click.link_id == link_id)

    result = await session.execute(query)
    row = result.one()
    return LinkSummary(
        total_clicks=row.total_clicks,
        unique_clicks=row.unique_clicks,
        countries=row.countries,
        devices=row.devices,
        browsers=row.browsers,
        first_click=row.first_click,
        last_click=row.last_click,
    )


async def dashboard_overview(
    session: AsyncSession,
    now: datetime | None = None,
) -> DashboardOverview:
    """System-wide totals, windowed click counts and month-over-month growth."""
    now = now or utcnow()
    month_start = local_month_start_utc(now)
    last_month_start = local_month_start_utc(now, months_back=1)

    total_links = await count_links(session)
    total_clicks = await count_clicks(session)

    links_this_month = await count_links(session, Link.created_at >= month_start)
    links_last_month = await count_links(
        session,
        Link.created_at >= last_month_start,
        Link.created_at < month_start,
    )
    clicks_this_month = await count_clicks(session, since=month_start)
    clicks_last_month = await count_clicks(session, since=last_month_start, until=month_start)

    return DashboardOverview(
        total_links=total_links,
        total_clicks=total_clicks,
        clicks_today=await count_clicks(session, since=local_midnight_utc(now)),
        clicks_this_week=await count_clicks(session, since=now - timedelta(days=7)),
        clicks_this_month=clicks_this_month,
        avg_clicks_per_link=average_clicks(total_clicks, total_links),
        link_growth=percentage_change(links_this_month, links_last_month),
        click_growth=percentage_change(clicks_this_month, clicks_last_month),
    )


def period_start(period: Period, now: datetime | None = None) -> datetime | None:
    """Earliest creation time included by a top-links period; None for all time."""
    now = now or utcnow()
    if period == "today":
        return local_midnight_utc(now)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return local_month_start_utc(now)
    return None


async def top_links(
    session: AsyncSession,
    base_url: str,
    limit: int = 10,
    period: Period = "all",
    now: datetime | None = None,
) -> list[TopLink]:
    """Links with the most clicks, optionally only those created in ``period``."""
    query = select(Link).order_by(Link.click_count.desc(), Link.created_at.desc()).limit(limit)
    since = period_start(period, now)
    if since is not None:
        query = query.where(Link.created_at >= since)

    result = await session.execute(query)
    return [
        TopLink(
            short_code=link.short_code,
            short_url=full_short_url(base_url, link.short_code),
            original_url=link.original_url,
            description=link.description,
            click_count=link.click_count,
            created_at=link.created_at,
            last_clicked_at=link.last_clicked_at,
        )
        for link in result.scalars().all()
    ]


async def recent_clicks(session: AsyncSession, limit: int = 20) -> list[RecentClick]:
    """Latest click events across all links, newest first, with masked IPs."""
    query = (
        select(Click, Link.short_code, Link.original_url)
        .join(Link, Click.link_id == Link.id)
        .order_by(Click.clicked_at.desc())
        .limit(limit)
    )
    result = await session.execute(query)
    return [
        RecentClick(
            short_code=short_code,
            original_url=original_url,
            clicked_at=click.clicked_at,
            ip_address=mask_ip(click.ip_address),
            country=click.country,
            city=click.city,
            device=click.device,
            browser=click.browser,
            os=click.os,
            referrer=click.referrer,
        )
        for click, short_code, original_url in result.all()
    ]


async def system_stats(session: AsyncSession, now: datetime | None = None) -> SystemStats:
    """Admin statistics: totals, growth, top demographics and a 30-day series."""
    now = now or utcnow()
    today = local_midnight_utc(now)
    yesterday = today - timedelta(days=1)
    week_ago = now - timedelta(days=7)
    month_start = local_month_start_utc(now)
    last_month_start = local_month_start_utc(now, months_back=1)

    total_links = await count_links(session)
    total_clicks = await count_clicks(session)
    links_this_month = await count_links(session, Link.created_at >= month_start)
    links_last_month = await count_links(
        session,
        Link.created_at >= last_month_start,
        Link.created_at < month_start,
    )
    clicks_this_month = await count_clicks(session, since=month_start)
    clicks_last_month = await count_clicks(session, since=last_month_start, until=month_start)

    overview = SystemOverview(
        total_links=total_links,
        active_links=await count_links(session, Link.is_active.is_(True)),
        expired_links=await count_links(
            session, Link.expires_at.is_not(None), Link.expires_at < now
        ),
        total_clicks=total_clicks,
        avg_clicks_per_link=average_clicks(total_clicks, total_links),
    )
    growth = SystemGrowth(
        links_today=await count_links(session, Link.created_at >= today),
        links_this_week=await count_links(session, Link.created_at >= week_ago),
        links_this_month=links_this_month,
        link_growth=percentage_change(links_this_month, links_last_month),
        clicks_today=await count_clicks(session, since=today),
        clicks_yesterday=await count_clicks(session, since=yesterday, until=today),
        clicks_this_week=await count_clicks(session, since=week_ago),
        clicks_this_month=clicks_this_month,
        click_growth=percentage_change(clicks_this_month, clicks_last_month),
    )
    demographics = Demographics(
        top_countries=await top_categories(session, "country", limit=5),
        top_devices=await top_categories(session, "device", limit=5),
    )

    return SystemStats(
        overview=overview,
        growth=growth,
        demographics=demographics,
        daily_clicks=await daily_series(session, days=30, now=now),
    )
