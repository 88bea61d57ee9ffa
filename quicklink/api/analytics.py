"""Analytics API endpoints."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.aggregators import click_stats
from quicklink.core.config import Settings, get_settings
from quicklink.core.database import get_async_session
from quicklink.core.rate_limit import RATE_LIMIT_API, limiter
from quicklink.schemas.analytics import (
    BreakdownResponse,
    DashboardResponse,
    DetailedAnalyticsResponse,
    LinkAnalyticsResponse,
    LinkInfo,
    RecentClick,
    TopLink,
)
from quicklink.services.link import require_link

logger = structlog.get_logger()

router = APIRouter(prefix="/analytics", tags=["analytics"])

SessionDep = Annotated[AsyncSession, Depends(get_async_session)]


@router.get("/dashboard", response_model=DashboardResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_dashboard(
    request: Request,
    session: SessionDep,
    settings: Annotated[Settings, Depends(get_settings)],
) -> DashboardResponse:
    """System-wide overview, the top 5 links and the 10 latest clicks."""
    return DashboardResponse(
        overview=await click_stats.dashboard_overview(session),
        top_links=await click_stats.top_links(session, settings.base_url, limit=5),
        recent_clicks=await click_stats.recent_clicks(session, limit=10),
    )


@router.get("/link/{short_code}", response_model=LinkAnalyticsResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_link_analytics(
    request: Request,
    short_code: str,
    session: SessionDep,
    days: Annotated[int, Query(ge=1, le=365, description="Days of daily series")] = 30,
) -> LinkAnalyticsResponse:
    """All-time summary plus the daily click series for a link."""
    link = await require_link(session, short_code)

    response = LinkAnalyticsResponse(
        link=LinkInfo(
            short_code=link.short_code,
            original_url=link.original_url,
            created_at=link.created_at,
        ),
        days=days,
        stats=await click_stats.link_summary(session, link.id),
        daily=await click_stats.daily_series(session, link_id=link.id, days=days),
    )
    logger.debug(
        "Link analytics fetched",
        short_code=short_code,
        total_clicks=response.stats.total_clicks,
    )
    return response


@router.get("/link/{short_code}/detailed", response_model=DetailedAnalyticsResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_detailed_analytics(
    request: Request,
    short_code: str,
    session: SessionDep,
) -> DetailedAnalyticsResponse:
    """Country, device, browser and referrer breakdowns for a link."""
    link = await require_link(session, short_code)
    return DetailedAnalyticsResponse(
        short_code=link.short_code,
        total_clicks=await click_stats.count_clicks(session, link_id=link.id),
        geographic=await click_stats.top_categories(session, "country", link.id, limit=10),
        devices=await click_stats.top_categories(session, "device", link.id, limit=None),
        browsers=await click_stats.top_categories(session, "browser", link.id, limit=None),
        referrers=await click_stats.top_categories(session, "referrer", link.id, limit=10),
    )


@router.get("/top-links", response_model=list[TopLink])
@limiter.limit(RATE_LIMIT_API)
async def get_top_links(
    request: Request,
    session: SessionDep,
    settings: Annotated[Settings, Depends(get_settings)],
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    period: Annotated[click_stats.Period, Query(description="Link creation window")] = "all",
) -> list[TopLink]:
    """Links with the most clicks."""
    return await click_stats.top_links(session, settings.base_url, limit=limit, period=period)


@router.get("/recent-clicks", response_model=list[RecentClick])
@limiter.limit(RATE_LIMIT_API)
async def get_recent_clicks(
    request: Request,
    session: SessionDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> list[RecentClick]:
    """Latest clicks across all links."""
    return await click_stats.recent_clicks(session, limit=limit)


async def _breakdown(
    session: AsyncSession,
    short_code: str,
    category: click_stats.Category,
    limit: int | None,
) -> BreakdownResponse:
    link = await require_link(session, short_code)
    return BreakdownResponse(
        short_code=link.short_code,
        total_clicks=await click_stats.count_clicks(session, link_id=link.id),
        items=await click_stats.top_categories(session, category, link.id, limit=limit),
    )


@router.get("/geographic/{short_code}", response_model=BreakdownResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_geographic_data(
    request: Request,
    short_code: str,
    session: SessionDep,
) -> BreakdownResponse:
    """Top 20 countries for a link."""
    return await _breakdown(session, short_code, "country", limit=20)


@router.get("/devices/{short_code}", response_model=BreakdownResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_device_data(
    request: Request,
    short_code: str,
    session: SessionDep,
) -> BreakdownResponse:
    """Clicks per device type for a link."""
    return await _breakdown(session, short_code, "device", limit=None)


@router.get("/browsers/{short_code}", response_model=BreakdownResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_browser_data(
    request: Request,
    short_code: str,
    session: SessionDep,
) -> BreakdownResponse:
    """Clicks per browser for a link."""
    return await _breakdown(session, short_code, "browser", limit=None)


@router.get("/referrers/{short_code}", response_model=BreakdownResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_referrer_data(
    request: Request,
    short_code: str,
    session: SessionDep,
) -> BreakdownResponse:
    """Top 15 referrers for a link; direct visits are labelled "Direct"."""
    return await _breakdown(session, short_code, "referrer", limit=15)
