"""Administrative endpoints."""

import math
from typing import Annotated, Literal
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.aggregators.click_stats import system_stats
from quicklink.aggregators.reconciler import reconcile_click_counts
from quicklink.core.config import Settings, get_settings
from quicklink.core.database import get_async_session
from quicklink.core.rate_limit import RATE_LIMIT_API, limiter
from quicklink.schemas.admin import (
    CleanupResponse,
    LinkListResponse,
    ReconcileResponse,
    SystemStats,
    ToggleResponse,
)
from quicklink.schemas.link import LinkResponse, MessageResponse
from quicklink.services import admin as admin_service

logger = structlog.get_logger()

router = APIRouter(prefix="/admin", tags=["admin"])

SessionDep = Annotated[AsyncSession, Depends(get_async_session)]


@router.get("/links", response_model=LinkListResponse)
@limiter.limit(RATE_LIMIT_API)
async def list_links(
    request: Request,
    session: SessionDep,
    settings: Annotated[Settings, Depends(get_settings)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    search: Annotated[str | None, Query(max_length=200)] = None,
    sort_by: admin_service.SortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
) -> LinkListResponse:
    """List all links (paginated, searchable)."""
    links, total = await admin_service.list_links(
        session,
        page=page,
        page_size=limit,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    return LinkListResponse(
        items=[LinkResponse.from_link(link, settings.base_url) for link in links],
        total=total,
        page=page,
        page_size=limit,
        pages=math.ceil(total / limit) if total > 0 else 0,
    )


@router.get("/stats", response_model=SystemStats)
@limiter.limit(RATE_LIMIT_API)
async def get_system_stats(request: Request, session: SessionDep) -> SystemStats:
    """Totals, growth, top countries and devices, and daily clicks for 30 days."""
    return await system_stats(session)


@router.delete("/links/{link_id}", response_model=MessageResponse)
@limiter.limit(RATE_LIMIT_API)
async def delete_link(
    request: Request,
    link_id: UUID,
    session: SessionDep,
) -> MessageResponse:
    """Delete a link and its click history by ID."""
    await admin_service.delete_link_by_id(session, link_id)
    await session.commit()
    return MessageResponse(message="Link and associated analytics deleted successfully")


@router.put("/links/{link_id}/toggle", response_model=ToggleResponse)
@limiter.limit(RATE_LIMIT_API)
async def toggle_link_status(
    request: Request,
    link_id: UUID,
    session: SessionDep,
) -> ToggleResponse:
    """Activate or deactivate a link."""
    link = await admin_service.toggle_link(session, link_id)
    await session.commit()
    return ToggleResponse(
        id=link.id,
        short_code=link.short_code,
        is_active=link.is_active,
        message=f"Link {'activated' if link.is_active else 'deactivated'} successfully",
    )


@router.get("/export/csv")
@limiter.limit(RATE_LIMIT_API)
async def export_links_csv(request: Request, session: SessionDep) -> StreamingResponse:
    """Download all links as CSV."""
    rows = await admin_service.export_rows(session)
    logger.info("Links exported", rows=len(rows))
    return StreamingResponse(
        admin_service.iter_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="links-export.csv"'},
    )


@router.post("/cleanup-expired", response_model=CleanupResponse)
@limiter.limit(RATE_LIMIT_API)
async def cleanup_expired_links(request: Request, session: SessionDep) -> CleanupResponse:
    """Delete every expired link and its clicks."""
    links_deleted, clicks_deleted = await admin_service.cleanup_expired(session)
    await session.commit()
    return CleanupResponse(
        links_deleted=links_deleted,
        clicks_deleted=clicks_deleted,
        message=(
            f"Cleanup completed: {links_deleted} expired links and "
            f"{clicks_deleted} click records removed"
        ),
    )


@router.post("/reconcile-clicks", response_model=ReconcileResponse)
@limiter.limit(RATE_LIMIT_API)
async def reconcile_clicks(request: Request, session: SessionDep) -> ReconcileResponse:
    """Recompute every link's cached click count from the click log."""
    result = await reconcile_click_counts(session)
    await session.commit()
    return ReconcileResponse(
        links_checked=result.links_checked,
        links_updated=result.links_updated,
        duration_seconds=result.duration_seconds,
    )
