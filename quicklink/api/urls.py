"""Link creation and management endpoints."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.aggregators.click_stats import link_summary
from quicklink.core.config import Settings, full_short_url, get_settings
from quicklink.core.database import get_async_session
from quicklink.core.rate_limit import RATE_LIMIT_API, RATE_LIMIT_SHORTEN, limiter
from quicklink.schemas.link import (
    BulkShortenRequest,
    BulkShortenResponse,
    LinkCreate,
    LinkPreview,
    LinkResponse,
    LinkUpdate,
    LinkUpdateResponse,
    MessageResponse,
    QRCodeResponse,
)
from quicklink.services import link as link_service
from quicklink.services.qr import generate_qr_data_url

logger = structlog.get_logger()

router = APIRouter(prefix="/url", tags=["urls"])

SessionDep = Annotated[AsyncSession, Depends(get_async_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


@router.post("/shorten", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT_SHORTEN)
async def shorten_url(
    request: Request,
    link_data: LinkCreate,
    session: SessionDep,
    settings: SettingsDep,
) -> LinkResponse:
    """Create a new shortened link.

    If `customAlias` is provided it is used as the short code, otherwise
    a random 6-character code is generated. A URL without a scheme gets
    `https://`.
    """
    link = await link_service.create_link(session, link_data, settings)
    await session.commit()
    return LinkResponse.from_link(link, settings.base_url)


@router.post("/bulk-shorten", response_model=BulkShortenResponse)
@limiter.limit(RATE_LIMIT_SHORTEN)
async def bulk_shorten_urls(
    request: Request,
    bulk_data: BulkShortenRequest,
    session: SessionDep,
    settings: SettingsDep,
) -> BulkShortenResponse:
    """Shorten up to 100 URLs at once.

    Invalid URLs and taken codes are reported per item with the item's
    position in the input list; the remaining items are still created.
    """
    response = await link_service.bulk_shorten(session, bulk_data, settings)
    await session.commit()
    return response


@router.get("/info/{short_code}", response_model=LinkResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_link_info(
    request: Request,
    short_code: str,
    session: SessionDep,
    settings: SettingsDep,
) -> LinkResponse:
    """Get a link's details. Expired links return 410."""
    link = await link_service.get_link_info(session, short_code)
    return LinkResponse.from_link(link, settings.base_url)


@router.put("/update/{short_code}", response_model=LinkUpdateResponse)
@limiter.limit(RATE_LIMIT_API)
async def update_link(
    request: Request,
    short_code: str,
    link_data: LinkUpdate,
    session: SessionDep,
) -> LinkUpdateResponse:
    """Update a link's description or expiration."""
    link = await link_service.require_link(session, short_code)
    link = await link_service.update_link(session, link, link_data)
    await session.commit()
    return LinkUpdateResponse.model_validate(link)


@router.delete("/delete/{short_code}", response_model=MessageResponse)
@limiter.limit(RATE_LIMIT_API)
async def delete_link(
    request: Request,
    short_code: str,
    session: SessionDep,
) -> MessageResponse:
    """Delete a link and its click history."""
    link = await link_service.require_link(session, short_code)
    await link_service.delete_link(session, link)
    await session.commit()
    return MessageResponse(message="Link deleted successfully")


@router.get("/qr/{short_code}", response_model=QRCodeResponse)
@limiter.limit(RATE_LIMIT_API)
async def generate_qr_code(
    request: Request,
    short_code: str,
    session: SessionDep,
    settings: SettingsDep,
) -> QRCodeResponse:
    """Render a QR code for the short URL as a PNG data URL."""
    link = await link_service.get_link_info(session, short_code)
    short_url = full_short_url(settings.base_url, link.short_code)
    qr_code = generate_qr_data_url(short_url)

    await link_service.mark_qr_generated(session, link)
    await session.commit()
    logger.info("QR code generated", short_code=short_code)
    return QRCodeResponse(qr_code=qr_code, short_url=short_url)


@router.get("/preview/{short_code}", response_model=LinkPreview)
@limiter.limit(RATE_LIMIT_API)
async def preview_link(
    request: Request,
    short_code: str,
    session: SessionDep,
    settings: SettingsDep,
) -> LinkPreview:
    """Show where a short link goes, with its click summary."""
    link = await link_service.get_link_info(session, short_code)
    return LinkPreview(
        short_code=link.short_code,
        short_url=full_short_url(settings.base_url, link.short_code),
        original_url=link.original_url,
        description=link.description,
        click_count=link.click_count,
        created_at=link.created_at,
        analytics=await link_summary(session, link.id),
    )
