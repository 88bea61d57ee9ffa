"""Redirect endpoint for short links."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.core.database import get_async_session
from quicklink.core.exceptions import QuickLinkError
from quicklink.core.observability import record_redirect
from quicklink.core.rate_limit import RATE_LIMIT_REDIRECT, get_client_ip, limiter
from quicklink.schemas.click import ClickContext
from quicklink.services.resolver import resolve

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}")
@limiter.limit(RATE_LIMIT_REDIRECT)
async def redirect_to_original(
    request: Request,
    short_code: str,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Response:
    """Redirect a short code to its original URL.

    Unknown and inactive codes return 404, expired codes 410. Each
    successful redirect appends a click event and bumps the link's counter.
    """
    context = ClickContext(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        referrer=request.headers.get("Referer"),
    )

    try:
        resolution = await resolve(session, short_code, context)
    except QuickLinkError as e:
        record_redirect(e.status_code)
        raise

    record_redirect(status.HTTP_301_MOVED_PERMANENTLY)
    # The stored URL is already canonical; send it unchanged
    return Response(
        status_code=status.HTTP_301_MOVED_PERMANENTLY,
        headers={"location": resolution.original_url},
    )
