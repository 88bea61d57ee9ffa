"""Link service for database operations and short code assignment."""

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quicklink.core.clock import utcnow
from quicklink.core.config import Settings, full_short_url
from quicklink.core.exceptions import (
    AliasTaken,
    GenerationExhausted,
    InvalidUrl,
    LinkExpired,
    LinkNotFound,
)
from quicklink.core.observability import record_link_operation
from quicklink.models.click import Click
from quicklink.models.link import Link
from quicklink.schemas.link import (
    BulkShortenError,
    BulkShortenItem,
    BulkShortenRequest,
    BulkShortenResponse,
    LinkCreate,
    LinkUpdate,
)
from quicklink.services.short_codes import (
    generate_short_code,
    is_short_code_available,
    validate_alias,
)
from quicklink.services.url_utils import clean_url

logger = structlog.get_logger()


async def get_link_by_id(session: AsyncSession, link_id: UUID) -> Link | None:
    """Get a link by its ID."""
    result = await session.execute(select(Link).where(Link.id == link_id))
    return result.scalar_one_or_none()


async def get_link_by_short_code(
    session: AsyncSession,
    short_code: str,
) -> Link | None:
    """Get a link by its short code."""
    result = await session.execute(
        select(Link).where(Link.short_code == short_code)
    )
    return result.scalar_one_or_none()


async def require_link(session: AsyncSession, short_code: str) -> Link:
    """Get a link by short code or raise LinkNotFound."""
    link = await get_link_by_short_code(session, short_code)
    if link is None:
        raise LinkNotFound()
    return link


async def get_link_info(session: AsyncSession, short_code: str) -> Link:
    """Get a link for display, raising LinkExpired once it is past expiry.

    Inactive links are still shown; only redirects treat them as absent.
    """
    link = await require_link(session, short_code)
    if link.is_expired:
        raise LinkExpired(link.expires_at)
    return link


async def _insert_link(session: AsyncSession, link: Link) -> bool:
    """Insert a link inside a savepoint.

    Returns False if the short code was taken concurrently; the outer
    transaction stays usable.
    """
    try:
        async with session.begin_nested():
            session.add(link)
            await session.flush()
    except IntegrityError:
        logger.info("Short code collision on insert", short_code=link.short_code)
        return False
    return True


async def create_link(
    session: AsyncSession,
    link_data: LinkCreate,
    settings: Settings,
) -> Link:
    """Create a new shortened link.

    A custom alias is validated and checked for availability first. If a
    concurrent request claims it between the check and the insert, the
    unique constraint rejects ours and AliasTaken is raised. Random codes
    are retried up to ``short_code_max_attempts`` times.
    """
    original_url = clean_url(link_data.original_url, production=settings.is_production)
    fields = {
        "original_url": original_url,
        "description": link_data.description or "",
        "expires_at": link_data.expiration,
    }

    if link_data.custom_alias is not None:
        alias = validate_alias(link_data.custom_alias)
        if not await is_short_code_available(session, alias):
            raise AliasTaken()
        link = Link(short_code=alias, is_custom=True, **fields)
        if not await _insert_link(session, link):
            raise AliasTaken()
    else:
        for _ in range(settings.short_code_max_attempts):
            code = generate_short_code(settings.short_code_length)
            if not await is_short_code_available(session, code):
                continue
            link = Link(short_code=code, is_custom=False, **fields)
            if await _insert_link(session, link):
                break
        else:
            logger.error(
                "Short code generation exhausted",
                attempts=settings.short_code_max_attempts,
            )
            raise GenerationExhausted()

    await session.refresh(link)
    record_link_operation("create")
    logger.info(
        "Link created",
        link_id=str(link.id),
        short_code=link.short_code,
        is_custom=link.is_custom,
    )
    return link


async def bulk_shorten(
    session: AsyncSession,
    request: BulkShortenRequest,
    settings: Settings,
) -> BulkShortenResponse:
    """Shorten a list of URLs, collecting per-item failures.

    Items are handled in input order and every result or error carries the
    item's original index. With a prefix, the code for item ``i`` is
    ``"{prefix}-{i + 1}"``.
    """
    results: list[BulkShortenItem] = []
    errors: list[BulkShortenError] = []

    for index, raw_url in enumerate(request.urls):
        try:
            original_url = clean_url(raw_url, production=settings.is_production)
        except InvalidUrl as e:
            errors.append(
                BulkShortenError(index=index, url=raw_url, error=e.code, message=e.detail)
            )
            continue

        if request.prefix:
            short_code = f"{request.prefix}-{index + 1}"
        else:
            short_code = generate_short_code(settings.short_code_length)

        taken = not await is_short_code_available(session, short_code)
        if taken or not await _insert_link(
            session, Link(short_code=short_code, original_url=original_url)
        ):
            errors.append(
                BulkShortenError(
                    index=index,
                    url=raw_url,
                    error="CodeTaken",
                    message=f"Short code '{short_code}' already exists",
                )
            )
            continue

        results.append(
            BulkShortenItem(
                index=index,
                original_url=original_url,
                short_code=short_code,
                short_url=full_short_url(settings.base_url, short_code),
            )
        )

    record_link_operation("bulk_create", len(results))
    logger.info("Bulk shorten completed", processed=len(results), failed=len(errors))
    return BulkShortenResponse(
        processed=len(results),
        failed=len(errors),
        results=results,
        errors=errors,
    )


async def update_link(
    session: AsyncSession,
    link: Link,
    link_data: LinkUpdate,
) -> Link:
    """Update the mutable fields of a link."""
    update_data = link_data.model_dump(exclude_unset=True)
    if "description" in update_data:
        link.description = update_data["description"] or ""
    if "expiration" in update_data:
        link.expires_at = update_data["expiration"]
    await session.flush()
    await session.refresh(link)

    record_link_operation("update")
    logger.info("Link updated", short_code=link.short_code, fields=sorted(update_data))
    return link


async def delete_link(session: AsyncSession, link: Link) -> int:
    """Delete a link together with its click events.

    Returns the number of click events removed.
    """
    result = await session.execute(delete(Click).where(Click.link_id == link.id))
    await session.delete(link)
    await session.flush()

    record_link_operation("delete")
    logger.info(
        "Link deleted",
        link_id=str(link.id),
        short_code=link.short_code,
        clicks_deleted=result.rowcount,
    )
    return result.rowcount


async def increment_click_count(
    session: AsyncSession,
    link_id: UUID,
    clicked_at: datetime | None = None,
) -> None:
    """Atomically bump a link's cached click count and last click time."""
    await session.execute(
        update(Link)
        .where(Link.id == link_id)
        .values(
            click_count=Link.click_count + 1,
            last_clicked_at=clicked_at or utcnow(),
        )
        .execution_options(synchronize_session=False)
    )


async def mark_qr_generated(session: AsyncSession, link: Link) -> None:
    if not link.qr_code_generated:
        link.qr_code_generated = True
        await session.flush()
