"""Click count reconciliation.

``links.click_count`` and ``links.last_clicked_at`` are caches of the click
log. They are written together with each click, but a click whose counter
update failed (or rows removed by hand) leaves them behind. The reconciler
recomputes both from ``clicks`` and rewrites the links that differ.
"""

import asyncio
import time
from dataclasses import dataclass

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quicklink.core.config import get_settings
from quicklink.core.database import async_session_factory
from quicklink.core.observability import record_reconciliation
from quicklink.models.click import Click
from quicklink.models.link import Link

logger = structlog.get_logger()


@dataclass(frozen=True)
class ReconcileResult:
    links_checked: int
    links_updated: int
    duration_seconds: float


async def reconcile_click_counts(session: AsyncSession) -> ReconcileResult:
    """Rewrite cached click counters that disagree with the click log.

    Runs in the caller's transaction; the caller commits.
    """
    started = time.perf_counter()

    click_totals = (
        select(
            Click.link_id.label("link_id"),
            func.count(Click.id).label("clicks"),
            func.max(Click.clicked_at).label("last_clicked_at"),
        )
        .group_by(Click.link_id)
        .subquery()
    )
    query = select(
        Link.id,
        Link.click_count,
        Link.last_clicked_at,
        func.coalesce(click_totals.c.clicks, 0).label("clicks"),
        click_totals.c.last_clicked_at.label("logged_last_click"),
    ).outerjoin(click_totals, click_totals.c.link_id == Link.id)

    result = await session.execute(query)
    rows = result.all()

    updated = 0
    for row in rows:
        if row.click_count == row.clicks and row.last_clicked_at == row.logged_last_click:
            continue
        await session.execute(
            update(Link)
            .where(Link.id == row.id)
            .values(click_count=row.clicks, last_clicked_at=row.logged_last_click)
            .execution_options(synchronize_session=False)
        )
        updated += 1
        logger.info(
            "Click count reconciled",
            link_id=str(row.id),
            cached=row.click_count,
            actual=row.clicks,
        )

    duration = time.perf_counter() - started
    record_reconciliation(duration, updated)
    logger.info(
        "Click count reconciliation complete",
        links_checked=len(rows),
        links_updated=updated,
        duration_ms=round(duration * 1000, 2),
    )
    return ReconcileResult(
        links_checked=len(rows),
        links_updated=updated,
        duration_seconds=round(duration, 4),
    )


class ClickCountReconciler:
    """Background task that periodically reconciles click counters.

    Usage:
        reconciler = ClickCountReconciler(interval=3600.0)
        await reconciler.start()  # Starts background loop
        # ... later ...
        await reconciler.stop()

        # Or run manually:
        await reconciler.reconcile()
    """

    def __init__(
        self,
        interval: float = 3600.0,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        """Initialize the reconciler.

        Args:
            interval: Seconds between reconciliation runs.
            session_factory: Session factory to use; defaults to the app's.
        """
        self._interval = interval
        self._session_factory = session_factory or async_session_factory
        self._running = False
        self._task: asyncio.Task | None = None
        self._runs = 0
        self._links_updated = 0

    async def start(self) -> None:
        """Start the background reconciliation loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Click count reconciler started", interval=self._interval)

    async def stop(self) -> None:
        """Stop the background reconciliation loop."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

        logger.info(
            "Click count reconciler stopped",
            runs=self._runs,
            links_updated=self._links_updated,
        )

    async def _loop(self) -> None:
        """Background loop for reconciliation."""
        try:
            while self._running:
                await asyncio.sleep(self._interval)
                try:
                    await self.reconcile()
                except SQLAlchemyError as e:
                    logger.error("Click count reconciliation failed", error=str(e))
        except asyncio.CancelledError:
            pass

    async def reconcile(self) -> ReconcileResult:
        """Run one reconciliation pass in its own session."""
        async with self._session_factory() as session:
            result = await reconcile_click_counts(session)
            await session.commit()

        self._runs += 1
        self._links_updated += result.links_updated
        return result

    @property
    def stats(self) -> dict:
        """Get reconciler statistics."""
        return {
            "running": self._running,
            "runs": self._runs,
            "links_updated": self._links_updated,
        }


# Global reconciler instance
_reconciler: ClickCountReconciler | None = None


def get_reconciler() -> ClickCountReconciler:
    """Get the global reconciler instance."""
    global _reconciler
    if _reconciler is None:
        _reconciler = ClickCountReconciler(interval=get_settings().reconcile_interval)
    return _reconciler


async def start_reconciler() -> None:
    """Start the global reconciler."""
    await get_reconciler().start()


async def stop_reconciler() -> None:
    """Stop the global reconciler."""
    await get_reconciler().stop()
