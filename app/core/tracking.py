"""
Tracking sink — fire-and-forget click inserts.

record_click() schedules a detached task and returns immediately. The task
opens its own session (the request's session is closed by the time it runs),
inserts one ClickEvent row, and logs any failure. No retry, no ordering:
at-most-once is the contract.
"""

import asyncio
from decimal import Decimal

import structlog
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from app.core.links import ResolvedLink
from app.models.tables import ClickEvent, ClickStatus, PaymentStatus

logger = structlog.get_logger()


def click_from_link(link: ResolvedLink, country: str) -> ClickEvent:
    return ClickEvent(
        country=country,
        affiliate_id=link.affiliate_id,
        campaign_id=link.campaign_id,
        link_id=link.link_id,
        status=ClickStatus.CLICK,
        payment=PaymentStatus.HOLD,
        amount=Decimal("0"),
    )


class TrackingSink:
    def __init__(self, session_maker):
        self._session_maker = session_maker
        # The event loop only keeps weak refs to tasks
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record_click(self, event: ClickEvent) -> None:
        task = asyncio.get_running_loop().create_task(self._insert(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _insert(self, event: ClickEvent):
        try:
            async with self._session_maker() as session:
                session.add(event)
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error("click_track_failed",
                         link_id=str(event.link_id),
                         country=event.country,
                         error=str(e))
            return
        except Exception:
            logger.exception("click_track_failed", link_id=str(event.link_id))
            return

        logger.info("click_tracked",
                    link_id=str(event.link_id),
                    campaign_id=str(event.campaign_id),
                    country=event.country)

    async def drain(self, timeout: float = 5.0):
        """Wait for in-flight inserts. Shutdown only."""
        if not self._pending:
            return
        done, pending = await asyncio.wait(set(self._pending), timeout=timeout)
        if pending:
            logger.warning("click_track_drain_timeout", dropped=len(pending))


def get_tracking_sink(request: Request) -> TrackingSink:
    """FastAPI dependency — the sink built at startup."""
    return request.app.state.tracking
