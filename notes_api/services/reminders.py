"""
Reminder scheduler.

Every tick, notes with reminders enabled whose due time falls inside a narrow
band around one of the lead times (4h, 24h, 48h from now) are pushed to
their owner's subscription. There is no "already sent" marker. Each band is
half-open and exactly one poll interval wide, so consecutive ticks tile the
timeline and a note is matched in one cycle per lead time, as long as no tick
is missed or delayed.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notes_api.models.note import Note
from notes_api.models.push_subscription import PushSubscription
from notes_api.services.push import PushSender, SubscriptionGone

logger = logging.getLogger(__name__)

JOB_ID = "note_reminders"

LEAD_TIMES = (
    timedelta(hours=4),
    timedelta(hours=24),
    timedelta(hours=48),
)

REMINDER_TITLE = "Recordatorio de Nota"
UNTITLED = "Sin título"


def build_payload(title: Optional[str]) -> Dict[str, str]:
    name = (title or "").strip() or UNTITLED
    return {
        "title": REMINDER_TITLE,
        "body": f'Tu nota "{name}" está próxima a vencer.',
    }


@dataclass(frozen=True)
class ReminderMatch:
    note_id: int
    owner_id: str
    title: str
    due_at: datetime
    subscription: Dict[str, Any]


@dataclass
class CycleResult:
    matched: int = 0
    sent: int = 0
    failed: int = 0
    pruned: int = 0


class ReminderScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        push_sender: PushSender,
        interval_seconds: int = 60,
        window_seconds: Optional[int] = None,
        lead_times=LEAD_TIMES,
    ):
        self._session_factory = session_factory
        self._push_sender = push_sender
        self._interval = interval_seconds
        # Band width; defaults to the poll interval
        self._window = timedelta(seconds=window_seconds or interval_seconds)
        self._lead_times = tuple(lead_times)
        self._lock = asyncio.Lock()
        self._scheduler: Optional[AsyncIOScheduler] = None

    def start(self) -> None:
        if self._scheduler is not None:
            return
        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._scheduler.add_job(
            self.run_cycle,
            "interval",
            seconds=self._interval,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Reminder scheduler started, polling every {self._interval}s")

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Reminder scheduler stopped")

    def windows(self, now: datetime):
        """[start, end) bounds of every lead-time band, centred on the lead time"""
        half = self._window / 2
        return [
            (now + lead - half, now + lead + half)
            for lead in self._lead_times
        ]

    async def find_due(self, session: AsyncSession, now: datetime) -> List[ReminderMatch]:
        in_window = or_(*(
            and_(Note.due_at >= start, Note.due_at < end) for start, end in self.windows(now)
        ))
        query = (
            select(Note.id, Note.owner_id, Note.title, Note.due_at, PushSubscription.subscription)
            .join(PushSubscription, PushSubscription.owner_id == Note.owner_id)
            .where(and_(
                Note.reminders_enabled.is_(True),
                Note.due_at.is_not(None),
                in_window,
            ))
            .order_by(Note.due_at, Note.id)
        )
        result = await session.execute(query)
        return [ReminderMatch(*row) for row in result.all()]

    async def prune_subscription(self, session: AsyncSession, owner_id: str) -> None:
        # Deleting an already-absent row is a no-op
        await session.execute(delete(PushSubscription).where(PushSubscription.owner_id == owner_id))
        await session.commit()

    async def run_cycle(self, now: Optional[datetime] = None) -> Optional[CycleResult]:
        """Run one scan. Never raises; returns None when skipped."""
        if self._lock.locked():
            logger.warning("Previous reminder cycle still running, skipping this tick")
            return None

        async with self._lock:
            now = now or datetime.now(timezone.utc)
            result = CycleResult()

            async with self._session_factory() as session:
                try:
                    matches = await self.find_due(session, now)
                except Exception:
                    logger.exception("Reminder query failed, skipping cycle")
                    return result

                result.matched = len(matches)
                gone = set()
                for match in matches:
                    if match.owner_id in gone:
                        continue
                    try:
                        await self._push_sender.send(match.subscription, build_payload(match.title))
                        result.sent += 1
                        logger.info(f"Reminder sent for note {match.note_id} (due {match.due_at})")
                    except SubscriptionGone:
                        gone.add(match.owner_id)
                        result.failed += 1
                        try:
                            await self.prune_subscription(session, match.owner_id)
                            result.pruned += 1
                            logger.info(f"Removed expired push subscription of {match.owner_id}")
                        except Exception:
                            await session.rollback()
                            logger.exception(f"Could not remove push subscription of {match.owner_id}")
                    except Exception:
                        result.failed += 1
                        logger.exception(f"Reminder delivery failed for note {match.note_id}")

            if result.matched:
                logger.info(
                    f"Reminder cycle: {result.matched} matched, {result.sent} sent, "
                    f"{result.failed} failed, {result.pruned} subscriptions removed"
                )
            return result
