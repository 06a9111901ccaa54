"""One-shot reminder timers on top of APScheduler.

Each reminder id owns at most one job. Arming an id that already has a job
replaces it, which is how a retry swaps the just-fired timer for a fresh
retry window. Jobs use date triggers, so every timer fires once and is gone.
"""

from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from logger import logger

TimerCallback = Callable[[int], Awaitable[None]]


class ReminderScheduler:
    """Timer arena keyed by reminder id."""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)

    @staticmethod
    def _job_id(reminder_id: int) -> str:
        return str(reminder_id)

    def start(self) -> None:
        """Start the underlying scheduler (needs a running event loop)."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Reminder scheduler started")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Reminder scheduler stopped")

    def arm(self, reminder_id: int, fire_at: datetime, callback: TimerCallback) -> None:
        """Fire callback(reminder_id) at fire_at, replacing any existing timer.

        Args:
            reminder_id: Reminder the timer belongs to
            fire_at: Timezone-aware instant (past instants fire immediately)
            callback: Async function taking the reminder id
        """
        name = getattr(callback, "__name__", "callback")
        self._scheduler.add_job(
            self._run,
            trigger=DateTrigger(run_date=fire_at),
            args=[reminder_id, callback],
            id=self._job_id(reminder_id),
            name=f"reminder:{reminder_id}:{name}",
            replace_existing=True,
            misfire_grace_time=None,
        )
        logger.debug(f"Armed {name} for reminder {reminder_id} at {fire_at.isoformat()}")

    def arm_after(self, reminder_id: int, delay: timedelta, callback: TimerCallback) -> None:
        """Fire callback(reminder_id) once delay has elapsed."""
        self.arm(reminder_id, datetime.now(timezone.utc) + delay, callback)

    def cancel(self, reminder_id: int) -> bool:
        """Cancel the timer for a reminder.

        Returns:
            True if a timer was removed, False if none was armed
        """
        try:
            self._scheduler.remove_job(self._job_id(reminder_id))
        except JobLookupError:
            return False
        logger.debug(f"Cancelled timer for reminder {reminder_id}")
        return True

    def is_armed(self, reminder_id: int) -> bool:
        return self._scheduler.get_job(self._job_id(reminder_id)) is not None

    @staticmethod
    async def _run(reminder_id: int, callback: TimerCallback) -> None:
        """Job body - never lets an exception escape into APScheduler."""
        try:
            await callback(reminder_id)
        except Exception:
            logger.exception(f"Timer callback failed for reminder {reminder_id}")


__all__ = ["ReminderScheduler", "TimerCallback"]
