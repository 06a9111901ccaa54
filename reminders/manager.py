"""Reminder lifecycle: create, deliver, wait for confirmation, retry, expire.

States per reminder:
- SCHEDULED: persisted, delivery timer armed
- DELIVERING: notification send in flight
- AWAITING_ACK: notification sent, retry timer armed
- ACKNOWLEDGED / EXPIRED / DELETED: terminal, record removed from the store

Transitions:
- SCHEDULED → DELIVERING: delivery timer fires (or missed on startup)
- DELIVERING → AWAITING_ACK: send succeeded
- AWAITING_ACK → ACKNOWLEDGED: user pressed Confirm
- AWAITING_ACK → DELIVERING: retry timer fired, retries left
- AWAITING_ACK → EXPIRED: retry timer fired, retries exhausted
- DELIVERING → SCHEDULED: send failed, delivery re-armed
- DELIVERING → EXPIRED: too many failed sends in a row
- DELIVERING → DELETED: platform rejected the message for good
- any → DELETED: user deleted the reminder

All state lives in this class behind one asyncio.Lock. Notifier calls are made
with the lock released; every callback re-checks that its records still exist
once it reacquires the lock, so a timer that fires while the reminder is being
deleted or confirmed does nothing.
"""

import asyncio
from collections import OrderedDict
from dataclasses import replace
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional

from logger import logger
from .errors import (
    AlreadyHandled,
    DeliveryError,
    InvalidTime,
    NotFound,
    NotOwner,
    NotReady,
    ParseError,
    StoreError,
    Undeliverable,
)
from .models import AwaitingAck, Reminder, ReminderState
from .notifier import Notifier
from .parser import parse_time
from .scheduler import ReminderScheduler
from .store import ReminderStore

GIVE_UP_NOTICE = "No confirmation was received, so this reminder will not be sent again."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReminderManager:
    """Owns every reminder and drives it through its lifecycle."""

    def __init__(
        self,
        store: ReminderStore,
        scheduler: ReminderScheduler,
        notifier: Notifier,
        retry_interval: timedelta,
        max_retries: int,
        send_failure_retry: timedelta = timedelta(seconds=60),
        max_send_failures: int = 10,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = _utcnow,
        history_size: int = 500,
    ):
        """Initialize the manager.

        Args:
            store: Snapshot persistence
            scheduler: Timer arena
            notifier: Platform send/delete capability
            retry_interval: Wait for confirmation before re-sending
            max_retries: Re-sends before giving up
            send_failure_retry: Wait before re-attempting a failed send
            max_send_failures: Consecutive failed sends before the reminder is dropped
            tz: Zone for absolute time input (None = host local)
            clock: Returns the current aware datetime
            history_size: Finished ids remembered for state()
        """
        self.store = store
        self.scheduler = scheduler
        self.notifier = notifier
        self.retry_interval = retry_interval
        self.max_retries = max_retries
        self.send_failure_retry = send_failure_retry
        self.max_send_failures = max_send_failures
        self.tz = tz
        self._clock = clock
        self._history_size = history_size

        self._reminders: dict[int, Reminder] = {}
        self._awaiting: dict[int, AwaitingAck] = {}
        self._delivering: set[int] = set()
        self._send_failures: dict[int, int] = {}
        self._finished: OrderedDict[int, ReminderState] = OrderedDict()
        self._last_id = 0
        self._started = False
        self._lock = asyncio.Lock()

    # --- Public API ---

    async def start(self) -> int:
        """Load persisted reminders and re-arm them.

        Future reminders get their timer back. Reminders whose time passed
        while the bot was down are delivered right away, once. User
        operations raise NotReady until this has loaded the store.

        Returns:
            Count of reminders restored

        Raises:
            StoreError: Store exists but could not be read
        """
        loaded = self.store.load()
        now = self._clock()
        overdue = []

        async with self._lock:
            self._reminders = loaded
            self._last_id = max(loaded, default=0)

            for reminder_id in sorted(loaded):
                reminder = loaded[reminder_id]
                if reminder.retries > self.max_retries:
                    logger.warning(
                        f"Reminder {reminder_id} has {reminder.retries} retries, "
                        f"clamping to max {self.max_retries}"
                    )
                    reminder.retries = self.max_retries

                if reminder.time > now:
                    self.scheduler.arm(reminder_id, reminder.time, self.deliver)
                elif reminder_id not in self._awaiting:
                    overdue.append(reminder_id)

            self._started = True

        logger.info(f"Restored {len(loaded)} reminders ({len(overdue)} missed while offline)")

        for reminder_id in overdue:
            logger.info(f"Catching up missed reminder {reminder_id}")
            await self.deliver(reminder_id)

        return len(loaded)

    async def create(self, user_id: int, channel_id: int, guild_id: Optional[int],
                     time_text: str, message: str) -> Reminder:
        """Create and schedule a reminder.

        Raises:
            InvalidTime: Unparseable or not strictly in the future
            NotReady: Called before start()
            StoreError: Reminder could not be persisted (nothing is scheduled)
        """
        now = self._clock()
        try:
            fire_at = parse_time(time_text, now=now, tz=self.tz)
        except ParseError as e:
            raise InvalidTime(str(e)) from e

        if fire_at <= now:
            raise InvalidTime(f"'{time_text}' is not in the future")

        async with self._lock:
            self._require_started()
            reminder = Reminder(
                id=self._allocate_id(now),
                user_id=user_id,
                time=fire_at,
                message=message,
                channel_id=channel_id,
                guild_id=guild_id,
            )
            self._reminders[reminder.id] = reminder
            try:
                self._persist()
            except StoreError:
                del self._reminders[reminder.id]
                raise
            self.scheduler.arm(reminder.id, reminder.time, self.deliver)

        logger.info(f"Created reminder {reminder.id} for user {user_id} at {fire_at.isoformat()}")
        return replace(reminder)

    async def list_reminders(self, user_id: int) -> list[Reminder]:
        """Active reminders owned by a user, oldest first."""
        async with self._lock:
            self._require_started()
            return [
                replace(self._reminders[reminder_id])
                for reminder_id in sorted(self._reminders)
                if self._reminders[reminder_id].user_id == user_id
            ]

    async def delete(self, user_id: int, reminder_id: int) -> None:
        """Delete a reminder owned by user_id.

        Raises:
            NotFound: No such reminder
            NotOwner: Reminder belongs to someone else
            NotReady: Called before start()
            StoreError: Removal could not be persisted
        """
        async with self._lock:
            self._require_started()
            reminder = self._reminders.get(reminder_id)
            if reminder is None:
                raise NotFound(reminder_id)
            if reminder.user_id != user_id:
                raise NotOwner(reminder_id, user_id)

            self.scheduler.cancel(reminder_id)
            awaiting = self._awaiting.pop(reminder_id, None)
            del self._reminders[reminder_id]
            self._finish(reminder_id, ReminderState.DELETED)
            self._persist()

        logger.info(f"Deleted reminder {reminder_id} by user {user_id}")

        if awaiting is not None:
            await self._discard_notification(awaiting.channel_id, awaiting.message_id)

    async def acknowledge(self, reminder_id: int) -> Reminder:
        """Mark a delivered reminder as confirmed.

        Returns:
            The confirmed reminder

        Raises:
            AlreadyHandled: Not awaiting confirmation (confirmed, expired or deleted)
            NotReady: Called before start()
            StoreError: Removal could not be persisted
        """
        async with self._lock:
            self._require_started()
            if self._awaiting.pop(reminder_id, None) is None:
                raise AlreadyHandled(reminder_id)

            self.scheduler.cancel(reminder_id)
            reminder = self._reminders.pop(reminder_id)
            self._finish(reminder_id, ReminderState.ACKNOWLEDGED)
            self._persist()

        logger.info(f"Reminder {reminder_id} acknowledged")
        return reminder

    def state(self, reminder_id: int) -> Optional[ReminderState]:
        """Current lifecycle state, or None if the id is unknown."""
        if reminder_id in self._delivering:
            return ReminderState.DELIVERING
        if reminder_id in self._awaiting:
            return ReminderState.AWAITING_ACK
        if reminder_id in self._reminders:
            return ReminderState.SCHEDULED
        return self._finished.get(reminder_id)

    # --- Timer callbacks ---

    async def deliver(self, reminder_id: int) -> None:
        """Send the reminder and start waiting for confirmation."""
        async with self._lock:
            reminder = self._reminders.get(reminder_id)
            if reminder is None:
                logger.debug(f"Reminder {reminder_id} gone before delivery, skipping")
                return
            if reminder_id in self._delivering:
                return
            self._delivering.add(reminder_id)
            snapshot = replace(reminder)

        await self._send(snapshot)

    async def retry_timeout(self, reminder_id: int) -> None:
        """No confirmation within the retry window: re-send or give up."""
        async with self._lock:
            awaiting = self._awaiting.get(reminder_id)
            if awaiting is None or reminder_id not in self._reminders:
                return
            awaiting = replace(awaiting)

        await self._discard_notification(awaiting.channel_id, awaiting.message_id)

        async with self._lock:
            # Confirmed or deleted while the old message was being removed
            if reminder_id not in self._awaiting or reminder_id not in self._reminders:
                return

            next_retry = awaiting.retries + 1
            if next_retry > self.max_retries:
                del self._awaiting[reminder_id]
                del self._reminders[reminder_id]
                self._finish(reminder_id, ReminderState.EXPIRED)
                self._persist_quietly()
                snapshot = None
            else:
                reminder = self._reminders[reminder_id]
                reminder.retries = next_retry
                self._persist_quietly()
                self._delivering.add(reminder_id)
                snapshot = replace(reminder)

        if snapshot is None:
            logger.info(f"Reminder {reminder_id} expired after {self.max_retries} retries")
            try:
                await self.notifier.send_plain(awaiting.channel_id, GIVE_UP_NOTICE)
            except DeliveryError as e:
                logger.error(f"Failed to send expiry notice for reminder {reminder_id}: {e}")
            return

        logger.info(f"Re-sending reminder {reminder_id} (retry {snapshot.retries}/{self.max_retries})")
        await self._send(snapshot)

    # --- Internals ---

    async def _send(self, reminder: Reminder) -> None:
        """Send a notification for a reminder already marked as delivering."""
        reminder_id = reminder.id
        try:
            message_id = await self.notifier.send_confirmable(
                reminder.user_id,
                reminder.channel_id,
                reminder.message,
                reminder_id,
                reminder.retries,
            )
        except Undeliverable as e:
            logger.warning(f"Dropping reminder {reminder_id}: {e}")
            async with self._lock:
                self._drop(reminder_id, ReminderState.DELETED)
            return
        except DeliveryError as e:
            async with self._lock:
                self._delivering.discard(reminder_id)
                if reminder_id not in self._reminders:
                    return
                failures = self._send_failures.get(reminder_id, 0) + 1
                self._send_failures[reminder_id] = failures
                if failures >= self.max_send_failures:
                    logger.error(f"{e} - giving up on reminder {reminder_id} after {failures} failed sends")
                    self._drop(reminder_id, ReminderState.EXPIRED)
                    return
                logger.error(f"{e} - retrying in {self.send_failure_retry.total_seconds():.0f}s")
                self.scheduler.arm_after(reminder_id, self.send_failure_retry, self.deliver)
            return

        async with self._lock:
            self._delivering.discard(reminder_id)
            self._send_failures.pop(reminder_id, None)
            stale = reminder_id not in self._reminders
            if not stale:
                self._awaiting[reminder_id] = AwaitingAck(
                    user_id=reminder.user_id,
                    message=reminder.message,
                    channel_id=reminder.channel_id,
                    message_id=message_id,
                    retries=reminder.retries,
                )
                self.scheduler.arm_after(reminder_id, self.retry_interval, self.retry_timeout)

        if stale:
            logger.info(f"Reminder {reminder_id} deleted while sending, removing notification")
            await self._discard_notification(reminder.channel_id, message_id)

    async def _discard_notification(self, channel_id: int, message_id: int) -> None:
        """Best-effort removal of a sent notification."""
        try:
            await self.notifier.delete_message(channel_id, message_id)
        except DeliveryError as e:
            logger.warning(f"Failed to delete old reminder message {message_id}: {e}")

    def _drop(self, reminder_id: int, state: ReminderState) -> None:
        """Remove a reminder from a timer path. Caller holds the lock."""
        self._delivering.discard(reminder_id)
        self._awaiting.pop(reminder_id, None)
        if self._reminders.pop(reminder_id, None) is not None:
            self.scheduler.cancel(reminder_id)
            self._finish(reminder_id, state)
            self._persist_quietly()

    def _require_started(self) -> None:
        if not self._started:
            raise NotReady("Reminders are still loading")

    def _allocate_id(self, now: datetime) -> int:
        """Millisecond timestamp, bumped to stay strictly increasing."""
        candidate = int(now.timestamp() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return candidate

    def _persist(self) -> None:
        self.store.save(self._reminders)

    def _persist_quietly(self) -> None:
        """Persist from a timer path, where there is no caller to report to."""
        try:
            self._persist()
        except StoreError as e:
            logger.error(f"Failed to persist reminders: {e}")

    def _finish(self, reminder_id: int, state: ReminderState) -> None:
        self._send_failures.pop(reminder_id, None)
        self._finished[reminder_id] = state
        self._finished.move_to_end(reminder_id)
        while len(self._finished) > self._history_size:
            self._finished.popitem(last=False)


__all__ = ["ReminderManager", "GIVE_UP_NOTICE"]
