"""Pytest configuration and fixtures."""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from unittest.mock import Mock, AsyncMock

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from reminders.manager import ReminderManager
from reminders.store import ReminderStore

START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
RETRY_INTERVAL = timedelta(minutes=5)
SEND_FAILURE_RETRY = timedelta(seconds=60)
MAX_RETRIES = 2
MAX_SEND_FAILURES = 3


class FakeClock:
    """Settable clock passed to ReminderManager."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class ManualScheduler:
    """Scheduler stand-in: records timers, fires them only on request."""

    def __init__(self):
        self.timers = {}  # reminder_id -> (fire_at datetime or delay timedelta, callback)

    def arm(self, reminder_id, fire_at, callback):
        self.timers[reminder_id] = (fire_at, callback)

    def arm_after(self, reminder_id, delay, callback):
        self.timers[reminder_id] = (delay, callback)

    def cancel(self, reminder_id):
        return self.timers.pop(reminder_id, None) is not None

    def is_armed(self, reminder_id):
        return reminder_id in self.timers

    def callback_name(self, reminder_id):
        return self.timers[reminder_id][1].__name__

    async def fire(self, reminder_id):
        """Consume and run the timer for a reminder."""
        _, callback = self.timers.pop(reminder_id)
        await callback(reminder_id)


class FakeNotifier:
    """Records everything the manager asks the platform to do."""

    def __init__(self):
        self.sent = []     # (user_id, channel_id, message, reminder_id, retries)
        self.deleted = []  # (channel_id, message_id)
        self.notices = []  # (channel_id, message)
        self.send_error = None
        self.delete_error = None
        self.before_send = None    # optional async hook
        self.before_delete = None  # optional async hook
        self._next_message_id = 9000

    async def send_confirmable(self, user_id, channel_id, message, reminder_id, retries):
        if self.before_send:
            await self.before_send()
        if self.send_error:
            raise self.send_error
        self._next_message_id += 1
        self.sent.append((user_id, channel_id, message, reminder_id, retries))
        return self._next_message_id

    async def delete_message(self, channel_id, message_id):
        if self.before_delete:
            await self.before_delete()
        if self.delete_error:
            raise self.delete_error
        self.deleted.append((channel_id, message_id))

    async def send_plain(self, channel_id, message):
        self.notices.append((channel_id, message))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def store(tmp_path):
    return ReminderStore(tmp_path / "reminders.json")


@pytest.fixture
def idle_manager(store, manual_scheduler, notifier, clock):
    """ReminderManager wired to fakes, max 2 retries every 5 minutes, not started."""
    return ReminderManager(
        store=store,
        scheduler=manual_scheduler,
        notifier=notifier,
        retry_interval=RETRY_INTERVAL,
        max_retries=MAX_RETRIES,
        send_failure_retry=SEND_FAILURE_RETRY,
        max_send_failures=MAX_SEND_FAILURES,
        tz=timezone.utc,
        clock=clock,
    )


@pytest_asyncio.fixture
async def manager(idle_manager):
    """Started manager over an empty store."""
    await idle_manager.start()
    return idle_manager


@pytest.fixture
def mock_interaction():
    """Create a mock Discord interaction."""
    interaction = Mock()
    interaction.user = Mock(id=111)
    interaction.channel_id = 222
    interaction.guild_id = 333
    interaction.response = Mock(
        send_message=AsyncMock(),
        edit_message=AsyncMock(),
    )
    return interaction
