"""Reminders with confirmation and escalating retries.

Uses APScheduler date triggers with JSON snapshot persistence.
"""

from .errors import (
    ReminderError,
    ParseError,
    InvalidTime,
    NotFound,
    NotOwner,
    AlreadyHandled,
    NotReady,
    StoreError,
    DeliveryError,
    Undeliverable,
    ChannelUnavailable,
)
from .models import Reminder, AwaitingAck, ReminderState
from .parser import parse_time
from .store import ReminderStore
from .scheduler import ReminderScheduler
from .notifier import Notifier, DiscordNotifier
from .manager import ReminderManager

__all__ = [
    "ReminderError",
    "ParseError",
    "InvalidTime",
    "NotFound",
    "NotOwner",
    "AlreadyHandled",
    "NotReady",
    "StoreError",
    "DeliveryError",
    "Undeliverable",
    "ChannelUnavailable",
    "Reminder",
    "AwaitingAck",
    "ReminderState",
    "parse_time",
    "ReminderStore",
    "ReminderScheduler",
    "Notifier",
    "DiscordNotifier",
    "ReminderManager",
]
