"""Reminder data model."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from dateutil.parser import isoparse


class ReminderState(Enum):
    """Lifecycle states of a reminder."""
    SCHEDULED = "scheduled"
    DELIVERING = "delivering"      # send in flight
    AWAITING_ACK = "awaiting_ack"
    ACKNOWLEDGED = "acknowledged"  # terminal
    EXPIRED = "expired"            # terminal
    DELETED = "deleted"            # terminal

    @property
    def is_terminal(self) -> bool:
        return self in (ReminderState.ACKNOWLEDGED, ReminderState.EXPIRED, ReminderState.DELETED)


@dataclass
class Reminder:
    """A pending or awaiting-confirmation reminder."""
    id: int
    user_id: int
    time: datetime  # timezone-aware
    message: str
    channel_id: int
    guild_id: Optional[int] = None
    retries: int = 0

    def to_record(self) -> dict:
        """Serialize for the snapshot file (instant as ISO-8601 UTC)."""
        return {
            "user_id": self.user_id,
            "time": self.time.astimezone(timezone.utc).isoformat(timespec="microseconds"),
            "message": self.message,
            "channel_id": self.channel_id,
            "guild_id": self.guild_id,
            "retries": self.retries,
        }

    @classmethod
    def from_record(cls, reminder_id: int, record: dict) -> "Reminder":
        """Rebuild from a snapshot entry.

        Accepts any ISO-8601 timestamp, including the millisecond "Z" form.
        Naive timestamps are taken as UTC.
        """
        time = isoparse(record["time"])
        if time.tzinfo is None:
            time = time.replace(tzinfo=timezone.utc)

        guild_id = record.get("guild_id")
        return cls(
            id=int(reminder_id),
            user_id=int(record["user_id"]),
            time=time,
            message=record["message"],
            channel_id=int(record["channel_id"]),
            guild_id=int(guild_id) if guild_id is not None else None,
            retries=int(record.get("retries", 0)),
        )


@dataclass
class AwaitingAck:
    """A delivered notification waiting for the user to press Confirm."""
    user_id: int
    message: str
    channel_id: int
    message_id: int  # sent notification, deleted on retry
    retries: int


__all__ = ["Reminder", "AwaitingAck", "ReminderState"]
