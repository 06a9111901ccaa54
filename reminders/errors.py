"""Error kinds raised by the reminder core."""


class ReminderError(Exception):
    """Base class for all reminder errors."""


class ParseError(ReminderError):
    """Time expression could not be turned into a valid instant."""


class InvalidTime(ReminderError):
    """Requested time is unparseable or not in the future."""


class NotFound(ReminderError):
    """No reminder exists with the given id."""

    def __init__(self, reminder_id: int):
        super().__init__(f"Reminder {reminder_id} not found")
        self.reminder_id = reminder_id


class NotOwner(ReminderError):
    """Reminder exists but belongs to another user."""

    def __init__(self, reminder_id: int, user_id: int):
        super().__init__(f"Reminder {reminder_id} is not owned by user {user_id}")
        self.reminder_id = reminder_id
        self.user_id = user_id


class AlreadyHandled(ReminderError):
    """Reminder was already acknowledged, expired or deleted."""

    def __init__(self, reminder_id: int):
        super().__init__(f"Reminder {reminder_id} is no longer awaiting confirmation")
        self.reminder_id = reminder_id


class NotReady(ReminderError):
    """Persisted reminders have not been loaded yet."""


class StoreError(ReminderError):
    """Persistence read or write failed."""


class DeliveryError(ReminderError):
    """Platform layer failed to send or delete a message."""


class Undeliverable(DeliveryError):
    """Platform rejected the message for good; retrying will not help."""


class ChannelUnavailable(Undeliverable):
    """Target channel can no longer be resolved."""


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
]
