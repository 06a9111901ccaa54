"""Reminder domain configuration - retry policy and persistence."""

import os
from datetime import timedelta
from zoneinfo import ZoneInfo

from config import DATA_DIR

# Retry policy: an unconfirmed reminder is re-sent every RETRY_INTERVAL_MINUTES,
# at most MAX_RETRIES times, then abandoned with a "giving up" notice
RETRY_INTERVAL_MINUTES = float(os.environ.get("RETRY_INTERVAL_MINUTES", 5))
MAX_RETRIES = int(os.environ.get("MAX_RETRIES", 3))
RETRY_INTERVAL = timedelta(minutes=RETRY_INTERVAL_MINUTES)

# Back-off before re-attempting a send that failed outright
SEND_FAILURE_RETRY_SECONDS = float(os.environ.get("SEND_FAILURE_RETRY_SECONDS", 60))
SEND_FAILURE_RETRY = timedelta(seconds=SEND_FAILURE_RETRY_SECONDS)

# Snapshot file (full rewrite on every change)
REMINDERS_FILE = os.environ.get("REMINDERS_FILE", str(DATA_DIR / "reminders.json"))

# Timezone for absolute "YYYY/M/D H:MM" input and for display.
# Empty means the host's local timezone.
_tz_name = os.environ.get("REMINDER_TIMEZONE", "").strip()
REMINDER_TIMEZONE = ZoneInfo(_tz_name) if _tz_name else None

# How many finished reminder ids to remember for state() lookups
FINISHED_HISTORY_SIZE = 500

# Button custom_id prefix, followed by the reminder id
CONFIRM_BUTTON_PREFIX = "confirm_reminder_"

# Longest reminder text accepted by /remind add
MAX_MESSAGE_LENGTH = 1000

# Consecutive failed sends before a reminder is dropped
MAX_SEND_FAILURES = int(os.environ.get("MAX_SEND_FAILURES", 10))
