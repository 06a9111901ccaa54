"""Parse reminder time expressions into absolute instants."""

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from .errors import ParseError

# "2024/01/01 12:00", "2024/1/1 9:5"
ABSOLUTE_PATTERN = re.compile(r'^(\d{4})/(\d{1,2})/(\d{1,2})\s(\d{1,2}):(\d{1,2})$')

# "10s", "5m", "2h", "1d"
RELATIVE_PATTERN = re.compile(r'^(\d+)([smhd])$')

UNIT_SECONDS = {
    's': 1,
    'm': 60,
    'h': 60 * 60,
    'd': 24 * 60 * 60,
}

FORMAT_HINT = "10s, 5m, 2h, 1d, 2024/01/01 12:00"


def parse_time(text: str, now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> datetime:
    """Parse a time expression.

    Examples:
    - "10s", "5m", "2h", "1d" - relative to now
    - "2024/01/01 12:00", "2024/1/1 9:05" - absolute, local time

    Args:
        text: Time expression from the user
        now: Current time (defaults to now in UTC)
        tz: Zone for absolute times (defaults to the host's local zone)

    Returns:
        Timezone-aware datetime

    Raises:
        ParseError: Unrecognised format or out-of-range components
    """
    text = (text or "").strip()

    match = ABSOLUTE_PATTERN.match(text)
    if match:
        return _parse_absolute(*(int(part) for part in match.groups()), tz=tz)

    match = RELATIVE_PATTERN.match(text)
    if match:
        now = now or datetime.now(timezone.utc)
        try:
            seconds = int(match.group(1)) * UNIT_SECONDS[match.group(2)]
            return now + timedelta(seconds=seconds)
        except (ValueError, OverflowError):
            raise ParseError("Relative time is too far in the future")

    raise ParseError(f"Invalid time format '{text}' (expected e.g. {FORMAT_HINT})")


def _parse_absolute(year: int, month: int, day: int, hour: int, minute: int,
                    tz: Optional[tzinfo]) -> datetime:
    """Build an aware datetime, rejecting impossible calendar values."""
    try:
        if tz is not None:
            return datetime(year, month, day, hour, minute, tzinfo=tz)
        # Naive astimezone() interprets the value in the host's local zone
        return datetime(year, month, day, hour, minute).astimezone()
    except (ValueError, OverflowError, OSError) as e:
        raise ParseError(f"Invalid date {year}/{month}/{day} {hour}:{minute:02d}: {e}")


__all__ = ["parse_time", "FORMAT_HINT"]
