"""
Date normalization utilities.

Three string representations of dates are used across the package:

- user input:  "YYYY-MM-DD" (forms, CLI options, search filters)
- database:    ISO-8601 instant with an explicit "Z" or numeric offset.
               Values written by this package use the canonical UTC form
               "YYYY-MM-DDTHH:MM:SS.mmmZ", which sorts lexicographically.
- display:     long human format, e.g. "January 15, 2024"

All conversions treat instants as UTC, so day arithmetic is exact and
unaffected by DST.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Union


USER_INPUT_FORMAT = "YYYY-MM-DD"
DATABASE_FORMAT = "YYYY-MM-DDTHH:MM:SS.mmmZ"

USER_INPUT_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

DATABASE_PATTERN = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"T(?P<hour>\d{2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:\.(?P<fraction>\d{1,9}))?)?"
    r"(?P<tz>Z|z|[+-]\d{2}:?\d{2})$"
)

_ONE_DAY = timedelta(days=1)


def _parse_user_input(value: str) -> date:
    match = USER_INPUT_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise ValueError(
            f"Invalid user input date: {value!r}. Expected format: {USER_INPUT_FORMAT}"
        )
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValueError(f"Invalid calendar date: {value!r} ({e})") from e


def _parse_offset(tz: str) -> timezone:
    if tz in ("Z", "z"):
        return timezone.utc
    sign = -1 if tz[0] == "-" else 1
    digits = tz[1:].replace(":", "")
    hours, minutes = int(digits[:2]), int(digits[2:])
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid timezone offset: {tz}")
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def parse_database_date(value: str) -> datetime:
    """
    Parse a database date string into an aware UTC datetime.

    Args:
        value: ISO-8601 instant with "Z" or a numeric offset

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        ValueError: If the string is not a calendar- and time-valid instant

    Example:
        >>> parse_database_date("2024-01-15T10:30:00+02:00").hour
        8
    """
    match = DATABASE_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise ValueError(
            f"Invalid database date: {value!r}. Expected ISO 8601 with timezone, "
            f"e.g. 2024-01-15T10:30:00.000Z"
        )

    parts = match.groupdict()
    fraction = (parts["fraction"] or "0").ljust(6, "0")[:6]
    try:
        parsed = datetime(
            int(parts["year"]),
            int(parts["month"]),
            int(parts["day"]),
            int(parts["hour"]),
            int(parts["minute"]),
            int(parts["second"] or 0),
            int(fraction),
            tzinfo=_parse_offset(parts["tz"]),
        )
    except ValueError as e:
        raise ValueError(f"Invalid database date: {value!r} ({e})") from e

    return parsed.astimezone(timezone.utc)


def format_database_date(value: datetime) -> str:
    """
    Format a datetime in canonical database form.

    Naive datetimes are assumed to be UTC.

    Example:
        >>> format_database_date(datetime(2024, 1, 15, tzinfo=timezone.utc))
        '2024-01-15T00:00:00.000Z'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def is_valid_user_input(value: str) -> bool:
    """Check that a string is a calendar-valid YYYY-MM-DD date."""
    try:
        _parse_user_input(value)
    except ValueError:
        return False
    return True


def is_valid_database_date(value: str) -> bool:
    """Check that a string is a valid ISO-8601 instant with timezone."""
    try:
        parse_database_date(value)
    except ValueError:
        return False
    return True


def user_input_to_database(value: str) -> str:
    """
    Convert a YYYY-MM-DD date to database form (midnight UTC).

    Example:
        >>> user_input_to_database("2024-01-15")
        '2024-01-15T00:00:00.000Z'
    """
    day = _parse_user_input(value)
    return format_database_date(datetime(day.year, day.month, day.day, tzinfo=timezone.utc))


def database_to_user_input(value: str) -> str:
    """
    Convert a database date to YYYY-MM-DD (calendar day in UTC).

    Example:
        >>> database_to_user_input("2024-01-15T10:30:00.000Z")
        '2024-01-15'
    """
    return parse_database_date(value).date().isoformat()


def to_database(value: Union[str, date, datetime]) -> str:
    """
    Normalize any supported date input to canonical database form.

    Accepts datetime objects, date objects, database date strings and
    user input strings.

    Raises:
        ValueError: If the input cannot be interpreted as a date
    """
    if isinstance(value, datetime):
        return format_database_date(value)
    if isinstance(value, date):
        return user_input_to_database(value.isoformat())
    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")
    if "T" in value or "t" in value:
        return format_database_date(parse_database_date(value))
    return user_input_to_database(value)


def to_display(value: str) -> str:
    """
    Format a database date for display.

    Example:
        >>> to_display("2024-01-15T10:30:00.000Z")
        'January 15, 2024'
    """
    parsed = parse_database_date(value)
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def now() -> str:
    """Current time in database form."""
    return format_database_date(datetime.now(timezone.utc))


def is_before(first: str, second: str) -> bool:
    """True if database date `first` is strictly before `second`."""
    return parse_database_date(first) < parse_database_date(second)


def is_after(first: str, second: str) -> bool:
    """True if database date `first` is strictly after `second`."""
    return parse_database_date(first) > parse_database_date(second)


def add_days(value: str, days: int) -> str:
    """Shift a database date by a whole number of days."""
    return format_database_date(parse_database_date(value) + timedelta(days=days))


def days_between(start: str, end: str) -> int:
    """
    Whole days from `start` to `end` (negative if `end` is earlier).

    Partial days are floored.

    Example:
        >>> days_between("2024-01-01T00:00:00.000Z", "2024-03-01T00:00:00.000Z")
        60
    """
    return (parse_database_date(end) - parse_database_date(start)) // _ONE_DAY


def end_of_day(value: str) -> str:
    """Last representable millisecond of the UTC day containing `value`."""
    day = parse_database_date(to_database(value)).date()
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return format_database_date(start + _ONE_DAY - timedelta(milliseconds=1))
