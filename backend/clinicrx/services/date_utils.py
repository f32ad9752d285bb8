"""Calendar helpers shared by the prescription and inventory engines.

"Today" is never read from a global inside the engines; callers pass a
clock (any zero-argument callable) so tests can pin the date.
"""
import re
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Union

from clinicrx.core.exceptions import InvalidArgument

Clock = Callable[[], date]
NowClock = Callable[[], datetime]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def system_today() -> date:
    return date.today()


def system_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_leading_int(text) -> int:
    """
    Read the integer at the start of a string, 0 when there is none.

    Examples:
        "30 days" -> 30
        " 7 day"  -> 7
        "Until finished" -> 0
    """
    if not isinstance(text, str):
        return 0
    match = _LEADING_INT.match(text)
    if not match:
        return 0
    return int(match.group(1))


def add_days(start: date, days: int) -> date:
    """Calendar arithmetic (weekends count)."""
    return start + timedelta(days=days)


def parse_date(value: Union[str, date, datetime]) -> date:
    """
    Coerce a date-ish value to a `date`.

    Raises:
        InvalidArgument: the string cannot be read as a date at all.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            raise InvalidArgument(f"Not a valid date: {value!r}")
    raise InvalidArgument(f"Not a valid date: {value!r}")


def days_between(start: date, end: date) -> int:
    return abs((end - start).days)
