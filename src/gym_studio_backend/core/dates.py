'''
Calendar helpers for class scheduling:
week boundaries, inclusive date-range normalization and recurring date expansion.
All datetimes are naive and expressed in studio-local time.
'''
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Union

DATE_FORMAT = "%Y-%m-%d"
END_OF_DAY = time(23, 59, 59, 999000)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_PATTERN = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")


@dataclass(frozen=True)
class WeekRange:
    monday: datetime
    sunday: datetime

    @property
    def start_date(self) -> str:
        return self.monday.strftime(DATE_FORMAT)

    @property
    def end_date(self) -> str:
        return self.sunday.strftime(DATE_FORMAT)


def parse_date_string(value: str) -> date:
    """
    Strictly parses a 'YYYY-MM-DD' string. Anything else raises ValueError.
    """
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise ValueError("Date must be in YYYY-MM-DD format")
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise ValueError(f"Invalid calendar date: {value}")


def parse_datetime_string(value: str) -> datetime:
    """
    Parses an ISO date or datetime string into a naive datetime.
    Timezone designators are dropped so the wall-clock value is kept.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Datetime value must be a non-empty string")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return parsed.replace(tzinfo=None)


def parse_time_of_day(value: Union[str, time]) -> time:
    """Accepts 'HH:MM', 'HH:MM:SS' or a full ISO datetime (its time part is used)."""
    if isinstance(value, time):
        return value
    if isinstance(value, str) and _TIME_PATTERN.match(value.strip()):
        return time.fromisoformat(value.strip())
    return parse_datetime_string(value).time()


def combine_date_and_time(day: date, value: Union[str, time]) -> datetime:
    """
    Builds the datetime of a class boundary.
    A bare time of day is placed on `day`; a full ISO datetime is taken as-is.
    """
    if isinstance(value, str) and not _TIME_PATTERN.match(value.strip()):
        return parse_datetime_string(value)
    return datetime.combine(day, parse_time_of_day(value))


def get_week_dates(week_offset: int = 0, today: Optional[date] = None) -> WeekRange:
    """
    Returns the Monday 00:00:00.000 to Sunday 23:59:59.999 window of the week
    `week_offset` weeks away from the week containing `today`.
    """
    if today is None:
        today = date.today()
    # Sunday belongs to the week that started six days earlier
    days_since_monday = today.weekday()
    monday = today - timedelta(days=days_since_monday) + timedelta(weeks=week_offset)
    sunday = monday + timedelta(days=6)
    return WeekRange(
        monday=datetime.combine(monday, time.min),
        sunday=datetime.combine(sunday, END_OF_DAY),
    )


def normalize_date_range(start: Union[str, date], end: Union[str, date]) -> tuple[datetime, datetime]:
    """
    Expands two calendar dates into an inclusive [start 00:00:00.000, end 23:59:59.999] window.
    Raises ValueError for malformed dates or when start is after end.
    """
    start_day = parse_date_string(start) if isinstance(start, str) else start
    end_day = parse_date_string(end) if isinstance(end, str) else end
    if start_day > end_day:
        raise ValueError("Start date must be before or equal to end date")
    return datetime.combine(start_day, time.min), datetime.combine(end_day, END_OF_DAY)


def days_between_inclusive(start: date, end: date) -> int:
    return (end - start).days + 1


def sunday_index(day: date) -> int:
    """Day of week with Sunday=0 .. Saturday=6."""
    return (day.weekday() + 1) % 7


def expand_recurring_dates(day_indexes: Iterable[int], start: date, end: date) -> list[date]:
    """
    Every date in [start, end] whose Sunday-indexed weekday is selected.
    No selected days, or start after end, gives an empty list.
    """
    selected = set(day_indexes)
    dates: list[date] = []
    if not selected:
        return dates
    current = start
    while current <= end:
        if sunday_index(current) in selected:
            dates.append(current)
        current += timedelta(days=1)
    return dates
