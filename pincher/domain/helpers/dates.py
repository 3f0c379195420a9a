from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from pincher.domain.errors import ValidationError

DATE_FORMAT = "%Y-%m-%d"


def parse_calendar_date(value: str, field_name: str = "date") -> date:
    """
    Parse a strict YYYY-MM-DD string. Times, offsets and other layouts are
    rejected so that monthly bucketing stays unambiguous.
    """
    if not isinstance(value, str) or len(value) != 10:
        raise ValidationError(f"{field_name} could not be parsed as YYYY-MM-DD")
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"{field_name} could not be parsed as YYYY-MM-DD")


def parse_optional_date(value: Optional[str], field_name: str) -> Optional[date]:
    if not value:
        return None
    return parse_calendar_date(value, field_name)


def first_of_month(d: date) -> date:
    return d.replace(day=1)


def next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def month_bounds(d: date) -> Tuple[date, date]:
    """First and last calendar day of the month containing d."""
    start = first_of_month(d)
    return start, next_month(start) - timedelta(days=1)


def parse_month(value: str) -> date:
    return first_of_month(parse_calendar_date(value, "month"))
