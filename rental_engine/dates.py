"""UTC calendar helpers shared by the lifecycle managers"""
from datetime import date, datetime, timezone
from dateutil.relativedelta import relativedelta
from dateutil.parser import isoparse

from .errors import ValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def to_date(value) -> date:
    """Normalise a date, datetime or ISO string to a UTC calendar date"""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return to_date(isoparse(value.strip()))
        except ValueError as exc:
            raise ValidationError(f"invalid date: {value!r}") from exc
    raise ValidationError(f"invalid date: {value!r}")


def add_months(d: date, months: int) -> date:
    """Calendar-month arithmetic; Jan 31 + 1 month -> Feb 28/29"""
    return d + relativedelta(months=months)


def days_until(end: date, today: date) -> int:
    return (end - today).days


def month_label(d: date) -> str:
    """YYYY-MM label for a month"""
    return f"{d.year:04d}-{d.month:02d}"
