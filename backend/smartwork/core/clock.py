import calendar
from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC, matching what the DateTime columns store
    return datetime.now(timezone.utc).replace(tzinfo=None)


def months_ago(moment: datetime, months: int) -> datetime:
    """Same wall-clock time ``months`` calendar months earlier, clamped to month end."""
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
