import calendar
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta  # Used for accurate month calculation

from .errors import ValidationError

# Every grid, week span and weekly statistic starts on this weekday.
WEEK_START = calendar.SUNDAY

KEY_FORMAT = '%Y-%m-%d'


def as_date(value):
    if isinstance(value, datetime):
        return date(value.year, value.month, value.day)
    return value


def date_key(value) -> str:
    """Canonical YYYY-MM-DD key for a date or datetime, ignoring time of day."""
    d = as_date(value)
    return f'{d.year:04d}-{d.month:02d}-{d.day:02d}'


# A month grid pads by up to a week and navigation shifts a month either way,
# so the first and last representable years cannot be shown.
MIN_YEAR = date.min.year + 1
MAX_YEAR = date.max.year - 1


def _in_range(d, value, what):
    if not MIN_YEAR <= d.year <= MAX_YEAR:
        raise ValidationError(f'{what} out of range: {value!r}')
    return d


def parse_date_key(key: str) -> date:
    try:
        d = datetime.strptime(key, KEY_FORMAT).date()
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid date: {key!r}') from None
    return _in_range(d, key, 'Date')


def parse_month(value: str) -> date:
    """Parse a YYYY-MM query value into the first day of that month."""
    try:
        d = datetime.strptime(value, '%Y-%m').date()
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid month: {value!r}') from None
    return _in_range(d, value, 'Month')


def start_of_week(value) -> date:
    d = as_date(value)
    offset = (d.weekday() - WEEK_START) % 7
    return d - timedelta(days=offset)


def end_of_week(value) -> date:
    return start_of_week(value) + timedelta(days=6)


def week_days(now) -> list:
    start = start_of_week(now)
    return [start + timedelta(days=i) for i in range(7)]


def month_days(now) -> list:
    d = as_date(now)
    num_days = calendar.monthrange(d.year, d.month)[1]
    return [date(d.year, d.month, day) for day in range(1, num_days + 1)]


def month_grid(reference) -> list:
    """Every day shown in a 7-column month view, padded to whole weeks."""
    days = month_days(reference)
    current = start_of_week(days[0])
    last = end_of_week(days[-1])

    grid = []
    while current <= last:
        grid.append(current)
        current += timedelta(days=1)
    return grid


def next_month(value) -> date:
    return as_date(value) + relativedelta(months=1)


def prev_month(value) -> date:
    return as_date(value) - relativedelta(months=1)


def month_label(value) -> str:
    d = as_date(value)
    return f'{calendar.month_name[d.month]} {d.year}'


def weekday_labels() -> list:
    return [calendar.day_abbr[(WEEK_START + i) % 7] for i in range(7)]
