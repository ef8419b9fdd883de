import calendar
from datetime import timezone as dt_timezone

from django.utils import timezone


def start_of_current_month(now=None):
    now = now or timezone.now()
    return now.astimezone(dt_timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def months_before(moment, months):
    """Same day and time ``months`` calendar months earlier, clamped to the month's length."""
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
