import calendar
from datetime import datetime, timedelta

from src.common.enums import Frequency


def add_period(moment: datetime, frequency: Frequency) -> datetime:
    """One period later. Monthly keeps the day of month, clamped to the month's last day."""
    if frequency == Frequency.DAILY:
        return moment + timedelta(days=1)
    if frequency == Frequency.WEEKLY:
        return moment + timedelta(days=7)

    year, month = (moment.year + 1, 1) if moment.month == 12 else (moment.year, moment.month + 1)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
