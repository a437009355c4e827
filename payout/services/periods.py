from datetime import datetime, timedelta, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone


def payout_timezone() -> tzinfo:
    return ZoneInfo(getattr(settings, "PAYOUT_TIME_ZONE", "Asia/Dhaka"))


def localize(moment: Optional[datetime] = None) -> datetime:
    """Return ``moment`` (default: now) expressed in the payout time zone."""
    tz = payout_timezone()
    if moment is None:
        return timezone.now().astimezone(tz)
    if timezone.is_naive(moment):
        return timezone.make_aware(moment, tz)
    return moment.astimezone(tz)


def month_bounds(moment: datetime) -> Tuple[datetime, datetime]:
    """First and last instant (inclusive) of the month containing ``moment``."""
    start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    next_start = (start + timedelta(days=32)).replace(day=1)
    return start, next_start - timedelta(microseconds=1)


def previous_month_bounds(moment: datetime) -> Tuple[datetime, datetime]:
    current_start, _ = month_bounds(moment)
    return month_bounds(current_start - timedelta(microseconds=1))
