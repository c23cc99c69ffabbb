from datetime import date, datetime, timezone, tzinfo
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.schemas.itineraries.activity import ActivitiesOnDate, ActivityResponse


def activity_date(occurs_at: datetime, tz: tzinfo) -> date:
    """Calendar day of ``occurs_at`` in ``tz``. Naive timestamps are taken as UTC."""
    if occurs_at.tzinfo is None:
        occurs_at = occurs_at.replace(tzinfo=timezone.utc)
    return occurs_at.astimezone(tz).date()


def group_activities_by_date(
    activities: Iterable[ActivityResponse],
    tz_name: Optional[str] = None,
) -> List[ActivitiesOnDate]:
    """
    Buckets activities by the calendar day they occur on.

    Buckets come out sorted by ascending date. Inside a bucket the activities
    keep the order they were given in.
    """
    tz = ZoneInfo(tz_name or settings.TRIP_TIMEZONE)
    buckets: Dict[date, List[ActivityResponse]] = {}
    for activity in activities:
        buckets.setdefault(activity_date(activity.occurs_at, tz), []).append(activity)

    return [
        ActivitiesOnDate(date=day, activities=buckets[day])
        for day in sorted(buckets)
    ]
