# app/services/schedule/workday_calendar.py
"""Organisation-local clock plus weekend and holiday guards."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.config import settings
from app.models.domain.schedule_domain import Holiday, HolidayType
from app.repositories.team_repository import get_holidays_on

SATURDAY = 5


def org_timezone() -> ZoneInfo:
    return ZoneInfo(settings.ORG_TIMEZONE)


def local_now() -> datetime:
    return datetime.now(org_timezone())


def to_local(moment: datetime) -> datetime:
    """Convert an aware datetime to the organisation timezone."""
    return moment.astimezone(org_timezone())


def minutes_since_midnight(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def is_weekend(on_date: date) -> bool:
    return on_date.weekday() >= SATURDAY


def is_workday_given(on_date: date, holidays: list[Holiday]) -> bool:
    """Weekdays that are not full-day holidays."""
    if is_weekend(on_date):
        return False
    return not any(h.holiday_type == HolidayType.FULL for h in holidays)


def is_eod_workday_given(on_date: date, holidays: list[Holiday]) -> bool:
    """Workdays where the afternoon is worked (no afternoon-off half day)."""
    if not is_workday_given(on_date, holidays):
        return False
    return not any(h.holiday_type == HolidayType.HALF_PM for h in holidays)


async def is_workday(on_date: date) -> bool:
    if is_weekend(on_date):
        return False
    return is_workday_given(on_date, await get_holidays_on(on_date))


async def is_eod_workday(on_date: date) -> bool:
    if is_weekend(on_date):
        return False
    return is_eod_workday_given(on_date, await get_holidays_on(on_date))
