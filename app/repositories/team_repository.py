# app/repositories/team_repository.py
"""Read-only access to the roster, special periods and holiday calendar."""

from datetime import date

from app.db.helpers import fetch_all, fetch_one, with_db_retry
from app.infrastructure.observability.logging import get_logger
from app.models.domain.schedule_domain import Holiday, SpecialPeriod, TeamMember

logger = get_logger(__name__)

_MEMBER_COLUMNS = """
    user_id, name, email, manager_id, tracker_user_id, active, tracking_mode,
    custom_start_time, custom_end_time, custom_start_time_2, custom_end_time_2,
    custom_hours_per_day
"""


@with_db_retry()
async def get_active_team_members() -> list[TeamMember]:
    rows = await fetch_all(
        f"SELECT {_MEMBER_COLUMNS} FROM team_members WHERE active = true ORDER BY name"
    )
    return [TeamMember.model_validate(row) for row in rows]


@with_db_retry()
async def get_team_member(user_id: str) -> TeamMember | None:
    row = await fetch_one(
        f"SELECT {_MEMBER_COLUMNS} FROM team_members WHERE user_id = %s", (user_id,)
    )
    return TeamMember.model_validate(row) if row else None


@with_db_retry()
async def get_special_periods_covering(on_date: date) -> list[SpecialPeriod]:
    """Special periods whose inclusive date range contains on_date, newest start first."""
    rows = await fetch_all(
        """
        SELECT name, start_date, end_date,
               weekday_start, weekday_end, weekday_start_2, weekday_end_2,
               friday_start, friday_end, friday_start_2, friday_end_2,
               hours_per_day
        FROM special_periods
        WHERE start_date <= %s AND end_date >= %s
        ORDER BY start_date DESC
        """,
        (on_date, on_date),
    )
    return [SpecialPeriod.model_validate(row) for row in rows]


@with_db_retry()
async def get_holidays_on(on_date: date) -> list[Holiday]:
    rows = await fetch_all(
        "SELECT holiday_date, name, holiday_type FROM holidays WHERE holiday_date = %s",
        (on_date,),
    )
    return [Holiday.model_validate(row) for row in rows]
