# app/models/domain/schedule_domain.py
"""
Schedule Domain Models
Roster members, schedule overrides, special periods, holidays and the
resolved per-day WorkSchedule.
"""

from datetime import date, time
from enum import Enum

from pydantic import BaseModel, Field, field_validator

MINUTES_PER_DAY = 24 * 60


def parse_time_of_day(value) -> str | None:
    """
    Normalize a configured time to "HH:MM".

    Accepts "8:30" / "08:30" strings, decimal hours (8.5 -> "08:30") and
    datetime.time. Empty values return None.
    """
    if value is None or value == "":
        return None

    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"

    if isinstance(value, int | float):
        total_minutes = round(float(value) * 60)
        if not 0 <= total_minutes <= MINUTES_PER_DAY:
            raise ValueError(f"Decimal hour out of range: {value}")
        hours, minutes = divmod(total_minutes % MINUTES_PER_DAY, 60)
        return f"{hours:02d}:{minutes:02d}"

    text = str(value).strip()
    if ":" not in text:
        return parse_time_of_day(float(text))

    hour_text, minute_text = text.split(":", 1)
    hours, minutes = int(hour_text), int(minute_text[:2])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time of day: {value}")
    return f"{hours:02d}:{minutes:02d}"


def to_minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


class TimeBlock(BaseModel):
    """A contiguous work block. An end at or before the start runs past midnight."""

    start: str
    end: str

    @field_validator("start", "end", mode="before")
    @classmethod
    def _normalize(cls, value):
        normalized = parse_time_of_day(value)
        if normalized is None:
            raise ValueError("Time block bounds are required")
        return normalized

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        """End in minutes since midnight of the start day (overnight adds 24h)."""
        end = to_minutes(self.end)
        return end + MINUTES_PER_DAY if end <= self.start_minutes else end

    @property
    def crosses_midnight(self) -> bool:
        return self.end_minutes > MINUTES_PER_DAY

    @property
    def duration_hours(self) -> float:
        return (self.end_minutes - self.start_minutes) / 60


class ScheduleSource(str, Enum):
    CUSTOM = "custom"
    SPECIAL_PERIOD = "special_period"
    DEFAULT = "default"


class WorkSchedule(BaseModel):
    """Effective schedule for one user on one date."""

    blocks: list[TimeBlock] = Field(..., min_length=1)
    total_expected_hours: float
    source: ScheduleSource
    special_period_name: str | None = None

    @property
    def first_block(self) -> TimeBlock:
        return self.blocks[0]

    @property
    def last_block(self) -> TimeBlock:
        return self.blocks[-1]

    @property
    def is_split(self) -> bool:
        return len(self.blocks) > 1


class TrackingMode(str, Enum):
    TRACKED = "tracked"
    NOT_TRACKED = "not_tracked"


class ScheduleOverride(BaseModel):
    """Per-user custom hours; a second pair makes it a split shift."""

    start: str
    end: str
    start_2: str | None = None
    end_2: str | None = None
    hours_per_day: float | None = None


class TeamMember(BaseModel):
    """Roster row."""

    user_id: str
    name: str
    email: str | None = None
    manager_id: str | None = None
    tracker_user_id: str | None = None
    active: bool = True
    tracking_mode: TrackingMode = TrackingMode.TRACKED
    custom_start_time: str | None = None
    custom_end_time: str | None = None
    custom_start_time_2: str | None = None
    custom_end_time_2: str | None = None
    custom_hours_per_day: float | None = None

    @field_validator(
        "custom_start_time",
        "custom_end_time",
        "custom_start_time_2",
        "custom_end_time_2",
        mode="before",
    )
    @classmethod
    def _normalize_times(cls, value):
        return parse_time_of_day(value)

    @property
    def is_tracked(self) -> bool:
        return self.active and self.tracking_mode == TrackingMode.TRACKED

    @property
    def first_name(self) -> str:
        return self.name.split(" ")[0] if self.name else "there"

    def schedule_override(self) -> ScheduleOverride | None:
        if not (self.custom_start_time and self.custom_end_time):
            return None
        return ScheduleOverride(
            start=self.custom_start_time,
            end=self.custom_end_time,
            start_2=self.custom_start_time_2,
            end_2=self.custom_end_time_2,
            hours_per_day=self.custom_hours_per_day,
        )


class SpecialPeriod(BaseModel):
    """Date range with org-wide alternative hours (e.g. a seasonal schedule)."""

    name: str
    start_date: date
    end_date: date
    weekday_start: str | None = None
    weekday_end: str | None = None
    weekday_start_2: str | None = None
    weekday_end_2: str | None = None
    friday_start: str | None = None
    friday_end: str | None = None
    friday_start_2: str | None = None
    friday_end_2: str | None = None
    hours_per_day: float | None = None

    @field_validator(
        "weekday_start",
        "weekday_end",
        "weekday_start_2",
        "weekday_end_2",
        "friday_start",
        "friday_end",
        "friday_start_2",
        "friday_end_2",
        mode="before",
    )
    @classmethod
    def _normalize_times(cls, value):
        return parse_time_of_day(value)

    def covers(self, on_date: date) -> bool:
        return self.start_date <= on_date <= self.end_date

    @property
    def is_split(self) -> bool:
        return bool(
            (self.weekday_start_2 and self.weekday_end_2)
            or (self.friday_start_2 and self.friday_end_2)
        )


class HolidayType(str, Enum):
    FULL = "full"
    HALF_AM = "half_am"  # morning off
    HALF_PM = "half_pm"  # afternoon off


class Holiday(BaseModel):
    holiday_date: date
    name: str
    holiday_type: HolidayType = HolidayType.FULL


class WorkHoursDefaults(BaseModel):
    """Organisation-wide fallback hours."""

    weekday_start: str = "08:00"
    weekday_end: str = "17:00"
    friday_start: str = "07:00"
    friday_end: str = "11:00"
    weekday_hours: float | None = 8.0
    friday_hours: float | None = 4.0

    @classmethod
    def from_settings(cls, settings) -> "WorkHoursDefaults":
        return cls(
            weekday_start=parse_time_of_day(settings.DEFAULT_WORK_START),
            weekday_end=parse_time_of_day(settings.DEFAULT_WORK_END),
            friday_start=parse_time_of_day(settings.DEFAULT_FRIDAY_START),
            friday_end=parse_time_of_day(settings.DEFAULT_FRIDAY_END),
            weekday_hours=settings.DEFAULT_HOURS_PER_DAY,
            friday_hours=settings.DEFAULT_FRIDAY_HOURS,
        )
