# app/services/messaging/prompt_messages.py
"""Plain-text bodies for prompts, replies and escalations."""

from app.models.domain.schedule_domain import TeamMember, WorkSchedule
from app.models.domain.tracker_domain import TrackerTask

MAX_LISTED_TASKS = 10


def _task_lines(tasks: list[TrackerTask]) -> list[str]:
    lines = []
    for task in tasks[:MAX_LISTED_TASKS]:
        suffix = f" (overdue {task.days_overdue}d)" if task.is_overdue else ""
        lines.append(f"- {task.name}{suffix}")
    if len(tasks) > MAX_LISTED_TASKS:
        lines.append(f"...and {len(tasks) - MAX_LISTED_TASKS} more")
    return lines


def status_prompt(member: TeamMember, tasks: list[TrackerTask], is_week_view: bool) -> str:
    heading = "due this week" if is_week_view else "due today"
    lines = [f"Good morning {member.first_name}! What are you working on today?"]
    if tasks:
        lines.append(f"\nYour tasks {heading}:")
        lines.extend(_task_lines(tasks))
    return "\n".join(lines)


def status_followup(member: TeamMember) -> str:
    return f"Hi {member.first_name}, just a reminder to send your check-in for today."


def eod_prompt(member: TeamMember, schedule: WorkSchedule) -> str:
    return (
        f"Hi {member.first_name}, time to wrap up! Please fill in your end-of-day report "
        f"(expected {schedule.total_expected_hours:g}h today)."
    )


def eod_followup(member: TeamMember) -> str:
    return f"Hi {member.first_name}, your end-of-day report is still missing for today."


def missed_notice(member: TeamMember, missed_type: str) -> str:
    what = "check-in" if missed_type == "STATUS" else "end-of-day report"
    return f"We didn't receive your {what} today, {member.first_name}. Please send it when you can."


def escalation_notice(member: TeamMember, missed_type: str, date_label: str) -> str:
    what = "morning check-in" if missed_type == "STATUS" else "end-of-day report"
    return f"{member.name} has not sent their {what} for {date_label}."


HELP_TEXT = (
    "I collect daily check-ins and end-of-day reports.\n"
    "- Reply to the morning prompt with what you're working on.\n"
    "- Use the end-of-day form, or reply with a short summary.\n"
    "- Send just a number (e.g. 7.5) to update today's hours.\n"
    "- 'ping' checks that I'm alive."
)

OUTSIDE_WORK_HOURS = "It's outside work hours today. I'll pick this up on the next workday."
DEFAULT_ACK = "Thanks! Type 'help' to see what I can do."
