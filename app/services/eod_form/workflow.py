# app/services/eod_form/workflow.py
"""
Step transitions of the structured EOD wizard.

header -> task (xN, N >= 1) -> meetings -> [unplanned] -> tomorrow -> submit

Each apply_* function takes the current draft and the submitted form and
returns a StepResult. A rejected step returns the prior draft unchanged; an
accepted step returns a new draft with only its own slice replaced. None of
these functions touch storage.
"""

from dataclasses import dataclass, field
from datetime import date

from app.models.domain.eod_domain import EodDraft, EodStep, SourceTask
from app.services.eod_form.validation import (
    FormValues,
    is_empty_task_form,
    review_submission,
    validate_meetings_form,
    validate_task_form,
    validate_tomorrow_form,
    validate_total_hours,
    validate_unplanned_form,
)

MAX_SOURCE_TASKS = 10
STALE_TASK_CARD = "That task card is out of date. Please continue from the latest card"


@dataclass
class StepResult:
    accepted: bool
    draft: EodDraft
    next_step: EodStep | None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    needs_confirmation: bool = False
    submitted: bool = False


def _advance(current: EodStep, target: EodStep) -> EodStep:
    return target if target.order > current.order else current


def _rejected(draft: EodDraft, errors: list[str]) -> StepResult:
    return StepResult(accepted=False, draft=draft, next_step=draft.step, errors=errors)


def _out_of_order(draft: EodDraft, step: EodStep) -> StepResult | None:
    """Steps can be (re)submitted up to the draft's current step, never ahead of it."""
    if step.order > draft.step.order:
        return _rejected(draft, [f"Finish the {draft.step.value} step first"])
    return None


def start_draft(user_id: str, user_name: str, today: date) -> EodDraft:
    return EodDraft(
        user_id=user_id,
        user_name=user_name,
        log_date=today,
        date_label=today.strftime("%a %b %d, %Y"),
    )


def apply_header(
    draft: EodDraft, form: FormValues, source_tasks: list[SourceTask] | None = None
) -> StepResult:
    total_hours, errors = validate_total_hours(form)
    if errors:
        return _rejected(draft, errors)

    cache = draft.source_task_cache or list((source_tasks or [])[:MAX_SOURCE_TASKS])
    updated = draft.model_copy(
        update={
            "total_hours": total_hours,
            "source_task_cache": cache,
            "current_task_index": 0,
            "step": _advance(draft.step, EodStep.TASK),
        }
    )
    return StepResult(accepted=True, draft=updated, next_step=EodStep.TASK)


def apply_task(
    draft: EodDraft,
    form: FormValues,
    task_index: int,
    finish: bool,
    link_prefix: str,
) -> StepResult:
    """
    Save the task card at task_index, then continue to the next task or,
    when finish is set, on to meetings.

    Finishing with an empty card is allowed once at least one task is saved.
    """
    blocked = _out_of_order(draft, EodStep.TASK)
    if blocked:
        return blocked

    if task_index < 0 or task_index > len(draft.tasks):
        return _rejected(draft, [STALE_TASK_CARD])

    tasks = list(draft.tasks)

    if finish and is_empty_task_form(form):
        if not tasks:
            return _rejected(draft, ["Add at least one task before continuing"])
    else:
        task, errors = validate_task_form(form, link_prefix)
        if errors:
            return _rejected(draft, errors)
        if task_index == len(tasks):
            tasks.append(task)
        else:
            tasks[task_index] = task

    if finish:
        updated = draft.model_copy(
            update={
                "tasks": tasks,
                "current_task_index": len(tasks),
                "step": _advance(draft.step, EodStep.MEETINGS),
            }
        )
        return StepResult(accepted=True, draft=updated, next_step=EodStep.MEETINGS)

    updated = draft.model_copy(update={"tasks": tasks, "current_task_index": task_index + 1})
    return StepResult(accepted=True, draft=updated, next_step=EodStep.TASK)


def apply_meetings(draft: EodDraft, form: FormValues, include_unplanned: bool) -> StepResult:
    blocked = _out_of_order(draft, EodStep.MEETINGS)
    if blocked:
        return blocked

    meetings, errors = validate_meetings_form(form)
    if errors:
        return _rejected(draft, errors)

    next_step = EodStep.UNPLANNED if include_unplanned else EodStep.TOMORROW
    update = {
        "meetings": meetings,
        "step": _advance(draft.step, next_step),
    }
    if not include_unplanned:
        update["unplanned"] = None
    return StepResult(accepted=True, draft=draft.model_copy(update=update), next_step=next_step)


def apply_unplanned(draft: EodDraft, form: FormValues) -> StepResult:
    blocked = _out_of_order(draft, EodStep.UNPLANNED)
    if blocked:
        return blocked

    unplanned, errors = validate_unplanned_form(form)
    if errors:
        return _rejected(draft, errors)

    updated = draft.model_copy(
        update={
            "unplanned": unplanned,
            "step": _advance(draft.step, EodStep.TOMORROW),
        }
    )
    return StepResult(accepted=True, draft=updated, next_step=EodStep.TOMORROW)


def _submit(draft: EodDraft, confirmed: bool) -> StepResult:
    review = review_submission(draft)

    if review.errors:
        return StepResult(
            accepted=True,
            draft=draft,
            next_step=review.first_error_step,
            errors=[message for _, message in review.errors],
        )

    if review.warnings and not confirmed:
        return StepResult(
            accepted=True,
            draft=draft,
            next_step=EodStep.TOMORROW,
            warnings=review.warnings,
            needs_confirmation=True,
        )

    return StepResult(
        accepted=True,
        draft=draft,
        next_step=None,
        warnings=review.warnings,
        submitted=True,
    )


def apply_tomorrow(draft: EodDraft, form: FormValues) -> StepResult:
    """Save tomorrow's priorities and attempt submission."""
    blocked = _out_of_order(draft, EodStep.TOMORROW)
    if blocked:
        return blocked

    priorities, errors = validate_tomorrow_form(form)
    if errors:
        return _rejected(draft, errors)

    return _submit(draft.model_copy(update={"tomorrow": priorities}), confirmed=False)


def confirm_submission(draft: EodDraft) -> StepResult:
    """Submit anyway: skip warnings and keep every captured field as is."""
    blocked = _out_of_order(draft, EodStep.TOMORROW)
    if blocked:
        return blocked
    return _submit(draft, confirmed=True)
