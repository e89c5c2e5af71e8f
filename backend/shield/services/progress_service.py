"""Read-only projections of a check-in's step completion."""

from collections import OrderedDict
from typing import Dict, List

from shield.schemas import CheckIn, PlanProgress, RecoveryStep
from shield.taxonomy import TimeOfDay


def apply_steps_state(checkin: CheckIn) -> List[RecoveryStep]:
    """Plan steps with ``completed`` taken from the live ``steps_state``."""
    state = checkin.steps_state
    return [
        step.model_copy(update={"completed": bool(state.get(step.id, False))})
        for step in checkin.generated_plan.steps
    ]


def compute_progress(checkin: CheckIn) -> PlanProgress:
    """
    Aggregate completion for the day's plan.

    Walks the steps in stored order. ``plan_completed`` only reflects an
    explicit completion (``completed_at``), never "every step ticked".
    """
    steps = checkin.generated_plan.steps
    state = checkin.steps_state

    completed_count = 0
    next_incomplete = None
    for step in steps:
        if state.get(step.id):
            completed_count += 1
        elif next_incomplete is None:
            next_incomplete = step.id

    total = len(steps)
    return PlanProgress(
        completed_count=completed_count,
        total_count=total,
        next_incomplete_step_id=next_incomplete,
        all_completed=total > 0 and completed_count == total,
        plan_completed=checkin.completed_at is not None,
        percent=round(100 * completed_count / total) if total else 0,
    )


def group_steps_by_time_of_day(steps: List[RecoveryStep]) -> Dict[TimeOfDay, List[RecoveryStep]]:
    """Display sections, keeping the stored order inside each section."""
    groups: Dict[TimeOfDay, List[RecoveryStep]] = OrderedDict()
    for slot in TimeOfDay:
        section = [step for step in steps if step.time_of_day is slot]
        if section:
            groups[slot] = section
    return groups
