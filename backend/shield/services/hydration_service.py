"""Daily water log totals and the encouragement line shown under them."""

from typing import Iterable

from shield.schemas import CheckIn, HydrationProgress, WaterEntry

# Used when a record somehow carries no plan goal
DEFAULT_GOAL_ML = 1500


def goal_ml_for(checkin: CheckIn) -> int:
    liters = checkin.generated_plan.hydration_goal_liters
    if liters <= 0:
        return DEFAULT_GOAL_ML
    return round(liters * 1000)


def total_ml(entries: Iterable[WaterEntry]) -> int:
    return sum(entry.amount_ml for entry in entries)


def hydration_milestone(total: int, goal: int) -> str:
    """Copy for how far along the day's water goal is."""
    if goal <= 0 or total <= 0:
        return "Start with a small sip."
    ratio = total / goal
    if ratio < 0.25:
        return "Let's bring some calm back in."
    if ratio < 0.6:
        return "Your system is starting to settle."
    if ratio < 1:
        return "You're giving your body what it needs."
    return "Nice. Your body's supported."


def compute_hydration(checkin: CheckIn) -> HydrationProgress:
    """
    Water logged against the plan's hydration goal.

    ``percent`` is capped at 100 and ``remaining_ml`` never goes below zero;
    entries are listed oldest first.
    """
    goal = goal_ml_for(checkin)
    total = total_ml(checkin.water_entries)
    return HydrationProgress(
        day_id=checkin.id,
        total_ml=total,
        goal_ml=goal,
        remaining_ml=max(goal - total, 0),
        percent=min(round(100 * total / goal), 100) if goal else 0,
        milestone=hydration_milestone(total, goal),
        entries=sorted(checkin.water_entries, key=lambda entry: entry.timestamp),
    )
