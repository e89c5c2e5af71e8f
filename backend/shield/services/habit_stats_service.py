"""Check-in streaks and monthly counts, derived from stored day ids."""

from datetime import timedelta
from typing import Iterable

from shield.dates import parse_day_id
from shield.schemas import HabitStats


def compute_habit_stats(day_ids: Iterable[str], today_id: str) -> HabitStats:
    """
    Streak statistics for a user's check-in days.

    The current streak counts consecutive days ending today, or yesterday
    when today's check-in has not happened yet.
    """
    days = sorted({parse_day_id(day_id) for day_id in day_ids})
    today = parse_day_id(today_id)
    if not days:
        return HabitStats(current_streak=0, longest_streak=0, monthly_check_ins=0)

    longest = run = 1
    for previous, current in zip(days, days[1:]):
        run = run + 1 if current - previous == timedelta(days=1) else 1
        longest = max(longest, run)

    present = set(days)
    cursor = today if today in present else today - timedelta(days=1)
    current_streak = 0
    while cursor in present:
        current_streak += 1
        cursor -= timedelta(days=1)

    monthly = sum(1 for d in days if d.year == today.year and d.month == today.month and d <= today)

    return HabitStats(
        current_streak=current_streak,
        longest_streak=longest,
        monthly_check_ins=monthly,
        last_check_in_date=days[-1].isoformat(),
    )
