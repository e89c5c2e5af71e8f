import pytest

from shield.services.habit_stats_service import compute_habit_stats


class TestHabitStats:
    def test_no_history(self) -> None:
        stats = compute_habit_stats([], "2025-03-14")

        assert stats.current_streak == 0
        assert stats.longest_streak == 0
        assert stats.last_check_in_date is None

    def test_streak_ending_today(self) -> None:
        stats = compute_habit_stats(["2025-03-12", "2025-03-13", "2025-03-14"], "2025-03-14")
        assert stats.current_streak == 3

    def test_streak_still_alive_from_yesterday(self) -> None:
        stats = compute_habit_stats(["2025-03-12", "2025-03-13"], "2025-03-14")
        assert stats.current_streak == 2

    def test_gap_breaks_streak(self) -> None:
        days = ["2025-03-01", "2025-03-02", "2025-03-03", "2025-03-04", "2025-03-12"]
        stats = compute_habit_stats(days, "2025-03-14")

        assert stats.current_streak == 0
        assert stats.longest_streak == 4
        assert stats.last_check_in_date == "2025-03-12"

    def test_monthly_count_and_month_boundary(self) -> None:
        days = ["2025-02-27", "2025-02-28", "2025-03-01", "2025-03-02"]
        stats = compute_habit_stats(days, "2025-03-02")

        assert stats.monthly_check_ins == 2
        assert stats.current_streak == 4

    def test_duplicates_are_ignored(self) -> None:
        stats = compute_habit_stats(["2025-03-14", "2025-03-14"], "2025-03-14")
        assert stats.longest_streak == 1

    def test_bad_day_id(self) -> None:
        with pytest.raises(ValueError):
            compute_habit_stats(["14/03/2025"], "2025-03-14")
