from datetime import timedelta

import pytest

from shield.schemas import CheckInInput, WaterEntry
from shield.services.checkin_store import new_checkin
from shield.services.hydration_service import compute_hydration, goal_ml_for, hydration_milestone
from shield.taxonomy import Severity

from conftest import NOW, TODAY


def _checkin(level=Severity.SEVERE, *amounts):
    checkin = new_checkin("1", TODAY, CheckInInput(level=level), NOW)
    entries = [
        WaterEntry(id=f"w{i}", amount_ml=amount, timestamp=NOW + timedelta(minutes=i))
        for i, amount in enumerate(amounts)
    ]
    return checkin.model_copy(update={"water_entries": entries})


class TestGoal:
    @pytest.mark.parametrize(
        "level, goal",
        [
            (Severity.SEVERE, 2000),
            (Severity.MODERATE, 1500),
            (Severity.MILD, 1200),
            (Severity.NONE, 1000),
        ],
    )
    def test_goal_follows_plan(self, level, goal) -> None:
        assert goal_ml_for(_checkin(level)) == goal


class TestMilestone:
    @pytest.mark.parametrize(
        "total, expected",
        [
            (0, "Start with a small sip."),
            (250, "Let's bring some calm back in."),
            (500, "Your system is starting to settle."),
            (1500, "You're giving your body what it needs."),
            (2000, "Nice. Your body's supported."),
            (2600, "Nice. Your body's supported."),
        ],
    )
    def test_thresholds(self, total, expected) -> None:
        assert hydration_milestone(total, 2000) == expected

    def test_no_goal(self) -> None:
        assert hydration_milestone(500, 0) == "Start with a small sip."


class TestComputeHydration:
    def test_empty_log(self) -> None:
        progress = compute_hydration(_checkin())

        assert progress.day_id == TODAY
        assert progress.total_ml == 0
        assert progress.remaining_ml == 2000
        assert progress.percent == 0
        assert progress.entries == []

    def test_partial(self) -> None:
        progress = compute_hydration(_checkin(Severity.MILD, 250, 350))

        assert progress.total_ml == 600
        assert progress.goal_ml == 1200
        assert progress.remaining_ml == 600
        assert progress.percent == 50

    def test_over_goal_is_capped(self) -> None:
        progress = compute_hydration(_checkin(Severity.NONE, 800, 700))

        assert progress.total_ml == 1500
        assert progress.remaining_ml == 0
        assert progress.percent == 100
