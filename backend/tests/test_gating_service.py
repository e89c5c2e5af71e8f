import logging
from datetime import datetime, timedelta, timezone

import pytest

from shield.schemas import AccessTier, GateVisibility
from shield.services.checkin_store import new_checkin
from shield.services.entitlement_service import compute_access_status
from shield.services.gating_service import (
    FEATURE_POLICIES,
    GateMount,
    UnknownFeatureError,
    decide,
    feature_key_for_step,
)
from shield.schemas import CheckInInput
from shield.taxonomy import Severity

from conftest import NOW, TODAY

FIRST_SEEN = datetime(2025, 3, 1, tzinfo=timezone.utc)

FREE = compute_access_status(False, FIRST_SEEN, FIRST_SEEN + timedelta(days=7))
WELCOME = compute_access_status(False, FIRST_SEEN, FIRST_SEEN + timedelta(hours=1))
PREMIUM = compute_access_status(True, FIRST_SEEN, FIRST_SEEN + timedelta(days=7))


class TestDecide:
    def test_free_user_sees_policy(self) -> None:
        assert FREE.tier is AccessTier.FREE
        assert decide("recovery_plan_morning", FREE).visible is GateVisibility.FULL
        assert decide("recovery_plan_soft_gate", FREE).visible is GateVisibility.SOFT
        assert decide("recovery_plan_afternoon", FREE).visible is GateVisibility.LOCKED
        assert decide("progress_trends", FREE).visible is GateVisibility.SOFT
        assert decide("evening_checkin", FREE).visible is GateVisibility.LOCKED

    @pytest.mark.parametrize("access", [WELCOME, PREMIUM])
    def test_full_access_sees_everything(self, access) -> None:
        for feature in FEATURE_POLICIES:
            assert decide(feature, access).visible is GateVisibility.FULL

    def test_unknown_feature(self) -> None:
        with pytest.raises(UnknownFeatureError):
            decide("recovery_plan_night", FREE)

    def test_every_plan_slot_has_a_policy(self) -> None:
        checkin = new_checkin("1", TODAY, CheckInInput(level=Severity.SEVERE), NOW)
        for step in checkin.generated_plan.steps:
            assert feature_key_for_step(step) in FEATURE_POLICIES


class TestGateMount:
    def test_impression_logged_once_per_mount(self, caplog) -> None:
        mount = GateMount(FREE, context_screen="today")

        with caplog.at_level(logging.INFO, logger="shield.analytics"):
            first = mount.render("recovery_plan_afternoon")
            second = mount.render("recovery_plan_afternoon")
            mount.render("recovery_plan_afternoon")

        assert first.log_impression is True
        assert second.log_impression is False
        assert mount.impressions_logged("recovery_plan_afternoon") == 1
        events = [r.message for r in caplog.records if r.name == "shield.analytics"]
        assert len(events) == 1
        assert events[0].startswith("locked_section_shown")

    def test_new_mount_is_new_impression(self) -> None:
        assert GateMount(FREE).render("progress_history").log_impression is True
        assert GateMount(FREE).render("progress_history").log_impression is True

    def test_latch_is_per_feature(self) -> None:
        mount = GateMount(FREE)
        decisions = mount.render_all(["progress_overview", "progress_trends", "progress_overview"])

        assert [d.log_impression for d in decisions] == [True, True, False]
        assert mount.impressions_logged() == 2

    def test_open_or_full_sections_log_nothing(self) -> None:
        assert GateMount(FREE).render("recovery_plan_morning").log_impression is False
        assert GateMount(PREMIUM).render("evening_checkin").log_impression is False
