"""Feature gating for free users.

Each gated section has a stable feature key and an explicit policy, so a
section gates the same way on every screen that shows it.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

from shield.schemas import AccessStatus, GateDecision, GateVisibility, RecoveryStep
from shield.taxonomy import TimeOfDay

analytics_logger = logging.getLogger("shield.analytics")


class GatePolicy(str, Enum):
    OPEN = "open"  # always fully visible
    SOFT = "soft"  # visible with an upgrade card for free users
    LOCKED = "locked"  # locked placeholder for free users


class UnknownFeatureError(KeyError):
    """Raised for a feature key missing from FEATURE_POLICIES."""


FEATURE_POLICIES: Dict[str, GatePolicy] = {
    # Today's recovery plan
    "recovery_plan_morning": GatePolicy.OPEN,
    "recovery_plan_soft_gate": GatePolicy.SOFT,
    "recovery_plan_midday": GatePolicy.LOCKED,
    "recovery_plan_afternoon": GatePolicy.LOCKED,
    "recovery_plan_evening": GatePolicy.LOCKED,
    # Progress insights
    "progress_overview": GatePolicy.SOFT,
    "progress_trends": GatePolicy.SOFT,
    "progress_history": GatePolicy.SOFT,
    "progress_rhythm": GatePolicy.SOFT,
    "progress_reflection": GatePolicy.SOFT,
    # Whole screens
    "evening_checkin": GatePolicy.LOCKED,
}

_FREE_VISIBILITY = {
    GatePolicy.OPEN: GateVisibility.FULL,
    GatePolicy.SOFT: GateVisibility.SOFT,
    GatePolicy.LOCKED: GateVisibility.LOCKED,
}

IMPRESSION_EVENTS = {
    GateVisibility.SOFT: "soft_gate_shown",
    GateVisibility.LOCKED: "locked_section_shown",
}


def decide(feature_key: str, access: AccessStatus) -> GateDecision:
    """How ``feature_key`` renders for a user with ``access``."""
    try:
        policy = FEATURE_POLICIES[feature_key]
    except KeyError:
        raise UnknownFeatureError(feature_key) from None

    if access.has_full_access:
        visible = GateVisibility.FULL
    else:
        visible = _FREE_VISIBILITY[policy]
    return GateDecision(feature=feature_key, visible=visible)


def feature_key_for_step(step: RecoveryStep) -> str:
    return f"recovery_plan_{TimeOfDay(step.time_of_day).value}"


class GateMount:
    """
    Gate decisions for one mounted screen.

    Impressions are latched per feature key for the lifetime of the mount:
    re-rendering the same section logs nothing new, a new mount starts fresh.
    """

    def __init__(self, access: AccessStatus, context_screen: str = "unknown"):
        self.access = access
        self.context_screen = context_screen
        self._logged: Dict[str, bool] = {}

    def render(self, feature_key: str) -> GateDecision:
        decision = decide(feature_key, self.access)
        event = IMPRESSION_EVENTS.get(decision.visible)
        if event is None or self._logged.get(feature_key):
            return decision

        self._logged[feature_key] = True
        analytics_logger.info(
            "%s feature=%s context=%s access=%s",
            event,
            feature_key,
            self.context_screen,
            self.access.tier.value,
        )
        return decision.model_copy(update={"log_impression": True})

    def render_all(self, feature_keys: List[str]) -> List[GateDecision]:
        return [self.render(key) for key in feature_keys]

    def impressions_logged(self, feature_key: Optional[str] = None) -> int:
        if feature_key is not None:
            return int(self._logged.get(feature_key, False))
        return sum(1 for logged in self._logged.values() if logged)
