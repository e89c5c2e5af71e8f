"""Recovery plan rule engine.

Maps a check-in (level, symptoms, drinking flags) to a ``RecoveryPlan``.
Everything here is a static lookup: identical inputs always give identical
plans, down to step ids, ordering and copy.
"""

from typing import Dict, Iterable, Optional, Tuple

from shield.schemas import MicroAction, RecoveryPlan, RecoveryStep, RecoveryWindow
from shield.services.recovery_analysis_service import (
    get_key_symptom_labels,
    get_recovery_timeline,
)
from shield.taxonomy import LEVEL_LABELS, Severity, Symptom, TimeOfDay, parse_symptoms

HYDRATION_GOAL_LITERS = {
    Severity.SEVERE: 2.0,
    Severity.MODERATE: 1.5,
    Severity.MILD: 1.2,
    Severity.NONE: 1.0,
}

DEFAULT_SYMPTOM_LABELS = ["Feeling okay"]


# ============== Micro-actions ==============

MICRO_ACTIONS: Dict[str, MicroAction] = {
    "water_reminder": MicroAction(
        title="Set a water reminder",
        body="1 glass before your first drink.",
        seconds=30,
    ),
    "full_glass": MicroAction(
        title="Drink a full glass of water now",
        body="Headaches worsen with dehydration.",
        seconds=30,
    ),
    "salted_sips": MicroAction(
        title="Small sips of water + a pinch of salt",
        body="Gentle rehydration helps nausea.",
        seconds=30,
    ),
    "half_liter": MicroAction(
        title="Drink 500ml of water",
        body="Early hydration supports recovery.",
        seconds=30,
    ),
    "slow_hydration": MicroAction(
        title="Start with slow hydration",
        body="Your body needs steady rehydration.",
        seconds=30,
    ),
    "hydrate_upright": MicroAction(
        title="Start with slow hydration + sit upright for 2 minutes",
        body="Your nervous system needs calm first.",
        seconds=60,
    ),
    "log_water": MicroAction(
        title="Log water once today",
        body="It keeps recovery easy if you go out later.",
        seconds=30,
    ),
}

# First matching symptom wins. Mild checks headache before nausea while
# moderate checks nausea before headache; keep this asymmetry until product
# confirms which order is intended.
MICRO_ACTION_PRIORITY: Dict[Severity, Tuple[Tuple[Symptom, str], ...]] = {
    Severity.MILD: (
        (Symptom.HEADACHE, "full_glass"),
        (Symptom.NAUSEA, "salted_sips"),
    ),
    Severity.MODERATE: (
        (Symptom.NAUSEA, "salted_sips"),
        (Symptom.HEADACHE, "full_glass"),
    ),
    Severity.SEVERE: (),
    Severity.NONE: (),
}

MICRO_ACTION_FALLBACK = {
    Severity.MILD: "half_liter",
    Severity.MODERATE: "slow_hydration",
    Severity.SEVERE: "hydrate_upright",
    Severity.NONE: "log_water",
}


# ============== Recovery steps ==============

STEP_CATALOGUE: Dict[str, RecoveryStep] = {
    "morning-1": RecoveryStep(
        id="morning-1",
        time_of_day=TimeOfDay.MORNING,
        display_time="6:00 AM",
        title="Soft light & breathing",
        description=(
            "Gentle light exposure and slow breathing help calm the nervous system "
            "and reduce early morning hangover stress."
        ),
        duration_minutes=2,
        icon="sunny-outline",
    ),
    "morning-2": RecoveryStep(
        id="morning-2",
        time_of_day=TimeOfDay.MORNING,
        display_time="8:00 AM",
        title="Water + electrolytes",
        description="Rehydrate early to support liver detox and reduce symptoms.",
        duration_minutes=1,
        icon="water-outline",
    ),
    "morning-3": RecoveryStep(
        id="morning-3",
        time_of_day=TimeOfDay.MORNING,
        display_time="9:00 AM",
        title="Light breakfast",
        description=(
            "Easy-to-digest foods stabilize blood sugar and ease nausea "
            "(toast, banana, eggs)."
        ),
        duration_minutes=15,
        icon="cafe-outline",
    ),
    "midday-1": RecoveryStep(
        id="midday-1",
        time_of_day=TimeOfDay.MIDDAY,
        display_time="11:00 AM",
        title="Short walk & check-in",
        description="Light movement boosts circulation and improves cognitive clarity.",
        duration_minutes=15,
        icon="walk-outline",
    ),
    "afternoon-1": RecoveryStep(
        id="afternoon-1",
        time_of_day=TimeOfDay.AFTERNOON,
        display_time="2:00 PM",
        title="Light meal + rest",
        description="Refuel gently; avoid heavy or greasy foods.",
        duration_minutes=20,
        icon="restaurant-outline",
    ),
}

NAP_STEP_ID = "midday-nap"

# Same id in both variants so completion state survives a variant switch
NAP_VARIANTS: Dict[bool, RecoveryStep] = {
    True: RecoveryStep(
        id=NAP_STEP_ID,
        time_of_day=TimeOfDay.MIDDAY,
        display_time="1:00 PM",
        title="Restorative power nap",
        description="Your sleep was disrupted; a short nap helps your body catch up.",
        duration_minutes=25,
        icon="moon-outline",
    ),
    False: RecoveryStep(
        id=NAP_STEP_ID,
        time_of_day=TimeOfDay.MIDDAY,
        display_time="11:30 AM",
        title="Power nap",
        description="Short rest helps reset your nervous system and reduce brain fog.",
        duration_minutes=15,
        icon="moon-outline",
    ),
}

_WITH_NAP = ("morning-1", "morning-2", "morning-3", "midday-1", NAP_STEP_ID, "afternoon-1")

# (level, has_poor_sleep) -> ordered step ids. The nap always sits after the
# walk and before the afternoon meal.
STEP_TABLE: Dict[Tuple[Severity, bool], Tuple[str, ...]] = {
    (Severity.SEVERE, False): _WITH_NAP,
    (Severity.SEVERE, True): _WITH_NAP,
    (Severity.MODERATE, False): _WITH_NAP,
    (Severity.MODERATE, True): _WITH_NAP,
    (Severity.MILD, False): ("morning-1", "morning-2", "morning-3", "midday-1", "afternoon-1"),
    (Severity.MILD, True): _WITH_NAP,
    (Severity.NONE, False): ("morning-1", "morning-2", "morning-3", "midday-1"),
    (Severity.NONE, True): ("morning-1", "morning-2", "morning-3", NAP_STEP_ID),
}


def select_micro_action(
    level: Severity,
    symptoms: Iterable[Symptom],
    drinking_today: Optional[bool] = None,
) -> MicroAction:
    """Pick the single first action; plans to drink today override everything."""
    if drinking_today is True:
        return MICRO_ACTIONS["water_reminder"]

    present = set(symptoms)
    for symptom, action_key in MICRO_ACTION_PRIORITY[level]:
        if symptom in present:
            return MICRO_ACTIONS[action_key]
    return MICRO_ACTIONS[MICRO_ACTION_FALLBACK[level]]


def select_steps(level: Severity, symptoms: Iterable[Symptom]) -> list:
    has_poor_sleep = Symptom.POOR_SLEEP in set(symptoms)
    steps = []
    for step_id in STEP_TABLE[(level, has_poor_sleep)]:
        if step_id == NAP_STEP_ID:
            steps.append(NAP_VARIANTS[has_poor_sleep])
        else:
            steps.append(STEP_CATALOGUE[step_id])
    return steps


def generate_plan(
    level: Severity,
    symptoms: Iterable = (),
    drank_last_night: Optional[bool] = None,
    drinking_today: Optional[bool] = None,
) -> RecoveryPlan:
    """
    Build the recovery plan for a check-in.

    Args:
        level: severity; anything outside the vocabulary raises ValueError.
        symptoms: symptom tags; unknown tags are ignored.
        drank_last_night: accepted for parity with the check-in form, it does
            not change the plan.
        drinking_today: when True the micro-action becomes a water reminder.

    Returns:
        A fresh, immutable RecoveryPlan.
    """
    level = Severity(level)
    parsed = parse_symptoms(symptoms)

    min_hours, max_hours = get_recovery_timeline(level, parsed)
    symptom_labels = get_key_symptom_labels(parsed) or list(DEFAULT_SYMPTOM_LABELS)

    return RecoveryPlan(
        recovery_window=RecoveryWindow(min=min_hours, max=max_hours),
        recovery_window_label=f"{min_hours}–{max_hours} hours",
        hydration_goal_liters=HYDRATION_GOAL_LITERS[level],
        micro_action=select_micro_action(level, parsed, drinking_today),
        steps=select_steps(level, parsed),
        symptom_labels=symptom_labels,
        level_label=LEVEL_LABELS[level],
    )
