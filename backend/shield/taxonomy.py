"""Closed vocabularies for check-in severity, symptoms and plan time slots."""

from enum import Enum
from typing import Iterable, List


class Severity(str, Enum):
    """Self-reported hangover level, ordered by intensity."""

    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class Symptom(str, Enum):
    HEADACHE = "headache"
    NAUSEA = "nausea"
    DRY_MOUTH = "dryMouth"
    DIZZINESS = "dizziness"
    FATIGUE = "fatigue"
    ANXIETY = "anxiety"
    BRAIN_FOG = "brainFog"
    POOR_SLEEP = "poorSleep"
    NO_SYMPTOMS = "noSymptoms"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    MIDDAY = "midday"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class CheckInSource(str, Enum):
    """Entry point that first produced the day's check-in."""

    ONBOARDING = "onboarding"
    DAILY_CHECKIN = "daily_checkin"
    DEEP_LINK = "deep_link"
    OTHER = "other"


SYMPTOM_LABELS = {
    Symptom.HEADACHE: "Headache",
    Symptom.NAUSEA: "Nausea",
    Symptom.DRY_MOUTH: "Dry mouth",
    Symptom.DIZZINESS: "Dizziness",
    Symptom.FATIGUE: "Low energy",
    Symptom.ANXIETY: "Anxiety",
    Symptom.BRAIN_FOG: "Brain fog",
    Symptom.POOR_SLEEP: "Poor sleep",
    Symptom.NO_SYMPTOMS: "No symptoms",
}

# Labels shown on a generated plan
LEVEL_LABELS = {
    Severity.MILD: "Mild hangover",
    Severity.MODERATE: "Moderate hangover",
    Severity.SEVERE: "Severe hangover",
    Severity.NONE: "Not hungover",
}

# Labels stored on the check-in itself
SEVERITY_LABELS = {
    Severity.MILD: "Mild hangover",
    Severity.MODERATE: "Moderate hangover",
    Severity.SEVERE: "Severe hangover",
    Severity.NONE: "Not hungover today",
}


def parse_symptoms(values: Iterable) -> List[Symptom]:
    """Known symptoms from ``values`` in vocabulary order; unknown tags are dropped."""
    seen = set()
    for value in values or ():
        try:
            seen.add(Symptom(value))
        except ValueError:
            continue
    return [symptom for symptom in Symptom if symptom in seen]


def real_symptoms(symptoms: Iterable[Symptom]) -> List[Symptom]:
    """Symptoms other than the ``noSymptoms`` marker."""
    return [s for s in symptoms if s is not Symptom.NO_SYMPTOMS]
