"""Recovery analysis lookup: hours range, symptom labels and daily guidance."""

from typing import Iterable, List, Tuple

from shield.schemas import RecoveryAnalysis, RecoveryWindow
from shield.taxonomy import SEVERITY_LABELS, SYMPTOM_LABELS, Severity, Symptom, parse_symptoms, real_symptoms

HEADER_TITLE = "Here's what your body is experiencing today"

# Most impactful first; decides the order of symptom pills
SYMPTOM_PRIORITY = [
    Symptom.POOR_SLEEP,
    Symptom.FATIGUE,
    Symptom.NAUSEA,
    Symptom.HEADACHE,
    Symptom.ANXIETY,
    Symptom.BRAIN_FOG,
    Symptom.DIZZINESS,
    Symptom.DRY_MOUTH,
]

BASE_HOURS = {
    Severity.SEVERE: (24, 36),
    Severity.MODERATE: (14, 28),
    Severity.MILD: (6, 12),
}
NONE_QUIET_HOURS = (0, 4)
NONE_SYMPTOMATIC_HOURS = (4, 14)

ANALYSIS_TITLES = {
    Severity.SEVERE: "Your body is dealing with a heavy hangover.",
    Severity.MODERATE: "Your body is in full recovery mode.",
    Severity.MILD: "Your body is showing mild hangover signs and needs support.",
    Severity.NONE: "You're not hungover, but your body is still recalibrating.",
}

SUMMARY_BODIES = {
    Severity.SEVERE: (
        "Significant dehydration, nervous system overload and digestive strain "
        "are making today feel especially rough."
    ),
    Severity.MODERATE: (
        "Low energy, disrupted sleep and digestive stress indicate your nervous "
        "system is working hard to restore balance."
    ),
    Severity.MILD: (
        "You're experiencing a light recovery state. Mild dehydration and slight "
        "nervous system stress are present, but your body is already moving back "
        "to balance."
    ),
}
NONE_QUIET_BODY = (
    "You're not showing strong hangover symptoms right now. This is a good moment "
    "to reinforce healthy hydration, sleep and drinking habits so your future "
    "mornings stay this way."
)
NONE_RECALIBRATING_BODY = (
    "Even without strong hangover symptoms, your body is finishing the recovery "
    "process from your last drinks and your recent sleep."
)

STOMACH_SENTENCE = (
    " Your stomach and inner ear are still sensitive, so move slowly and choose "
    "very gentle foods."
)
SLEEP_SENTENCE = (
    " Because your sleep was disrupted, your nervous system will benefit from small "
    "breaks and possibly a short nap."
)
OVERSTIMULATED_SENTENCE = (
    " Anxiety and brain fog are signs that your nervous system is overstimulated and "
    "needs calm, slow breathing and low stimulation."
)
REASSURANCE_SENTENCE = (
    " This is completely normal and your body knows how to recover, it just needs "
    "the right support today."
)

HYDRATION_TIP = "Hydration: Aim for around 1–1.5 L of water today, ideally with electrolytes."
MAX_RECOMMENDATIONS = 4


def get_key_symptom_labels(symptoms: Iterable) -> List[str]:
    """Labels of the real symptoms, ordered by impact."""
    present = set(real_symptoms(parse_symptoms(symptoms)))
    return [SYMPTOM_LABELS[s] for s in SYMPTOM_PRIORITY if s in present]


def get_recovery_timeline(level: Severity, symptoms: Iterable) -> Tuple[int, int]:
    """Estimated recovery window in hours as ``(min, max)``."""
    level = Severity(level)
    present = set(real_symptoms(parse_symptoms(symptoms)))

    if level is Severity.NONE:
        min_hours, max_hours = NONE_SYMPTOMATIC_HOURS if present else NONE_QUIET_HOURS
    else:
        min_hours, max_hours = BASE_HOURS[level]

    # Severe windows and symptom-free days are not adjusted
    if level is Severity.SEVERE or not present:
        return min_hours, max_hours

    if Symptom.POOR_SLEEP in present:
        min_hours += 2
        max_hours += 4
    if Symptom.FATIGUE in present:
        max_hours += 2
    if present & {Symptom.NAUSEA, Symptom.DIZZINESS}:
        max_hours += 2
    if present & {Symptom.ANXIETY, Symptom.BRAIN_FOG}:
        max_hours += 2

    return min_hours, max_hours


def get_daily_recommendations(level: Severity, symptoms: Iterable) -> List[str]:
    level = Severity(level)
    present = set(real_symptoms(parse_symptoms(symptoms)))
    tired = bool(present & {Symptom.POOR_SLEEP, Symptom.FATIGUE})
    queasy = bool(present & {Symptom.NAUSEA, Symptom.DIZZINESS})
    overstimulated = bool(present & {Symptom.ANXIETY, Symptom.BRAIN_FOG})

    tips: List[str] = []
    if level is Severity.SEVERE:
        tips += [
            HYDRATION_TIP,
            "Avoid caffeine 60–90 mins: Give your body time to rehydrate before any stimulants.",
            "Full rest: Prioritize rest, consistent hydration, and avoid any additional stress on your body.",
            "Light meals: Choose light, easy-to-digest foods and avoid heavy, greasy meals.",
        ]
    elif level is Severity.MODERATE:
        tips.append(HYDRATION_TIP)
        if tired:
            tips.append("Short breaks: Try to include short breaks and, if possible, a 20–30 minute nap.")
        if queasy:
            tips.append(
                "Light nutrition: Choose light, easy-to-digest foods and avoid heavy, "
                "greasy meals this morning."
            )
        else:
            tips.append("Light nutrition: Choose light, easy-to-digest foods to support recovery.")
        tips.append(
            "Avoid caffeine early in the day: Wait 60–90 minutes before any caffeine "
            "to give your body time to rehydrate."
        )
    elif level is Severity.MILD:
        tips += [
            HYDRATION_TIP,
            "Light stretching: Gentle movement can help your body recover.",
            "Balanced breakfast: Choose light, easy-to-digest foods to support recovery.",
            "Avoid heavy exertion: Keep physical activity light today.",
        ]
    elif present:
        tips.append("Hydration: Keep a steady intake of water today to maintain your current state.")
        if tired:
            tips.append(
                "Short naps: If possible, include a 20–30 minute nap to help your nervous system reset."
            )
        if overstimulated:
            tips.append(
                "Nervous system calming: Do a 2-minute guided breathing session or take short breaks."
            )
        else:
            tips.append("Nervous system calming: Take short breaks to help your body recalibrate.")
    else:
        tips += [
            "Maintain hydration: Keep a steady intake of water today to maintain your current state.",
            "Keep habits consistent: Use today to notice what helped you feel better and repeat those behaviors.",
            "Optional: quick breathing reset: A 2-minute breathing session can help maintain balance.",
        ]

    return tips[:MAX_RECOMMENDATIONS]


def get_recovery_analysis(level: Severity, symptoms: Iterable) -> RecoveryAnalysis:
    """Full analysis card for the check-in result screen."""
    level = Severity(level)
    parsed = parse_symptoms(symptoms)
    present = set(real_symptoms(parsed))
    explicitly_fine = Symptom.NO_SYMPTOMS in parsed

    if level is Severity.NONE:
        feeling_label = "Not hungover today"
        summary_body = NONE_QUIET_BODY if explicitly_fine and not present else NONE_RECALIBRATING_BODY
    else:
        feeling_label = SEVERITY_LABELS[level]
        summary_body = SUMMARY_BODIES[level]

    if level is not Severity.NONE or present:
        if present & {Symptom.NAUSEA, Symptom.DIZZINESS}:
            summary_body += STOMACH_SENTENCE
        if Symptom.POOR_SLEEP in present:
            summary_body += SLEEP_SENTENCE
        if present & {Symptom.ANXIETY, Symptom.BRAIN_FOG}:
            summary_body += OVERSTIMULATED_SENTENCE
        summary_body += REASSURANCE_SENTENCE

    # "Not hungover" is only tagged when the user said so explicitly
    if level is Severity.NONE and not explicitly_fine:
        feeling_label = ""

    min_hours, max_hours = get_recovery_timeline(level, parsed)
    return RecoveryAnalysis(
        header_title=HEADER_TITLE,
        summary_title=ANALYSIS_TITLES[level],
        summary_body=summary_body,
        feeling_label=feeling_label,
        key_symptom_labels=get_key_symptom_labels(parsed),
        estimated_recovery_hours_range=RecoveryWindow(min=min_hours, max=max_hours),
        recommendations=get_daily_recommendations(level, parsed),
    )
