from shield.services.recovery_analysis_service import (
    MAX_RECOMMENDATIONS,
    get_daily_recommendations,
    get_key_symptom_labels,
    get_recovery_analysis,
    get_recovery_timeline,
)
from shield.taxonomy import Severity, Symptom


class TestRecoveryTimeline:
    def test_base_windows(self) -> None:
        assert get_recovery_timeline(Severity.SEVERE, []) == (24, 36)
        assert get_recovery_timeline(Severity.MODERATE, []) == (14, 28)
        assert get_recovery_timeline(Severity.MILD, []) == (6, 12)

    def test_not_hungover_windows(self) -> None:
        assert get_recovery_timeline(Severity.NONE, []) == (0, 4)
        assert get_recovery_timeline(Severity.NONE, [Symptom.NO_SYMPTOMS]) == (0, 4)
        assert get_recovery_timeline(Severity.NONE, [Symptom.FATIGUE]) == (4, 16)

    def test_symptom_adjustments_stack(self) -> None:
        symptoms = [Symptom.POOR_SLEEP, Symptom.FATIGUE, Symptom.DIZZINESS, Symptom.BRAIN_FOG]
        assert get_recovery_timeline(Severity.MILD, symptoms) == (8, 22)

    def test_severe_is_not_adjusted(self) -> None:
        assert get_recovery_timeline(Severity.SEVERE, [Symptom.POOR_SLEEP, Symptom.NAUSEA]) == (24, 36)

    def test_min_never_exceeds_max(self) -> None:
        for level in Severity:
            for symptom in Symptom:
                low, high = get_recovery_timeline(level, [symptom])
                assert 0 <= low <= high


class TestLabels:
    def test_labels_follow_impact_order(self) -> None:
        labels = get_key_symptom_labels([Symptom.DRY_MOUTH, Symptom.HEADACHE, Symptom.POOR_SLEEP])
        assert labels == ["Poor sleep", "Headache", "Dry mouth"]

    def test_no_symptoms_marker_has_no_label(self) -> None:
        assert get_key_symptom_labels([Symptom.NO_SYMPTOMS]) == []


class TestRecommendations:
    def test_capped(self) -> None:
        for level in Severity:
            tips = get_daily_recommendations(level, list(Symptom)[:-1])
            assert 1 <= len(tips) <= MAX_RECOMMENDATIONS

    def test_moderate_tired_gets_nap_tip(self) -> None:
        tips = get_daily_recommendations(Severity.MODERATE, [Symptom.POOR_SLEEP])
        assert any(tip.startswith("Short breaks") for tip in tips)


class TestAnalysis:
    def test_moderate_card(self) -> None:
        analysis = get_recovery_analysis(Severity.MODERATE, [Symptom.NAUSEA, Symptom.POOR_SLEEP])

        assert analysis.summary_title == "Your body is in full recovery mode."
        assert analysis.feeling_label == "Moderate hangover"
        assert "stomach" in analysis.summary_body
        assert "sleep was disrupted" in analysis.summary_body
        assert analysis.estimated_recovery_hours_range.min == 16
        assert analysis.estimated_recovery_hours_range.max == 34

    def test_not_hungover_label_only_when_explicit(self) -> None:
        explicit = get_recovery_analysis(Severity.NONE, [Symptom.NO_SYMPTOMS])
        implicit = get_recovery_analysis(Severity.NONE, [])

        assert explicit.feeling_label == "Not hungover today"
        assert implicit.feeling_label == ""
