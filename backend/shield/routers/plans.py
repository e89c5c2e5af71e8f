"""Stateless plan preview router."""

from fastapi import APIRouter

from shield.schemas import CheckInInput, RecoveryAnalysis, RecoveryPlan
from shield.services.plan_generator_service import generate_plan
from shield.services.recovery_analysis_service import get_recovery_analysis

router = APIRouter(prefix="/plans", tags=["plans"])


@router.post("/preview", response_model=RecoveryPlan)
def preview_plan(checkin_input: CheckInInput):
    """Generate a plan without storing anything."""
    return generate_plan(
        checkin_input.level,
        checkin_input.symptoms,
        checkin_input.drank_last_night,
        checkin_input.drinking_today,
    )


@router.post("/analysis", response_model=RecoveryAnalysis)
def recovery_analysis(checkin_input: CheckInInput):
    """Explanation card shown next to the plan."""
    return get_recovery_analysis(checkin_input.level, checkin_input.symptoms)
