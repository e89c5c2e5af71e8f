"""Daily check-ins API router."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional

from shield.config import get_settings
from shield.dates import day_id_for, parse_day_id, previous_day_id, utcnow
from shield.models import User
from shield.routers.auth import get_checkin_store, get_current_user
from shield.schemas import (
    CheckIn,
    CheckInInput,
    CheckInResponse,
    CheckInSummary,
    HabitStats,
    HydrationProgress,
    PlanCompletionRequest,
    ShownFlagResponse,
    StepCompletionUpdate,
    WaterEntryCreate,
)
from shield.services.checkin_store import (
    CheckInNotFoundError,
    CheckInStore,
    UnknownStepError,
    new_checkin,
)
from shield.services.habit_stats_service import compute_habit_stats
from shield.services.hydration_service import compute_hydration
from shield.services.progress_service import apply_steps_state, compute_progress
from shield.services.storage import LocalStorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkins", tags=["checkins"])
settings = get_settings()

# Lower bound for "all history" scans
HISTORY_START = "1970-01-01"


def today_id_for(user: User) -> str:
    return day_id_for(utcnow(), user.timezone or settings.default_timezone)


def _valid_day_id(day_id: str) -> str:
    try:
        parse_day_id(day_id)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid day id: {day_id}")
    return day_id


def _response(checkin: CheckIn, persisted: bool = True) -> CheckInResponse:
    return CheckInResponse(
        checkin=checkin,
        steps=apply_steps_state(checkin),
        progress=compute_progress(checkin),
        persisted=persisted,
    )


@router.post("/today", response_model=CheckInResponse)
async def create_today_checkin(
    checkin_input: CheckInInput,
    user: User = Depends(get_current_user),
    store: CheckInStore = Depends(get_checkin_store),
):
    """
    Get or create today's check-in.

    Submitting again on the same day returns the existing plan unchanged.
    If the device cache is unusable the plan is still returned, unsaved.
    """
    day_id = today_id_for(user)
    try:
        checkin = store.get_or_create_today(str(user.id), day_id, checkin_input)
    except LocalStorageError:
        logger.exception("Check-in for user %s on %s not saved", user.id, day_id)
        checkin = new_checkin(str(user.id), day_id, checkin_input, utcnow(), store.plan_factory)
        return _response(checkin, persisted=False)
    return _response(checkin)


@router.get("/today", response_model=CheckInResponse)
async def get_today_checkin(
    user: User = Depends(get_current_user),
    store: CheckInStore = Depends(get_checkin_store),
):
    """Today's check-in, reconciled with the remote copy."""
    checkin = await store.load_today(str(user.id), today_id_for(user))
    if checkin is None:
        raise HTTPException(status_code=404, detail="No plan found")
    return _response(checkin)


@router.get("/stats", response_model=HabitStats)
async def get_habit_stats(
    user: User = Depends(get_current_user),
    store: CheckInStore = Depends(get_checkin_store),
):
    """Check-in streaks and this month's count."""
    try:
        checkins = store.list_recent(str(user.id), HISTORY_START)
    except LocalStorageError:
        raise HTTPException(status_code=502, detail="Check-in history unavailable")
    return compute_habit_stats([c.id for c in checkins], today_id_for(user))


@router.get("/", response_model=List[CheckInSummary])
async def list_checkins(
    days: int = 14,
    user: User = Depends(get_current_user),
    store: CheckInStore = Depends(get_checkin_store),
):
    """List recent check-ins, newest first."""
    since = previous_day_id(today_id_for(user), days)
    try:
        checkins = store.list_recent(str(user.id), since)
    except LocalStorageError:
        raise HTTPException(status_code=502, detail="Check-in history unavailable")

    summaries = []
    for checkin in checkins:
        progress = compute_progress(checkin)
        summaries.append(
            CheckInSummary(
                id=checkin.id,
                level=checkin.level,
                level_label=checkin.level_label,
                symptoms=checkin.symptoms,
                plan_completed=progress.plan_completed,
                completed_count=progress.completed_count,
                total_count=progress.total_count,
            )
        )
    return summaries


@router.put("/{day_id}/steps/{step_id}", response_model=CheckInResponse)
async def update_step(
    day_id: str,
    step_id: str,
    update: StepCompletionUpdate,
    user: User = Depends(get_current_user),
    store: CheckInStore = Depends(get_checkin_store),
):
    """Tick or untick a plan step."""
    _valid_day_id(day_id)
    try:
        checkin = store.set_step_completion(str(user.id), day_id, step_id, update.completed)
    except CheckInNotFoundError:
        raise HTTPException(status_code=404, detail="No plan found")
    except UnknownStepError:
        raise HTTPException(status_code=422, detail=f"Unknown step: {step_id}")
    except LocalStorageError:
        logger.exception("Step %s for user %s on %s not saved", step_id, user.id, day_id)
        raise HTTPException(status_code=502, detail="Could not save progress")
    return _response(checkin)


@router.post("/{day_id}/complete", response_model=CheckInResponse)
async def complete_plan(
    day_id: str,
    completion: Optional[PlanCompletionRequest] = None,
    user: User = Depends(get_current_user),
    store: CheckInStore = Depends(get_checkin_store),
):
    """Mark the day's plan as done, whatever the step state."""
    _valid_day_id(day_id)
    completion = completion or PlanCompletionRequest()
    try:
        checkin = store.mark_plan_completed(
            str(user.id),
            day_id,
            steps_completed=completion.steps_completed,
            total_steps=completion.total_steps,
        )
    except CheckInNotFoundError:
        raise HTTPException(status_code=404, detail="No plan found")
    except LocalStorageError:
        logger.exception("Completion for user %s on %s not saved", user.id, day_id)
        raise HTTPException(status_code=502, detail="Could not save progress")
    return _response(checkin)


@router.post("/{day_id}/flags/{flag}", response_model=ShownFlagResponse)
async def mark_flag_shown(
    day_id: str,
    flag: str,
    user: User = Depends(get_current_user),
    store: CheckInStore = Depends(get_checkin_store),
):
    """Record that a once-per-day screen was shown; ``firstTime`` says whether to show it."""
    _valid_day_id(day_id)
    try:
        first_time = store.mark_shown_once(str(user.id), day_id, flag)
    except CheckInNotFoundError:
        raise HTTPException(status_code=404, detail="No plan found")
    except LocalStorageError:
        raise HTTPException(status_code=502, detail="Could not save progress")
    return ShownFlagResponse(flag=flag, first_time=first_time)


@router.get("/{day_id}/water", response_model=HydrationProgress)
async def get_water_log(
    day_id: str,
    user: User = Depends(get_current_user),
    store: CheckInStore = Depends(get_checkin_store),
):
    """Water logged for the day against the plan's hydration goal."""
    _valid_day_id(day_id)
    checkin = store.get_today(str(user.id), day_id)
    if checkin is None:
        raise HTTPException(status_code=404, detail="No plan found")
    return compute_hydration(checkin)


@router.post("/{day_id}/water", response_model=HydrationProgress)
async def log_water(
    day_id: str,
    entry: WaterEntryCreate,
    user: User = Depends(get_current_user),
    store: CheckInStore = Depends(get_checkin_store),
):
    """Log a drink of water."""
    _valid_day_id(day_id)
    try:
        checkin = store.add_water_entry(str(user.id), day_id, entry.amount_ml, note=entry.note)
    except CheckInNotFoundError:
        raise HTTPException(status_code=404, detail="No plan found")
    except LocalStorageError:
        logger.exception("Water entry for user %s on %s not saved", user.id, day_id)
        raise HTTPException(status_code=502, detail="Could not save progress")
    return compute_hydration(checkin)
