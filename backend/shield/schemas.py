"""Pydantic schemas for domain records and API request/response validation."""

from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict
from datetime import datetime

from shield.taxonomy import CheckInSource, Severity, Symptom, TimeOfDay


class CamelModel(BaseModel):
    """Base for records shared with the mobile app and the remote mirror."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ============== Recovery Plan Schemas ==============

class RecoveryWindow(CamelModel):
    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _ordered(self):
        if self.min > self.max:
            raise ValueError("recovery window min must not exceed max")
        return self


class MicroAction(CamelModel):
    title: str
    body: str
    seconds: int

    class Config:
        frozen = True


class RecoveryStep(CamelModel):
    id: str
    time_of_day: TimeOfDay
    display_time: str
    title: str
    description: str
    duration_minutes: int
    icon: str
    completed: bool = False

    class Config:
        frozen = True


class RecoveryPlan(CamelModel):
    recovery_window: RecoveryWindow
    recovery_window_label: str
    hydration_goal_liters: float
    micro_action: MicroAction
    steps: List[RecoveryStep]
    symptom_labels: List[str]
    level_label: str

    class Config:
        frozen = True


class RecoveryAnalysis(CamelModel):
    header_title: str
    summary_title: str
    summary_body: str
    feeling_label: str
    key_symptom_labels: List[str]
    estimated_recovery_hours_range: RecoveryWindow
    recommendations: List[str]


# ============== Check-in Schemas ==============

class WaterEntry(CamelModel):
    """One logged drink of water."""
    id: str
    amount_ml: int = Field(..., gt=0)
    timestamp: datetime
    note: Optional[str] = None

    class Config:
        frozen = True


class CheckInInput(CamelModel):
    """Raw answers from the check-in form."""
    level: Severity
    symptoms: List[Symptom] = []
    drank_last_night: Optional[bool] = None
    drinking_today: Optional[bool] = None
    source: CheckInSource = CheckInSource.DAILY_CHECKIN

    @field_validator("symptoms")
    @classmethod
    def _no_symptoms_is_exclusive(cls, value: List[Symptom]) -> List[Symptom]:
        if Symptom.NO_SYMPTOMS in value and len(set(value)) > 1:
            raise ValueError("noSymptoms cannot be combined with other symptoms")
        return value


class CheckIn(CamelModel):
    """
    The day's check-in: raw inputs, the plan generated from them and the
    live completion state.

    ``id`` is the day id, so there is at most one record per user per day.
    ``generated_plan`` never changes after creation; only ``steps_state``,
    ``completed_at``, ``shown_flags`` and the append-only ``water_entries``
    move.
    """
    id: str
    user_id: str
    level: Severity
    level_label: str
    symptoms: List[Symptom] = []
    drank_last_night: Optional[bool] = None
    drinking_today: Optional[bool] = None
    source: CheckInSource = CheckInSource.DAILY_CHECKIN
    created_at: datetime
    updated_at: Optional[datetime] = None
    generated_plan: RecoveryPlan
    completed_at: Optional[datetime] = None
    steps_completed: Optional[int] = None
    total_steps: Optional[int] = None
    steps_state: Dict[str, bool] = {}
    shown_flags: Dict[str, bool] = {}
    water_entries: List[WaterEntry] = []
    version: int = 1

    class Config:
        frozen = True

    @property
    def true_step_count(self) -> int:
        return sum(1 for done in self.steps_state.values() if done)


class PlanProgress(CamelModel):
    completed_count: int
    total_count: int
    next_incomplete_step_id: Optional[str] = None
    all_completed: bool
    plan_completed: bool
    percent: int


class CheckInResponse(CamelModel):
    checkin: CheckIn
    steps: List[RecoveryStep]
    progress: PlanProgress
    persisted: bool = True


class StepCompletionUpdate(CamelModel):
    completed: bool


class PlanCompletionRequest(CamelModel):
    steps_completed: Optional[int] = Field(None, ge=0)
    total_steps: Optional[int] = Field(None, ge=0)


class ShownFlagResponse(CamelModel):
    flag: str
    first_time: bool


class WaterEntryCreate(CamelModel):
    amount_ml: int = Field(..., gt=0, le=5000)
    note: Optional[str] = Field(None, max_length=200)


class HydrationProgress(CamelModel):
    day_id: str
    total_ml: int
    goal_ml: int
    remaining_ml: int
    percent: int
    milestone: str
    entries: List[WaterEntry]


class CheckInSummary(CamelModel):
    id: str
    level: Severity
    level_label: str
    symptoms: List[Symptom]
    plan_completed: bool
    completed_count: int
    total_count: int


class HabitStats(CamelModel):
    current_streak: int
    longest_streak: int
    monthly_check_ins: int
    last_check_in_date: Optional[str] = None


# ============== Access Schemas ==============

class AccessTier(str, Enum):
    FREE = "free"
    WELCOME = "welcome"
    PREMIUM = "premium"


class AccessStatus(CamelModel):
    """Derived on every read; never persisted."""
    tier: AccessTier
    has_full_access: bool
    welcome_expires_at: Optional[datetime] = None
    welcome_remaining_seconds: int = 0

    class Config:
        frozen = True


class AccessStatusResponse(AccessStatus):
    welcome_remaining_label: str


class GateVisibility(str, Enum):
    FULL = "full"
    SOFT = "soft"
    LOCKED = "locked"


class GateDecision(CamelModel):
    feature: str
    visible: GateVisibility
    log_impression: bool = False


class GateRequest(CamelModel):
    features: List[str] = Field(..., min_length=1)
    context_screen: str = "unknown"


class PurchaseResult(CamelModel):
    success: bool
    subscription_active: bool = False
    error: Optional[str] = None
    can_retry: bool = False
    support_contact: Optional[str] = None


# ============== User Schemas ==============

class UserResponse(CamelModel):
    id: int
    email: Optional[str] = None
    name: Optional[str] = None
    timezone: str
    created_at: datetime
    subscription_active: bool
    is_active: bool

    class Config:
        from_attributes = True
