"""Access tier, feature gates and purchase sync router."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from shield.database import get_db
from shield.dates import utcnow
from shield.models import User
from shield.routers.auth import get_current_user
from shield.schemas import (
    AccessStatus,
    AccessStatusResponse,
    GateDecision,
    GateRequest,
    PurchaseResult,
)
from shield.services.entitlement_service import (
    compute_access_status,
    format_time_remaining,
    get_welcome_window,
)
from shield.services.gating_service import GateMount, UnknownFeatureError
from shield.services.purchase_service import PurchaseService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/access", tags=["access"])


def current_access(user: User, db: Session) -> AccessStatus:
    """Access tier for ``user`` right now."""
    return compute_access_status(
        PurchaseService(db).subscription_active(user),
        user.created_at,
        utcnow(),
        welcome_window=get_welcome_window(),
    )


@router.get("", response_model=AccessStatusResponse)
def get_access(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Current tier with the welcome countdown."""
    access = current_access(user, db)
    return AccessStatusResponse(
        **access.model_dump(),
        welcome_remaining_label=format_time_remaining(access.welcome_remaining_seconds),
    )


@router.post("/gates", response_model=List[GateDecision])
def decide_gates(
    gate_request: GateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Gate decisions for one screen mount.

    Each call is a fresh mount: every soft or locked section in it logs its
    impression once.
    """
    mount = GateMount(current_access(user, db), context_screen=gate_request.context_screen)
    try:
        return mount.render_all(gate_request.features)
    except UnknownFeatureError as e:
        raise HTTPException(status_code=422, detail=f"Unknown feature: {e.args[0]}")


@router.post("/restore", response_model=PurchaseResult)
async def restore_purchases(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Restore purchases from the store account."""
    logger.info("Restore requested by user %s", user.id)
    return await PurchaseService(db).refresh(user)


@router.post("/sync", response_model=PurchaseResult)
async def sync_purchases(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Re-read the subscription after a purchase."""
    return await PurchaseService(db).refresh(user)
