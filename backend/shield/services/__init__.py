"""Services package."""

from shield.services.auth_service import AuthService
from shield.services.checkin_store import CheckInStore, merge_checkins
from shield.services.plan_generator_service import generate_plan
from shield.services.purchase_service import PurchaseService
from shield.services.storage import SqlCheckInCache, build_remote_store

__all__ = [
    "AuthService",
    "CheckInStore",
    "merge_checkins",
    "generate_plan",
    "PurchaseService",
    "SqlCheckInCache",
    "build_remote_store",
]
