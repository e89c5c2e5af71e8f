"""RevenueCat subscription lookup."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.orm import Session

from shield.config import get_settings
from shield.dates import utcnow
from shield.models import User
from shield.schemas import PurchaseResult

logger = logging.getLogger(__name__)


class PurchaseServiceError(Exception):
    """The purchase provider could not be reached or answered nonsense."""


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PurchaseService:
    """Service for the purchase-management provider (RevenueCat)."""

    BASE_URL = "https://api.revenuecat.com/v1"

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def subscription_active(self, user: User, now: Optional[datetime] = None) -> bool:
        """
        Last known subscription state for ``user``.

        An expiry in the past reads as inactive even if the stored flag was
        never refreshed.
        """
        if not user.subscription_active:
            return False
        if user.subscription_expires_at is None:
            return True
        return _as_utc(user.subscription_expires_at) > _as_utc(now or utcnow())

    async def fetch_subscriber(self, app_user_id: str) -> Dict[str, Any]:
        """Fetch the RevenueCat subscriber document."""
        if not self.settings.revenuecat_api_key:
            raise PurchaseServiceError("Purchases are not configured")

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(
                    f"{self.BASE_URL}/subscribers/{app_user_id}",
                    headers={"Authorization": f"Bearer {self.settings.revenuecat_api_key}"},
                )
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PurchaseServiceError(str(e)) from e

    def _entitlement_expiry(self, subscriber: Dict[str, Any]):
        """(active, expires_at) for the configured entitlement."""
        entitlements = subscriber.get("subscriber", {}).get("entitlements", {})
        entitlement = entitlements.get(self.settings.revenuecat_entitlement_id)
        if entitlement is None:
            return False, None

        expires_at = _parse_timestamp(entitlement.get("expires_date"))
        if expires_at is None:
            # Lifetime purchase
            return True, None
        return expires_at > utcnow(), expires_at

    async def refresh(self, user: User) -> PurchaseResult:
        """
        Re-read the subscription from the provider and store it on the user.

        Used for both restore and post-purchase sync. Failures come back as
        an unsuccessful result with a support contact; the stored state is
        left as it was.
        """
        try:
            subscriber = await self.fetch_subscriber(str(user.id))
            active, expires_at = self._entitlement_expiry(subscriber)
        except PurchaseServiceError as e:
            logger.warning("Subscription refresh failed for user %s: %s", user.id, e)
            return PurchaseResult(
                success=False,
                subscription_active=self.subscription_active(user),
                error="We couldn't reach the store. Please try again.",
                can_retry=True,
                support_contact=self.settings.support_email,
            )

        user.subscription_active = active
        user.subscription_expires_at = expires_at.replace(tzinfo=None) if expires_at else None
        user.subscription_checked_at = datetime.utcnow()
        self.db.commit()

        logger.info("Subscription for user %s refreshed: active=%s", user.id, active)
        return PurchaseResult(success=True, subscription_active=active)
