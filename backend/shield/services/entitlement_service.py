"""Access tier computation.

The tier is derived on every read from three inputs and never stored:

1. an active subscription gives ``premium``;
2. otherwise an account younger than the welcome window gives ``welcome``;
3. otherwise ``free``.

The welcome grant decays on its own as ``now`` moves past the anchor, so
there is no expiry event to miss.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from shield.config import get_settings
from shield.schemas import AccessStatus, AccessTier

WELCOME_WINDOW = timedelta(hours=24)


def get_welcome_window() -> timedelta:
    return timedelta(hours=get_settings().welcome_window_hours)


def _aware(value: datetime) -> datetime:
    # Naive timestamps from the database are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_access_status(
    subscription_active: Optional[bool],
    account_first_seen_at: Optional[datetime],
    now: datetime,
    welcome_window: timedelta = WELCOME_WINDOW,
) -> AccessStatus:
    """Compute the access tier.

    Unknown subscription status (None) is treated as inactive, and a missing
    first-seen timestamp means no welcome grant.
    """
    welcome_expires_at = None
    remaining = timedelta(0)
    if account_first_seen_at is not None:
        welcome_expires_at = _aware(account_first_seen_at) + welcome_window
        remaining = max(timedelta(0), welcome_expires_at - _aware(now))

    if subscription_active is True:
        tier = AccessTier.PREMIUM
    elif remaining > timedelta(0):
        tier = AccessTier.WELCOME
    else:
        tier = AccessTier.FREE

    return AccessStatus(
        tier=tier,
        has_full_access=tier in (AccessTier.PREMIUM, AccessTier.WELCOME),
        welcome_expires_at=welcome_expires_at,
        welcome_remaining_seconds=int(remaining.total_seconds()),
    )


def format_time_remaining(seconds: int) -> str:
    """Countdown copy for the welcome banner, e.g. ``"5h 12m"``."""
    if seconds <= 0:
        return "Expired"

    hours, rest = divmod(int(seconds), 3600)
    minutes = rest // 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m"
    return "Less than 1m"
