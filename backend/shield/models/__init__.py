"""Database models package."""

from shield.models.user import User
from shield.models.daily_checkin import DailyCheckin

__all__ = [
    "User",
    "DailyCheckin",
]
