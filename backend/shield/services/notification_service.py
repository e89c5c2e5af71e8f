"""Hand-off point to the notification scheduler."""

import logging
from typing import Protocol

from shield.schemas import CheckIn

logger = logging.getLogger(__name__)


class NotificationScheduler(Protocol):
    def plan_ready(self, user_id: str, checkin: CheckIn) -> None:
        ...


class LoggingNotificationScheduler:
    """Default scheduler: records that a plan exists, schedules nothing."""

    def plan_ready(self, user_id: str, checkin: CheckIn) -> None:
        logger.info(
            "Plan ready for user %s on %s (%d steps)",
            user_id,
            checkin.id,
            len(checkin.generated_plan.steps),
        )
