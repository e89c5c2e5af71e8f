"""Local cache row for a day's check-in."""

from sqlalchemy import Column, Integer, String, ForeignKey, JSON, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from shield.database import Base


class DailyCheckin(Base):
    """
    One serialized ``CheckIn`` document per user per day.

    The document is always replaced whole; columns outside ``payload`` are
    only for lookup.
    """

    __tablename__ = "daily_checkins"
    __table_args__ = (UniqueConstraint("user_id", "day_id", name="uq_daily_checkins_user_day"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    day_id = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD

    payload = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="checkins")

    def __repr__(self):
        return f"<DailyCheckin {self.user_id} {self.day_id}>"
