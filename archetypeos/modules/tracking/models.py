"""Learning-time tracking models."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship

from archetypeos.core.database import Base
from archetypeos.core.db_defaults import utcnow


class LearningSession(Base):
    """A timed study session; `duration_minutes` is set when it ends."""

    __tablename__ = "learning_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id = Column(
        Integer, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True
    )
    start_time = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    user = relationship("User")
    course = relationship("Course")

    @property
    def is_open(self) -> bool:
        return self.end_time is None


__all__ = ["LearningSession"]
