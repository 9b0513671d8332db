"""Append-only audit log.

One table backs every log (certificates, notifications, weekly goals, candidate
decisions). The partial unique index on certificate rows guarantees at most one
certificate per (user, course), which is what makes issuance idempotent.
"""

from __future__ import annotations

import enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from archetypeos.core.database import Base
from archetypeos.core.db_defaults import utcnow


class AuditAction(str, enum.Enum):
    CERTIFICATE = "certificate"
    NOTIFICATION = "notification"
    WEEKLY_GOAL = "weekly_goal"
    CANDIDATE_DECISION = "candidate_decision"


class AuditEvent(Base):
    """A single audit row. `user_id` is the user the event is about."""

    __tablename__ = "audit_log"
    __table_args__ = (
        Index(
            "uq_audit_log_certificate",
            "user_id",
            "action",
            "target_id",
            unique=True,
            sqlite_where=text("action = 'certificate'"),
            postgresql_where=text("action = 'certificate'"),
        ),
        Index("ix_audit_log_user_action", "user_id", "action"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(32), nullable=False)
    target_type = Column(String(32), nullable=False)
    target_id = Column(Integer, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    details = Column(JSON, nullable=False, default=dict)

    user = relationship("User", foreign_keys=[user_id])
    actor = relationship("User", foreign_keys=[actor_id])


__all__ = ["AuditAction", "AuditEvent"]
