"""SQLAlchemy models and enums for the users domain."""

from __future__ import annotations

import enum

from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from archetypeos.core.database import Base
from archetypeos.core.db_defaults import timestamp_default


class UserRole(str, enum.Enum):
    CANDIDATE = "candidate"
    LEARNER = "learner"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: "UserRole | str") -> "UserRole":
        """Accept enum members or role strings in any casing."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None

    @property
    def has_oversight(self) -> bool:
        return self in (UserRole.SUPERVISOR, UserRole.ADMIN)


class User(Base):
    """Platform user; the role drives every authorization decision."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, nullable=False)
    email = Column(String, nullable=False, unique=True)
    display_name = Column(String, nullable=False, default="")
    role = Column(
        SQLAlchemyEnum(
            UserRole,
            name="user_role_enum",
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
        default=UserRole.CANDIDATE,
    )
    archetype = Column(String, nullable=True)
    supervisor_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=timestamp_default()
    )

    supervisor = relationship("User", remote_side=[id], back_populates="supervisees")
    supervisees = relationship("User", back_populates="supervisor")
    enrollments = relationship(
        "CourseEnrollment",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    test_results = relationship(
        "TestResult",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="TestResult.user_id",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role.value if self.role else None}>"


__all__ = ["UserRole", "User"]
