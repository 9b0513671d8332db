"""Pydantic schemas for users and role management."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field

from archetypeos.core.schemas import CamelModel
from archetypeos.modules.users.models import UserRole


class UserCreate(CamelModel):
    email: EmailStr
    display_name: str = ""
    role: UserRole = UserRole.CANDIDATE
    archetype: Optional[str] = None
    supervisor_id: Optional[int] = None


class UserOut(CamelModel):
    id: int
    email: str
    display_name: str
    role: UserRole
    archetype: Optional[str] = None
    supervisor_id: Optional[int] = None
    created_at: Optional[datetime] = None


class UserAdminUpdate(CamelModel):
    role: Optional[UserRole] = None
    archetype: Optional[str] = Field(None, max_length=64)
    supervisor_id: Optional[int] = None


class CandidateDecisionRequest(CamelModel):
    decision: Literal["accept", "reject"]


class CandidateDecisionOut(CamelModel):
    success: bool = True
    decision: Literal["accept", "reject"]
    role: UserRole


__all__ = [
    "CandidateDecisionOut",
    "CandidateDecisionRequest",
    "UserAdminUpdate",
    "UserCreate",
    "UserOut",
]
