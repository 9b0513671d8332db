"""Role-based authorization gate.

Every mutating operation and every cross-user read goes through `authorize`.
The matrix below is keyed by role and then by operation; an operation missing
from a role's table is denied.

"Oversight" means the subject user's `supervisor_id` is the actor's id.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from archetypeos.core.exceptions import PermissionDeniedException
from archetypeos.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class Operation(str, enum.Enum):
    ENROLL_SELF = "enroll_self"
    TAKE_TEST = "take_test"
    READ_DATA = "read_data"
    GRADE_ATTEMPT = "grade_attempt"
    ASSIGN_COURSE = "assign_course"
    MANAGE_ENROLLMENT = "manage_enrollment"
    MANAGE_CATALOG = "manage_catalog"
    SET_ROLE = "set_role"
    DECIDE_CANDIDATE = "decide_candidate"
    SET_WEEKLY_GOAL = "set_weekly_goal"
    MANAGE_USERS = "manage_users"


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class AccessTarget:
    """What the actor is acting on.

    `user` is the subject (attempt owner, learner, enrollment owner); None means
    the actor acts on their own data. `enrolled` and `assigned` describe the
    subject's enrollment in the course involved, when there is one.
    """

    user: Optional[User] = None
    enrolled: bool = False
    assigned: bool = False


Rule = Callable[[User, AccessTarget], bool]


def is_self(actor: User, target: AccessTarget) -> bool:
    return target.user is None or target.user.id == actor.id


def supervises(actor: User, subject: Optional[User]) -> bool:
    return (
        subject is not None
        and subject.supervisor_id is not None
        and subject.supervisor_id == actor.id
    )


def _oversees(actor: User, target: AccessTarget) -> bool:
    return supervises(actor, target.user)


def _self_or_oversees(actor: User, target: AccessTarget) -> bool:
    return is_self(actor, target) or supervises(actor, target.user)


def _own_and_enrolled(actor: User, target: AccessTarget) -> bool:
    return is_self(actor, target) and target.enrolled


def _always(actor: User, target: AccessTarget) -> bool:
    return True


_MATRIX: Dict[UserRole, Dict[Operation, Rule]] = {
    UserRole.CANDIDATE: {
        Operation.ENROLL_SELF: lambda actor, target: target.assigned,
        Operation.TAKE_TEST: _own_and_enrolled,
        Operation.READ_DATA: is_self,
    },
    UserRole.LEARNER: {
        Operation.ENROLL_SELF: _always,
        Operation.TAKE_TEST: _own_and_enrolled,
        Operation.READ_DATA: is_self,
    },
    UserRole.SUPERVISOR: {
        Operation.TAKE_TEST: _self_or_oversees,
        Operation.READ_DATA: _self_or_oversees,
        Operation.GRADE_ATTEMPT: _oversees,
        Operation.ASSIGN_COURSE: _oversees,
        Operation.MANAGE_ENROLLMENT: _oversees,
        Operation.DECIDE_CANDIDATE: _oversees,
        Operation.SET_WEEKLY_GOAL: _oversees,
    },
    UserRole.ADMIN: {
        Operation.TAKE_TEST: _always,
        Operation.READ_DATA: _always,
        Operation.GRADE_ATTEMPT: _always,
        Operation.ASSIGN_COURSE: _always,
        Operation.MANAGE_ENROLLMENT: _always,
        Operation.MANAGE_CATALOG: _always,
        Operation.SET_ROLE: _always,
        Operation.DECIDE_CANDIDATE: _always,
        Operation.SET_WEEKLY_GOAL: _always,
        Operation.MANAGE_USERS: _always,
    },
}


def authorize(
    actor: User, op: Operation, target: AccessTarget = AccessTarget()
) -> Decision:
    """Return ALLOW or DENY for `actor` performing `op` on `target`."""
    role = UserRole.parse(actor.role)
    rule = _MATRIX[role].get(op)
    if rule is not None and rule(actor, target):
        return Decision.ALLOW
    return Decision.DENY


def require(
    actor: User,
    op: Operation,
    target: AccessTarget = AccessTarget(),
    message: Optional[str] = None,
) -> None:
    """Raise PermissionDeniedException unless `authorize` allows the operation."""
    if authorize(actor, op, target) is Decision.ALLOW:
        return
    logger.info(
        f"Denied {op.value} for user {actor.id}",
        extra={"user_id": actor.id, "operation": op.value},
    )
    raise PermissionDeniedException(
        message or "You don't have permission to perform this action",
        details={"operation": op.value},
    )


__all__ = [
    "AccessTarget",
    "Decision",
    "Operation",
    "authorize",
    "require",
    "is_self",
    "supervises",
]
