"""Side effects of a passed attempt, applied inside the caller's transaction.

Order: complete the enrollment (which issues the course certificate), then
promote a candidate to learner. Every step is idempotent, so replaying it for
an already-completed course or an already-promoted user changes nothing.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from archetypeos.core.config import settings
from archetypeos.modules.assessments.models import Test
from archetypeos.modules.courses.service import EnrollmentService
from archetypeos.modules.users.models import User, UserRole
from archetypeos.modules.users.service import UserService

logger = logging.getLogger(__name__)


def apply_pass(
    db: Session,
    *,
    user: User,
    test: Test,
    actor_id: Optional[int],
    issued_via: str,
) -> None:
    EnrollmentService(db).complete(
        user.id, test.course_id, actor_id=actor_id, issued_via=issued_via
    )
    if settings.auto_promote_on_pass and UserRole.parse(user.role) is UserRole.CANDIDATE:
        UserService(db).promote_candidate(user)
    logger.info(
        f"Pass on test {test.id} applied for user {user.id}",
        extra={"user_id": user.id, "test_id": test.id},
    )


__all__ = ["apply_pass"]
