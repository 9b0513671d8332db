"""Centralized API router registration.

Groups:
- Catalogue and learning: courses, tests, certificates/notifications, tracking.
- Oversight: supervisor views, grading, goals.
- Administration: users, candidate decisions, test definitions.
"""

from fastapi import APIRouter

from archetypeos.routers import (
    admin,
    certificates,
    courses,
    supervisor,
    tests,
    tracking,
    users,
)

api_router = APIRouter()

# Catalogue and learning
api_router.include_router(courses.router)
api_router.include_router(tests.router)
api_router.include_router(certificates.router)
api_router.include_router(tracking.router)
api_router.include_router(users.router)

# Oversight and administration
api_router.include_router(supervisor.router)
api_router.include_router(admin.router)

__all__ = ["api_router"]
