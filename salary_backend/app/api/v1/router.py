"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from salary_backend.app.api.v1.endpoints import (
    auth, public_salary, admin, admin_salaries, admin_commission
)

router = APIRouter()

# Authentication
router.include_router(auth.router)

# Public salary form
router.include_router(public_salary.router)

# Admin: users and audit trail
router.include_router(admin.router)

# Admin: salary table, edits and history
router.include_router(admin_salaries.router)

# Admin: default commission
router.include_router(admin_commission.router)
