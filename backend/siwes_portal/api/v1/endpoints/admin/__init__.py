"""
Admin-only endpoints mounted under /admin.
"""
from fastapi import APIRouter

from siwes_portal.api.v1.endpoints.admin import notifications, users_csv

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

admin_router.include_router(users_csv.router, prefix="/users", tags=["Admin Users"])
admin_router.include_router(notifications.router, prefix="/notifications", tags=["Admin Notifications"])
