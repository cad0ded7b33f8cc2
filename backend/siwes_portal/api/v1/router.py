from fastapi import APIRouter
from siwes_portal.api.v1.endpoints import (
    attendance,
    auth,
    industry_supervisors,
    itf_forms,
    logbook_review,
    notifications,
    students,
    supervisors,
    users,
)
from siwes_portal.api.v1.endpoints.admin import admin_router

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(logbook_review.router, prefix="/logbook", tags=["Logbook Review"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["Attendance"])
api_router.include_router(supervisors.router, prefix="/supervisors", tags=["Supervisors"])
api_router.include_router(industry_supervisors.router, prefix="/industry-supervisors", tags=["Industry Supervisors"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(itf_forms.router, prefix="/itf-forms", tags=["ITF Forms"])

# Admin routes (/admin/users/upload-csv, /admin/notifications)
api_router.include_router(admin_router)
