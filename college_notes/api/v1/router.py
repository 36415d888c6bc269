from fastapi import APIRouter

from college_notes.api.v1.health import router as health_router
from college_notes.api.v1.auth import router as auth_router

from college_notes.api.v1.notes import router as notes_router
from college_notes.api.v1.delete_requests import router as delete_requests_router
from college_notes.api.v1.moderator_requests import router as moderator_requests_router
from college_notes.api.v1.notifications import router as notifications_router
from college_notes.api.v1.admin import router as admin_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(auth_router, tags=["auth"])

# ------------------------------------------------------------------
# NOTES / MODERATION
# ------------------------------------------------------------------
v1_router.include_router(notes_router, tags=["notes"])
v1_router.include_router(delete_requests_router, tags=["delete-requests"])
v1_router.include_router(moderator_requests_router, tags=["moderator-requests"])

# ------------------------------------------------------------------
# NOTIFICATIONS
# ------------------------------------------------------------------
v1_router.include_router(notifications_router, tags=["notifications"])

# ------------------------------------------------------------------
# ADMIN
# ------------------------------------------------------------------
v1_router.include_router(admin_router, tags=["admin"])
