"""API v1 router configuration.
"""

from fastapi import APIRouter

from .admin.channels import router as admin_channels_router
from .channels import router as channels_router

api_router = APIRouter()

api_router.include_router(channels_router, prefix="/channels", tags=["channels"])
api_router.include_router(admin_channels_router, prefix="/admin", tags=["admin"])
