# app/api/v1/router.py
from fastapi import APIRouter
from app.api.v1.auth import router as auth_router
from app.modules.organization import organization_router
from app.modules.users import users_router
from app.config.settings import settings

# Main router for API v1
api_router = APIRouter()

# ==================== ROUTES ====================

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(
    organization_router,
    prefix="/organization",
    tags=["Organization"]
)

api_router.include_router(
    users_router,
    prefix="/users",
    tags=["Users"]
)

# ==================== ROOT ====================

@api_router.get("/")
async def api_root():
    """API v1 root"""
    return {
        "message": f"{settings.app_name} v1",
        "version": settings.version,
        "status": "active",
        "docs": "/docs",
        "available_endpoints": {
            "authentication": "/api/v1/auth",
            "organization": "/api/v1/organization",
            "users": "/api/v1/users"
        }
    }
