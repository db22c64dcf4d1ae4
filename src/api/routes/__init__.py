from fastapi import APIRouter

from src.api.routes.admin import router as admin_router
from src.api.routes.ops import router as ops_router
from src.api.routes.proposals import router as proposals_router
from src.api.routes.user import router as user_router

api_router = APIRouter()
api_router.include_router(proposals_router, prefix="/proposals", tags=["proposals"])
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])
api_router.include_router(user_router, prefix="/user", tags=["user"])
api_router.include_router(ops_router, prefix="/ops", tags=["ops"])
