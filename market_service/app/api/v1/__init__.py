from fastapi import APIRouter

from .auth import router as auth_router
from .items import router as items_router

api_router = APIRouter()
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(items_router, prefix="/items", tags=["items"])
