from fastapi import APIRouter

from .auth import router as auth_router
from .catalog import router as catalog_router
from .films import router as films_router
from .health import router as health_router


api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(auth_router)
api_router.include_router(films_router)
api_router.include_router(catalog_router)

__all__ = ["api_router"]
