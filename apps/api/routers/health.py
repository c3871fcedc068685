from fastapi import APIRouter, Depends

from top250.storage import CollectionStore

from ..dependencies import get_store


router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Simple readiness probe")
def read_health(store: CollectionStore = Depends(get_store)) -> dict[str, str]:
    return {
        "status": "ok",
        "storage": store.describe(),
    }
