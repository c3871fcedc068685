from __future__ import annotations

from fastapi import APIRouter, Depends

from top250.services import telemetry
from top250.services.films import CatalogFeed, RankedStore
from top250.services.managers import Principal

from ..auth import require_read
from ..dependencies import get_catalog_feed, get_ranked_store
from ..schemas import CatalogRefreshResponse


router = APIRouter(tags=["catalog"])


@router.get("/refresh-catalog", response_model=CatalogRefreshResponse, summary="Reload from upstream")
def refresh_catalog(
    principal: Principal = Depends(require_read),
    films: RankedStore = Depends(get_ranked_store),
    feed: CatalogFeed = Depends(get_catalog_feed),
) -> CatalogRefreshResponse:
    with telemetry.timed_operation("refresh_catalog"):
        count = films.refresh_from_external_catalog(feed, principal=principal)
    return CatalogRefreshResponse(message=f"Stored {count} films from the catalog.", count=count)
