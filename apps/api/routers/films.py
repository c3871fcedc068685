from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from top250.errors import ValidationError
from top250.services.films import RankedStore
from top250.services.managers import Principal

from ..auth import require_read, require_write
from ..dependencies import get_ranked_store
from ..schemas import (
    FilmCreateRequest,
    FilmIdRequest,
    FilmItem,
    FilmUpdateRequest,
    MessageResponse,
)


router = APIRouter(prefix="/films", tags=["films"])


def _require_id(film_id: int | None) -> int:
    if film_id is None:
        raise ValidationError("id", "is required")
    return film_id


@router.get("", response_model=List[FilmItem], summary="Ranked film list")
def list_films(
    films: RankedStore = Depends(get_ranked_store),
    principal: Principal = Depends(require_read),
) -> list[FilmItem]:
    return [FilmItem.model_validate(film) for film in films.list_all(principal=principal)]


@router.get("/{film_id}", response_model=FilmItem, summary="Film by id")
def read_film(
    film_id: int,
    films: RankedStore = Depends(get_ranked_store),
    principal: Principal = Depends(require_read),
) -> FilmItem:
    return FilmItem.model_validate(films.get_by_id(film_id, principal=principal))


@router.post("/read", response_model=FilmItem, summary="Film by id in the request body")
def read_film_by_body(
    payload: FilmIdRequest,
    films: RankedStore = Depends(get_ranked_store),
    principal: Principal = Depends(require_read),
) -> FilmItem:
    film = films.get_by_id(_require_id(payload.id), principal=principal)
    return FilmItem.model_validate(film)


@router.post(
    "",
    response_model=FilmItem,
    status_code=status.HTTP_201_CREATED,
    summary="Create film",
)
def create_film(
    payload: FilmCreateRequest,
    films: RankedStore = Depends(get_ranked_store),
    principal: Principal = Depends(require_write),
) -> FilmItem:
    film = films.insert(payload.model_dump(), principal=principal)
    return FilmItem.model_validate(film)


@router.post("/update", response_model=FilmItem, summary="Update film")
def update_film(
    payload: FilmUpdateRequest,
    films: RankedStore = Depends(get_ranked_store),
    principal: Principal = Depends(require_write),
) -> FilmItem:
    film_id = _require_id(payload.id)
    patch = payload.model_dump(exclude_unset=True, exclude={"id"})
    film = films.update(film_id, patch, principal=principal)
    return FilmItem.model_validate(film)


@router.post("/delete", response_model=MessageResponse, summary="Delete film")
def delete_film(
    payload: FilmIdRequest,
    films: RankedStore = Depends(get_ranked_store),
    principal: Principal = Depends(require_write),
) -> MessageResponse:
    message = films.delete(_require_id(payload.id), principal=principal)
    return MessageResponse(message=message)
