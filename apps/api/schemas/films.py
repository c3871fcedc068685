from __future__ import annotations

from typing import Union

from pydantic import BaseModel


class FilmItem(BaseModel):
    id: int
    title: str
    rating: str
    year: int
    budget: int
    gross: int
    poster: str
    position: int

    model_config = {
        "from_attributes": True,
    }


class FilmCreateRequest(BaseModel):
    title: str | None = None
    rating: Union[str, float, None] = None
    year: int | None = None
    budget: int | None = None
    gross: int | None = None
    poster: str | None = None
    position: int | None = None


class FilmUpdateRequest(FilmCreateRequest):
    id: int | None = None


class FilmIdRequest(BaseModel):
    id: int | None = None


class MessageResponse(BaseModel):
    message: str


class CatalogRefreshResponse(MessageResponse):
    count: int
