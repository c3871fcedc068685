"""Pydantic schemas for API requests and responses."""

from .auth import CredentialsRequest, TokenResponse
from .films import (
    CatalogRefreshResponse,
    FilmCreateRequest,
    FilmIdRequest,
    FilmItem,
    FilmUpdateRequest,
    MessageResponse,
)

__all__ = [
    "CatalogRefreshResponse",
    "CredentialsRequest",
    "FilmCreateRequest",
    "FilmIdRequest",
    "FilmItem",
    "FilmUpdateRequest",
    "MessageResponse",
    "TokenResponse",
]
