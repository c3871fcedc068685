from __future__ import annotations

from fastapi import APIRouter, Depends, status

from top250.services.managers import ManagerRegistry

from ..dependencies import get_manager_registry
from ..schemas import CredentialsRequest, MessageResponse, TokenResponse


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register manager",
)
def register(
    payload: CredentialsRequest,
    registry: ManagerRegistry = Depends(get_manager_registry),
) -> MessageResponse:
    registry.register(payload.email, payload.password)
    return MessageResponse(message="Manager registered.")


@router.post("/login", response_model=TokenResponse, summary="Issue bearer token")
def login(
    payload: CredentialsRequest,
    registry: ManagerRegistry = Depends(get_manager_registry),
) -> TokenResponse:
    return TokenResponse(token=registry.login(payload.email, payload.password))
