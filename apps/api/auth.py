from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from top250.services.managers import Capability, ManagerRegistry, Principal

from .dependencies import get_manager_registry

BEARER = HTTPBearer(auto_error=False)


def require_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(BEARER),
    registry: ManagerRegistry = Depends(get_manager_registry),
) -> Principal:
    token = credentials.credentials if credentials else None
    return registry.authenticate(token)


def require_capability(capability: Capability) -> Callable[..., Principal]:
    def dependency(principal: Principal = Depends(require_principal)) -> Principal:
        principal.require(capability)
        return principal

    return dependency


require_read = require_capability(Capability.READ)
require_write = require_capability(Capability.WRITE)
