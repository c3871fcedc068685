"""Error taxonomy shared by the services, the CLI and the HTTP layer."""

from __future__ import annotations

from typing import Any, Dict, Optional


class Top250Error(Exception):
    status_code: int = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message}


class ValidationError(Top250Error):
    """Bad or missing input, reported against a single field."""

    status_code = 400

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "field": self.field}


class NotFound(Top250Error):
    status_code = 404


class AuthenticationError(Top250Error):
    # 401 when no credentials were sent, 403 when they were rejected.
    status_code = 403


class PermissionDenied(Top250Error):
    status_code = 403


class StorageUnavailable(Top250Error):
    status_code = 500


class UpstreamError(Top250Error):
    status_code = 502


class IdentifierCollision(Top250Error):
    status_code = 500
