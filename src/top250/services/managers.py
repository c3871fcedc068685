from __future__ import annotations

import enum
import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, FrozenSet, List, Optional

from ..config import AuthSettings
from ..errors import AuthenticationError, NotFound, PermissionDenied, ValidationError
from ..storage import CollectionStore

logger = logging.getLogger(__name__)

MANAGERS_COLLECTION = "managers"
TOKENS_COLLECTION = "tokens"
HASH_SCHEME = "pbkdf2_sha256"


class Capability(str, enum.Enum):
    READ = "read"
    WRITE = "write"


SUPER_CAPABILITIES: FrozenSet[Capability] = frozenset({Capability.READ, Capability.WRITE})


@dataclass(frozen=True)
class Principal:
    manager_id: int
    email: str
    capabilities: FrozenSet[Capability] = field(default_factory=frozenset)

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability) -> None:
        if not self.can(capability):
            raise PermissionDenied("Access denied.")


# Used by the CLI, which runs with local operator rights.
SYSTEM_PRINCIPAL = Principal(manager_id=0, email="system", capabilities=SUPER_CAPABILITIES)


def capabilities_for(manager: Dict[str, Any]) -> FrozenSet[Capability]:
    return SUPER_CAPABILITIES if manager.get("super") else frozenset()


def hash_password(password: str, *, iterations: int) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{HASH_SCHEME}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        scheme, iterations, salt, expected = encoded.split("$", 3)
    except (AttributeError, ValueError):
        return False
    if scheme != HASH_SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _new_manager_id(taken: set[int]) -> int:
    while True:
        candidate = int(time.time() * 1000) + secrets.randbelow(1000)
        if candidate not in taken:
            return candidate


class ManagerRegistry:
    """Manager accounts, password checks and bearer tokens."""

    def __init__(self, store: CollectionStore, settings: Optional[AuthSettings] = None) -> None:
        self.store = store
        self.settings = settings or AuthSettings()

    def register(self, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        email, password = self._credentials(email, password)
        with self.store.locked(MANAGERS_COLLECTION):
            managers = self.store.load(MANAGERS_COLLECTION)
            if any(manager["email"] == email for manager in managers):
                raise ValidationError("email", "a manager with this email already exists")
            manager = {
                "id": _new_manager_id({m["id"] for m in managers}),
                "email": email,
                "password": hash_password(password, iterations=self.settings.hash_iterations),
                "super": False,
            }
            managers.append(manager)
            self.store.save(MANAGERS_COLLECTION, managers)
        logger.info("Registered manager %s", email)
        return manager

    def login(self, email: Optional[str], password: Optional[str]) -> str:
        email, password = self._credentials(email, password)
        manager = self._find_by_email(email)
        if manager is None:
            raise NotFound("No manager with this email.")
        if not verify_password(password, manager["password"]):
            raise ValidationError("password", "invalid password")
        token = secrets.token_hex(32)
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=self.settings.token_ttl_seconds)
        with self.store.locked(TOKENS_COLLECTION):
            tokens = [t for t in self.store.load(TOKENS_COLLECTION) if not _expired(t, now)]
            tokens.append(
                {
                    "token_hash": _hash_token(token),
                    "manager_id": manager["id"],
                    "expires_at": expires_at.isoformat(),
                }
            )
            self.store.save(TOKENS_COLLECTION, tokens)
        logger.info("Issued token for manager %s", email)
        return token

    def authenticate(self, token: Optional[str]) -> Principal:
        if not token:
            raise AuthenticationError("Token not provided.", status_code=401)
        hashed = _hash_token(token)
        with self.store.locked(TOKENS_COLLECTION):
            tokens = self.store.load(TOKENS_COLLECTION)
        entry = next((t for t in tokens if hmac.compare_digest(t["token_hash"], hashed)), None)
        if entry is None or _expired(entry, datetime.now(timezone.utc)):
            raise AuthenticationError("Invalid token.")
        with self.store.locked(MANAGERS_COLLECTION):
            managers = self.store.load(MANAGERS_COLLECTION)
        manager = next((m for m in managers if m["id"] == entry["manager_id"]), None)
        if manager is None:
            raise AuthenticationError("Manager not found.")
        return Principal(
            manager_id=manager["id"],
            email=manager["email"],
            capabilities=capabilities_for(manager),
        )

    def grant(self, email: str, *, super_user: bool = True) -> Dict[str, Any]:
        with self.store.locked(MANAGERS_COLLECTION):
            managers = self.store.load(MANAGERS_COLLECTION)
            manager = next((m for m in managers if m["email"] == email), None)
            if manager is None:
                raise NotFound(f"No manager with email {email}.")
            manager["super"] = super_user
            self.store.save(MANAGERS_COLLECTION, managers)
        logger.info("Manager %s super=%s", email, super_user)
        return manager

    def list_managers(self) -> List[Dict[str, Any]]:
        with self.store.locked(MANAGERS_COLLECTION):
            managers = self.store.load(MANAGERS_COLLECTION)
        return [{key: value for key, value in m.items() if key != "password"} for m in managers]

    def _find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self.store.locked(MANAGERS_COLLECTION):
            managers = self.store.load(MANAGERS_COLLECTION)
        return next((m for m in managers if m["email"] == email), None)

    @staticmethod
    def _credentials(email: Optional[str], password: Optional[str]) -> tuple[str, str]:
        if not email or not email.strip():
            raise ValidationError("email", "is required")
        if not password:
            raise ValidationError("password", "is required")
        return email.strip(), password


def _expired(entry: Dict[str, Any], now: datetime) -> bool:
    try:
        expires_at = datetime.fromisoformat(entry["expires_at"])
    except (KeyError, TypeError, ValueError):
        return True
    return expires_at <= now
