from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import os

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore

try:
    from dotenv import load_dotenv
except ImportError:  # pragma: no cover - optional dependency
    load_dotenv = None


@dataclass
class StorageSettings:
    backend: str = "json"
    data_dir: str = "data"
    database_url: str = "sqlite:///data/top250.db"
    echo: bool = False


@dataclass
class AuthSettings:
    token_ttl_seconds: int = 300
    hash_iterations: int = 120_000


@dataclass
class CatalogSettings:
    api_key: Optional[str] = None
    base_url: str = "https://api.kinopoisk.dev/v1.4"
    list_name: str = "top250"
    limit: int = 250
    request_timeout_seconds: int = 15
    retry_limit: int = 3
    retry_backoff_seconds: float = 2.0


@dataclass
class ApiSettings:
    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])


@dataclass
class Settings:
    storage: StorageSettings = field(default_factory=StorageSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    api: ApiSettings = field(default_factory=ApiSettings)

    def as_dict(self) -> Dict[str, Any]:
        catalog = dict(self.catalog.__dict__)
        if catalog.get("api_key"):
            catalog["api_key"] = "***"
        return {
            "storage": self.storage.__dict__,
            "auth": self.auth.__dict__,
            "catalog": catalog,
            "api": self.api.__dict__,
        }


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as fh:
        return tomllib.load(fh)


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load configuration from TOML + environment variables."""
    if load_dotenv:
        load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parents[2] / "config" / "default.toml"

    data = _load_toml(config_path)
    storage_cfg = data.get("storage", {})
    auth_cfg = data.get("auth", {})
    catalog_cfg = data.get("catalog", {})
    api_cfg = data.get("api", {})

    storage_settings = StorageSettings(
        backend=os.getenv("STORAGE_BACKEND", storage_cfg.get("backend", "json")),
        data_dir=os.getenv("STORAGE_DATA_DIR", storage_cfg.get("data_dir", "data")),
        database_url=os.getenv(
            "DATABASE_URL", storage_cfg.get("database_url", "sqlite:///data/top250.db")
        ),
        echo=bool_from_env("DATABASE_ECHO", storage_cfg.get("echo", False)),
    )

    auth_settings = AuthSettings(
        token_ttl_seconds=int(
            os.getenv("AUTH_TOKEN_TTL_SECONDS", auth_cfg.get("token_ttl_seconds", 300))
        ),
        hash_iterations=int(
            os.getenv("AUTH_HASH_ITERATIONS", auth_cfg.get("hash_iterations", 120_000))
        ),
    )

    catalog_settings = CatalogSettings(
        api_key=os.getenv("CATALOG_API_KEY", os.getenv("API_KEY", catalog_cfg.get("api_key"))),
        base_url=os.getenv(
            "CATALOG_BASE_URL", catalog_cfg.get("base_url", "https://api.kinopoisk.dev/v1.4")
        ),
        list_name=os.getenv("CATALOG_LIST", catalog_cfg.get("list_name", "top250")),
        limit=int(os.getenv("CATALOG_LIMIT", catalog_cfg.get("limit", 250))),
        request_timeout_seconds=int(
            os.getenv("CATALOG_TIMEOUT", catalog_cfg.get("request_timeout_seconds", 15))
        ),
        retry_limit=int(os.getenv("CATALOG_RETRY_LIMIT", catalog_cfg.get("retry_limit", 3))),
        retry_backoff_seconds=float(
            os.getenv("CATALOG_RETRY_BACKOFF", catalog_cfg.get("retry_backoff_seconds", 2.0))
        ),
    )

    api_settings = ApiSettings(
        host=os.getenv("API_HOST", api_cfg.get("host", "127.0.0.1")),
        port=int(os.getenv("API_PORT", api_cfg.get("port", 3000))),
        cors_origins=list(api_cfg.get("cors_origins", ["http://localhost:3000"])),
    )

    return Settings(
        storage=storage_settings,
        auth=auth_settings,
        catalog=catalog_settings,
        api=api_settings,
    )


def bool_from_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return bool(default)
    return value.lower() in {"1", "true", "yes", "on"}
