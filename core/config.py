import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_PORT = 3000
DEFAULT_API_VERSION = "2024-10"
DEFAULT_SCOPES = "write_products"


@dataclass(frozen=True)
class ApiConfig:
    api_key: str = ""
    api_secret: str = ""
    api_version: str = DEFAULT_API_VERSION
    host_name: str = ""
    scopes: str = DEFAULT_SCOPES
    is_embedded_app: bool = True

    @property
    def scope_list(self) -> list[str]:
        return [s.strip() for s in self.scopes.split(",") if s.strip()]


@dataclass(frozen=True)
class AuthConfig:
    path: str = "/api/auth"
    callback_path: str = "/api/auth/callback"


@dataclass(frozen=True)
class WebhooksConfig:
    path: str = "/api/webhooks"


@dataclass(frozen=True)
class AppConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    webhooks: WebhooksConfig = field(default_factory=WebhooksConfig)
    port: int = DEFAULT_PORT
    environment: str = "development"
    static_path: Path = Path("frontend")
    database_path: Path = Path("database.sqlite")
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _host_name(value: str | None) -> str:
    return (value or "").replace("https://", "").replace("http://", "").strip().strip("/")


def _port(value: str | None) -> int:
    if not value:
        return DEFAULT_PORT
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid port: {value!r}")


def static_path_for(environment: str, cwd: Path) -> Path:
    if environment == "production":
        return cwd / "frontend" / "dist"
    return cwd / "frontend"


def load_config(cwd: Path | None = None) -> AppConfig:
    cwd = cwd or Path.cwd()
    environment = os.getenv("NODE_ENV", "development")

    api = ApiConfig(
        api_key=os.getenv("SHOPIFY_API_KEY", ""),
        api_secret=os.getenv("SHOPIFY_API_SECRET", ""),
        api_version=os.getenv("SHOPIFY_API_VERSION", DEFAULT_API_VERSION),
        host_name=_host_name(os.getenv("HOST_NAME")),
        scopes=os.getenv("SCOPES", DEFAULT_SCOPES),
    )

    return AppConfig(
        api=api,
        port=_port(os.getenv("BACKEND_PORT") or os.getenv("PORT")),
        environment=environment,
        static_path=static_path_for(environment, cwd),
        database_path=cwd / "database.sqlite",
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
