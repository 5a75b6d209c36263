from functools import lru_cache
import os

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config_models import (
    AdminConfig,
    BackendConfig,
    BlogConfig,
    DatabaseConfig,
    LoggingConfig,
    PublishConfig,
    ServerConfig,
    TelemetryConfig,
)

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def _env_optional(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


class Settings(BaseSettings):
    """Application settings assembled from environment variables and defaults."""

    # Environment
    environment: str = Field(default="development", pattern="^(development|staging|production)$")
    debug: bool = Field(default=False)

    # API
    api_title: str = Field(default="Penpost API")
    api_version: str = Field(default="1.0.0")
    api_description: str = Field(default="A self-hosted blog with a single-admin publishing console")

    # Server
    server: ServerConfig = ServerConfig()

    # Logging
    logging: LoggingConfig = LoggingConfig()

    # Public blog
    blog: BlogConfig = BlogConfig()

    # Populated in validator
    database: DatabaseConfig | None = None
    backend: BackendConfig | None = None
    admin: AdminConfig | None = None
    publish: PublishConfig | None = None
    telemetry: TelemetryConfig | None = None

    # Pydantic v2 settings config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def __init__(self, **values):
        # Ensure plain ValueError is raised (not Pydantic ValidationError)
        if not os.getenv("DATABASE_URL"):
            raise ValueError("DATABASE_URL environment variable is required")
        super().__init__(**values)

    @model_validator(mode="after")
    def _assemble_subconfigs(self):
        """Assemble nested configurations from environment variables."""
        database_url = os.getenv("DATABASE_URL")

        self.database = DatabaseConfig(
            url=database_url,
            echo=self.environment == "development" and self.debug,
            pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
            pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
        )

        self.backend = BackendConfig(
            url=_env_optional("SUPABASE_URL"),
            anon_key=_env_optional("SUPABASE_ANON_KEY"),
            service_role_key=_env_optional("SUPABASE_SERVICE_ROLE_KEY"),
            storage_bucket=os.getenv("STORAGE_BUCKET", "blog-images"),
            storage_public_url=_env_optional("STORAGE_PUBLIC_URL"),
            request_timeout=float(os.getenv("BACKEND_TIMEOUT_SECONDS", "10")),
        )

        self.admin = AdminConfig(
            allowed_email=_env_optional("ADMIN_ALLOWED_EMAIL"),
            session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "sb-access-token"),
            session_cookie_secure=_env_flag("SESSION_COOKIE_SECURE", True),
        )

        self.publish = PublishConfig(
            rebuild_hook_url=_env_optional("REBUILD_HOOK_URL"),
            rebuild_on_update=_env_flag("REBUILD_ON_UPDATE", False),
        )

        # Telemetry is on unless ALLOW_TELEMETRY is explicitly "false"
        allow = os.getenv("ALLOW_TELEMETRY")
        self.telemetry = TelemetryConfig(
            server_url=_env_optional("TELEMETRY_SERVER_URL"),
            enabled=not (allow is not None and allow.strip().lower() == "false"),
        )

        posts_per_page = os.getenv("POSTS_PER_PAGE")
        snippet_length = os.getenv("SNIPPET_LENGTH")
        self.blog = BlogConfig(
            posts_per_page=int(posts_per_page) if posts_per_page else self.blog.posts_per_page,
            snippet_length=int(snippet_length) if snippet_length else self.blog.snippet_length,
        )

        # Adjust logging for environment
        if self.environment == "production":
            self.logging.level = "WARNING"
        elif self.environment == "development":
            self.logging.level = "DEBUG"

        # Server env overrides
        check_flag = os.getenv("DB_CHECK_ON_START")
        if isinstance(check_flag, str):
            self.server.check_db_on_start = check_flag.strip().lower() in _TRUTHY

        return self


@lru_cache
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
