from pydantic import BaseModel, Field, field_validator


class DatabaseConfig(BaseModel):
    """Database connection and engine configuration."""

    url: str = Field(..., description="Database connection URL")
    echo: bool = Field(default=False, description="Enable SQL query logging")
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=20, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1, le=300)
    pool_pre_ping: bool = Field(default=True)


class BackendConfig(BaseModel):
    """Managed backend (database, auth and storage provider) endpoints and keys."""

    url: str | None = Field(default=None, description="Provider public endpoint")
    anon_key: str | None = Field(default=None, description="Public/anon key used for auth calls")
    service_role_key: str | None = Field(default=None, description="Privileged key used for storage writes")
    storage_bucket: str = Field(default="blog-images", min_length=1, description="Image bucket name")
    storage_public_url: str | None = Field(default=None, description="Override base for public object URLs")
    request_timeout: float = Field(default=10.0, gt=0, le=120)

    @field_validator("url", "storage_public_url")
    @classmethod
    def strip_trailing_slash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None


class AdminConfig(BaseModel):
    """Single-account admin access configuration."""

    allowed_email: str | None = Field(default=None, description="The only email allowed into the admin area")
    path_prefix: str = Field(default="/blog/admin", pattern="^/")
    login_path: str = Field(default="/blog/login", pattern="^/")
    session_cookie_name: str = Field(default="sb-access-token", min_length=1)
    session_cookie_max_age: int = Field(default=7 * 24 * 60 * 60, ge=60)
    session_cookie_secure: bool = Field(default=True)


class PublishConfig(BaseModel):
    """Post-publish side effects."""

    rebuild_hook_url: str | None = Field(default=None, description="External rebuild webhook")
    rebuild_on_update: bool = Field(default=False, description="Also fire the rebuild hook on updates")


class TelemetryConfig(BaseModel):
    """Telemetry event sink configuration."""

    server_url: str | None = Field(default=None, description="Telemetry collector endpoint")
    enabled: bool = Field(default=True)
    timeout: float = Field(default=5.0, gt=0, le=60)


class BlogConfig(BaseModel):
    """Public read path tuning."""

    posts_per_page: int = Field(default=10, ge=1, le=100)
    snippet_length: int = Field(default=250, ge=20, le=5000)


class ServerConfig(BaseModel):
    """Server runtime configuration."""

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    reload: bool = Field(default=False, description="Enable auto-reload in development")
    check_db_on_start: bool = Field(
        default=True, description="Run DB connection check on startup"
    )


class LoggingConfig(BaseModel):
    """Application logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
