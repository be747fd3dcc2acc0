"""Application settings and configuration.

This module defines all configuration options for the SRM Collab service layer.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="SRM Collab", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Hosted data platform (REST, storage, auth)
    backend_url: str | None = Field(default=None, alias="SUPABASE_URL")
    backend_api_key: str | None = Field(default=None, alias="SUPABASE_ANON_KEY")
    http_timeout_seconds: float = Field(default=10.0, alias="BACKEND_HTTP_TIMEOUT_SECONDS")
    realtime_poll_interval_seconds: float = Field(
        default=2.0,
        alias="REALTIME_POLL_INTERVAL_SECONDS",
    )

    # Access tokens issued by the platform's identity provider
    jwt_secret: str = Field(default="local-development-secret", alias="SUPABASE_JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_audience: str = Field(default="authenticated", alias="JWT_AUDIENCE")
    access_token_expire_minutes: int = Field(
        default=60,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Local database used when no hosted platform is configured
    database_url: str = Field(default="sqlite:///./srm_collab.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Object storage
    post_image_bucket: str = Field(default="post-images", alias="POST_IMAGE_BUCKET")
    avatar_bucket: str = Field(default="avatars", alias="AVATAR_BUCKET")
    storage_public_url: str = Field(default="/storage", alias="STORAGE_PUBLIC_URL")

    # Feed, polls and matching
    trending_window_hours: int = Field(default=24, alias="TRENDING_WINDOW_HOURS")
    trending_limit: int = Field(default=3, alias="TRENDING_LIMIT")
    candidate_batch_size: int = Field(default=10, alias="CANDIDATE_BATCH_SIZE")
    poll_min_options: int = Field(default=2, alias="POLL_MIN_OPTIONS")
    poll_max_options: int = Field(default=4, alias="POLL_MAX_OPTIONS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def hosted_backend_enabled(self) -> bool:
        """Return True when the hosted platform is configured.

        Returns:
            Whether both the platform URL and its API key are set
        """
        return bool(self.backend_url and self.backend_api_key)


settings = Settings()
