# fluentrest/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RestClientSettings(BaseSettings):
    """
    User-configurable settings for the transport behind a fluentrest client,
    loaded from environment variables (prefixed ``FLUENTREST_``) or a .env file.

    These only shape the default ``httpx.AsyncClient``; a client created with an
    explicit ``http_client`` uses that transport's own configuration, except for
    the User-Agent which is still applied to requests lacking one.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FLUENTREST_",
        extra="ignore",
        case_sensitive=False,
    )

    request_timeout: float = Field(
        default=30.0, description="Default request timeout in seconds"
    )
    user_agent: str = Field(
        default="fluentrest/0.1.0",
        description="User-Agent header for requests",
    )
    follow_redirects: bool = Field(
        default=True,
        description="Follow HTTP redirects, as a browser fetch does",
    )


@lru_cache
def get_settings() -> RestClientSettings:
    """
    Provides access to the fluentrest settings.

    Settings are loaded from environment variables or a .env file.
    The instance is cached for performance.

    Returns:
        RestClientSettings: The settings instance.
    """
    return RestClientSettings()
