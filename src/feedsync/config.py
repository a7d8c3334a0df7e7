"""Configuration management for feedsync.

Connection settings come from environment variables. Uses pydantic-settings
so a missing endpoint or auth key fails at startup instead of on the first
sync cycle. The model stays mutable: the sync engine advances ``last_id``
in place and writes it through to the settings store.
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Miniflux service configuration loaded from environment variables."""

    endpoint: str = Field(alias="MINIFLUX_ENDPOINT")
    auth_key: SecretStr = Field(alias="MINIFLUX_AUTH_KEY")
    api_key_auth: bool = Field(default=True, alias="MINIFLUX_API_KEY_AUTH")
    fetch_limit: int = Field(default=250, gt=0, alias="MINIFLUX_FETCH_LIMIT")
    page_size: int = Field(default=125, gt=0, alias="MINIFLUX_PAGE_SIZE")
    import_groups: bool = Field(default=False, alias="MINIFLUX_IMPORT_GROUPS")
    last_id: int | None = Field(default=None, alias="MINIFLUX_LAST_ID")
    legacy_star_sync: bool = Field(default=False, alias="MINIFLUX_LEGACY_STAR_SYNC")
    state_file: str | None = Field(default=None, alias="FEEDSYNC_STATE_FILE")
    sync_interval: int = Field(default=900, ge=0, alias="FEEDSYNC_SYNC_INTERVAL")
    request_timeout: float = Field(default=30.0, gt=0, alias="FEEDSYNC_REQUEST_TIMEOUT")
    server_host: str = Field(default="127.0.0.1", alias="MCP_SERVER_HOST")
    server_port: int = Field(default=8000, alias="MCP_SERVER_PORT")

    model_config = SettingsConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


def load_config() -> Config:
    """Load and validate config from environment. Raises on missing required vars."""
    return Config()
