"""pipesheet configuration via pydantic-settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class PipesheetSettings(BaseSettings):
    # Pipedrive credentials (OAuth token acquisition happens elsewhere)
    api_token: str | None = None
    access_token: str | None = None
    subdomain: str = "api"

    database_url: str = "sqlite+aiosqlite:///pipesheet.db"
    echo_sql: bool = False

    # Preference scope: user email, or a team when the user belongs to one
    user_email: str = "default"
    team_id: str | None = None

    page_size: int = 100
    request_timeout: float = 30.0
    sample_size: int = 5
    log_level: str = "INFO"

    model_config = {"env_prefix": "PIPESHEET_", "env_file": ".env", "extra": "ignore"}

    @property
    def api_base_url(self) -> str:
        return f"https://{self.subdomain}.pipedrive.com/api/v1"


settings = PipesheetSettings()
