"""Service configuration loaded from the environment."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

USER_AGENT = "PollResultsAPI/1.0 (Election results reader; Python/requests)"


class Settings(BaseSettings):
    """Settings read from ``POLL_RESULTS_*`` environment variables or ``.env``."""

    # Contract
    rpc_url: str = "https://ethereum-sepolia-rpc.publicnode.com"
    contract_address: Optional[str] = None
    request_timeout: float = Field(default=30.0, gt=0)
    user_agent: str = USER_AGENT

    # Refresh cadence
    refetch_interval_seconds: int = Field(default=15, ge=1)
    status_refresh_seconds: int = Field(default=15, ge=1)
    max_workers: int = Field(default=8, ge=1)

    # CORS
    cors_origins: str = "*"

    model_config = SettingsConfigDict(
        env_prefix="POLL_RESULTS_", env_file=".env", extra="ignore"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]


def get_settings() -> Settings:
    return Settings()
