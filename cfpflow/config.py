# cfpflow/config.py
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://cfp-server.vercel.app"


class FlowSettings(BaseSettings):
    """
    Centralized, env-driven configuration for a flow run.
    Override via CFP_* environment variables or a .env file at repo root.
    """
    base_url: str = DEFAULT_BASE_URL
    timeout_ms: int = Field(default=30_000, gt=0)
    get_retries: int = Field(default=0, ge=0, le=1)  # transport errors of GETs only
    verify_ssl: bool = True
    max_response_time_ms: Optional[int] = Field(default=None, gt=0)
    reports_dir: str = "reports"
    log_level: str = "INFO"

    # Reuse an existing account instead of generating one
    user_email: Optional[str] = None
    user_password: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="CFP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def timeout_sec(self) -> float:
        return self.timeout_ms / 1000.0
