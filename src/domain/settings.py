import logging
import os
from typing import Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.domain.exceptions import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_CONCURRENT_REQUESTS = 20
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_WEB_URL = "https://github.com"


class Settings(BaseModel):
    """
    Static settings consumed by the aggregator, the scheduler and the web front end.
    """
    model_config = ConfigDict(frozen=True)

    token: str = Field(..., min_length=1, description="GitHub access token")
    organization: str = Field(..., min_length=1, description="Organization whose repositories are aggregated")
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=100, description="Repositories requested per listing page")
    refresh_period_minutes: float = Field(60, gt=0, description="Minutes between two aggregation cycles")
    host: str = Field("0.0.0.0", description="Interface the HTTP listener binds to")
    port: int = Field(3000, ge=1, le=65535, description="Port the HTTP listener binds to")
    max_concurrent_requests: int = Field(DEFAULT_MAX_CONCURRENT_REQUESTS, ge=1, description="Upper bound on in-flight sub-fetches")
    api_url: str = Field(DEFAULT_API_URL, description="Base URL of the GitHub REST API")
    web_url: str = Field(DEFAULT_WEB_URL, description="Base URL used to build github_url")
    log_level: str = Field("INFO", description="Root logging level")
    progress_bar: bool = Field(True, description="Render a console progress bar when attached to a TTY")

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level {value!r}.")
        return level

    @property
    def refresh_period_seconds(self) -> float:
        return self.refresh_period_minutes * 60

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Builds settings from environment variables.

        Raises:
            ConfigurationError: when GITHUB_TOKEN or GITHUB_ORGANIZATION is missing,
                or when a value cannot be parsed.
        """
        env = os.environ if environ is None else environ

        token = env.get("GITHUB_TOKEN")
        organization = env.get("GITHUB_ORGANIZATION")
        if not token:
            raise ConfigurationError("GITHUB_TOKEN is not set in the environment.")
        if not organization:
            raise ConfigurationError("GITHUB_ORGANIZATION is not set in the environment.")

        values = {"token": token, "organization": organization}
        optional = {
            "PAGE_SIZE": "page_size",
            "REFRESH_PERIOD_MINUTES": "refresh_period_minutes",
            "HOST": "host",
            "PORT": "port",
            "MAX_CONCURRENT_REQUESTS": "max_concurrent_requests",
            "GITHUB_API_URL": "api_url",
            "GITHUB_WEB_URL": "web_url",
            "LOG_LEVEL": "log_level",
        }
        for env_name, field_name in optional.items():
            if env.get(env_name):
                values[field_name] = env[env_name]
        if env.get("PROGRESS_BAR"):
            values["progress_bar"] = env["PROGRESS_BAR"].strip().lower() in _TRUE_VALUES

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e
