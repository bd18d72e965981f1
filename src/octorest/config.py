"""Configuration loading and validation."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from octorest.http import DEFAULT_BASE_URL, DEFAULT_UPLOAD_URL, DEFAULT_USER_AGENT, GitHubClient


class ClientConfig(BaseModel):
    """GitHub API client configuration."""

    base_url: str = DEFAULT_BASE_URL
    upload_url: str = DEFAULT_UPLOAD_URL
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    api_version: str = Field(default=GitHubClient.API_VERSION, pattern=r"^\d{4}-\d{2}-\d{2}$")
    timeout: float = Field(default=GitHubClient.DEFAULT_TIMEOUT, gt=0)
    token_env: str = "GITHUB_TOKEN"

    @field_validator("base_url", "upload_url")
    @classmethod
    def validate_trailing_slash(cls, v: str) -> str:
        """Validate that base URLs end with a slash.

        Without it, resolving a relative path drops the last segment of the
        configured URL (``/api/v3`` would become ``/api/``).
        """
        if not v.startswith(("http://", "https://")):
            msg = f"URL must be http(s): {v}"
            raise ValueError(msg)
        if not v.endswith("/"):
            msg = f"URL must have a trailing slash: {v}"
            raise ValueError(msg)
        return v


def load_config(path: Path) -> ClientConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Validated ClientConfig object.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValidationError: If the config is invalid.
    """
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open() as f:
        raw_config: dict[str, Any] = yaml.safe_load(f) or {}

    return ClientConfig.model_validate(raw_config)
