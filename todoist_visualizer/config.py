"""Configuration for Todoist Visualizer.

Settings are read from ``TODOIST_*`` environment variables (or a ``.env``
file); keyword arguments passed to ``VisualizerConfig`` take precedence.
"""

from typing import Optional, Tuple

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.todoist.com/rest/v2"
ENV_PREFIX = "TODOIST_"
TOKEN_ENV_VAR = f"{ENV_PREFIX}API_TOKEN"

# Collections known to the API, named after their resource path.
COLLECTIONS = ("favorites", "filters", "tasks")


class VisualizerConfig(BaseSettings):
    """Settings for the API client and the visualizer session."""

    # Personal token; kept out of reprs and logs.
    api_token: SecretStr = SecretStr("")

    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=0, ge=0)
    backoff_factor: float = Field(default=0.5, ge=0)
    max_workers: int = Field(default=4, ge=1)

    image_width: int = Field(default=300, gt=0)
    image_height: int = Field(default=200, gt=0)
    image_delay: float = Field(default=0.0, ge=0)

    # JSON list in the environment, e.g. TODOIST_COLLECTIONS='["favorites", "tasks"]'
    collections: Tuple[str, ...] = ("favorites", "filters")

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @field_validator("collections")
    @classmethod
    def check_collections(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        unknown = [c for c in value if c not in COLLECTIONS]
        if unknown:
            raise ValueError(f"Unknown collection(s): {', '.join(unknown)}")
        if not value:
            raise ValueError("At least one collection is required")
        return value


def resolve_api_token(explicit: Optional[str], config: VisualizerConfig) -> str:
    """Return the API token from the command line or the configuration.

    An empty string is returned when neither is set; the client rejects it
    before any request is made.
    """
    if explicit and explicit.strip():
        return explicit.strip()
    return config.api_token.get_secret_value().strip()
