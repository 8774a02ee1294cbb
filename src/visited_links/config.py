"""
Configuration for the visited-link highlighter.

``HighlightConfig`` is the user-facing record persisted by a config store;
``Settings`` holds service settings loaded from the environment.
"""

import os
import re
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

DEFAULT_HIGHLIGHT_COLOR = "#C58AF9"
_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class HighlightConfig(BaseModel):
    """User configuration; missing keys take defaults, unknown keys are ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = Field(default=True, description="Whether visited links are highlighted")
    ignore_params: List[str] = Field(
        default_factory=list,
        alias="ignoreParams",
        description="Query parameter names excluded from URL comparison",
        examples=[["utm_source", "fbclid"]],
    )
    highlight_color: str = Field(
        default=DEFAULT_HIGHLIGHT_COLOR,
        alias="highlightTextColor",
        description="Hex text color for visited links",
    )

    @field_validator("ignore_params", mode="before")
    @classmethod
    def clean_params(cls, v):
        if v is None:
            return []
        names: List[str] = []
        for name in v:
            name = str(name).strip()
            if name and name not in names:
                names.append(name)
        return names

    @field_validator("highlight_color", mode="before")
    @classmethod
    def validate_color(cls, v):
        if v is None:
            return DEFAULT_HIGHLIGHT_COLOR
        v = str(v).strip()
        if not v.startswith("#"):
            v = f"#{v}"
        if not _HEX_COLOR.match(v):
            raise ValueError(f"Invalid hex color: {v}")
        if len(v) == 4:
            v = "#" + "".join(c * 2 for c in v[1:])
        return v.upper()

    def to_wire(self) -> dict:
        """Serialize with the wire (camelCase) key names."""
        return self.model_dump(by_alias=True)


class Settings(BaseSettings):
    """
    Service settings loaded from environment variables and ``.env``.
    """
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # History source
    HISTORY_DB_PATH: Optional[str] = os.getenv("HISTORY_DB_PATH")
    HISTORY_MAX_RESULTS: int = int(os.getenv("HISTORY_MAX_RESULTS", "10000"))

    # Page coordinator
    DEBOUNCE_MS: int = int(os.getenv("DEBOUNCE_MS", "300"))

    # Persistent user configuration
    CONFIG_BACKEND: str = os.getenv("CONFIG_BACKEND", "memory")
    CONFIG_KEY: str = os.getenv("CONFIG_KEY", "visited_links:config")
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")

    # HTTP service
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    BACKGROUND_URL: str = os.getenv("BACKGROUND_URL", "http://localhost:8000")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


def load_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
