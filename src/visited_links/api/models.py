"""
Request models for the background API.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class TabRegistration(BaseModel):
    """Register (or update) a tab."""
    url: str = Field(..., description="URL currently loaded in the tab", examples=["https://example.com/"])
    callback_url: Optional[str] = Field(
        default=None,
        description="Page endpoint that accepts refresh-highlights and get-stats messages",
        examples=["http://localhost:9000/page"],
    )

    @field_validator("callback_url")
    @classmethod
    def validate_callback(cls, v):
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("callback_url must be an http(s) URL")
        return v


class TabNavigation(BaseModel):
    url: str = Field(..., description="New URL of the tab")


class TabStatus(BaseModel):
    tab_id: str
    url: Optional[str] = None
    reachable: bool = False
    cached: bool = False

    @classmethod
    def from_tab(cls, tab, cached: bool) -> "TabStatus":
        return cls(
            tab_id=str(tab.tab_id),
            url=tab.url,
            reachable=tab.reachable,
            cached=cached,
        )
