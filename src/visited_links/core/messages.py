"""
Message contract between pages, the background service and the settings
surface.

Every message kind is a pydantic model tagged by ``action``; ``Message`` is
the closed union of all of them.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from ..config import HighlightConfig


class CheckVisited(BaseModel):
    """page -> background: which of these URLs were visited?"""
    action: Literal["check-visited"] = "check-visited"
    urls: List[str] = Field(default_factory=list, description="Candidate URLs from one scan")


class GetConfig(BaseModel):
    """any -> background: current configuration."""
    action: Literal["get-config"] = "get-config"


class ConfigUpdated(BaseModel):
    """settings -> background: configuration changed, drop caches and refresh pages."""
    action: Literal["config-updated"] = "config-updated"


class RefreshTab(BaseModel):
    """page -> background: forget the cached result for the sending tab."""
    action: Literal["refresh-tab"] = "refresh-tab"


class RefreshHighlights(BaseModel):
    """background -> page: re-scan and re-apply highlights."""
    action: Literal["refresh-highlights"] = "refresh-highlights"


class GetStats(BaseModel):
    """settings -> page: visited/total link counts."""
    action: Literal["get-stats"] = "get-stats"


Message = Annotated[
    Union[CheckVisited, GetConfig, ConfigUpdated, RefreshTab, RefreshHighlights, GetStats],
    Field(discriminator="action"),
]

BACKGROUND_MESSAGES = (CheckVisited, GetConfig, ConfigUpdated, RefreshTab)
PAGE_MESSAGES = (RefreshHighlights, GetStats)

_message_adapter = TypeAdapter(Message)


def parse_message(data) -> BaseModel:
    """Validate a raw dict into one of the message models."""
    return _message_adapter.validate_python(data)


class Ack(BaseModel):
    success: bool = True


class CheckVisitedResponse(BaseModel):
    visited_urls: List[str] = Field(default_factory=list, alias="visitedUrls")
    config: HighlightConfig = Field(default_factory=HighlightConfig)
    error: Optional[str] = None

    model_config = {"populate_by_name": True}


class LinkStats(BaseModel):
    visited: int = 0
    total: int = 0

    @property
    def percent(self) -> int:
        """Visited share rounded to a whole percent, 0 when there are no links."""
        if self.total <= 0:
            return 0
        return round(self.visited * 100 / self.total)


RESPONSE_MODELS = {
    CheckVisited: CheckVisitedResponse,
    GetConfig: HighlightConfig,
    ConfigUpdated: Ack,
    RefreshTab: Ack,
    RefreshHighlights: Ack,
    GetStats: LinkStats,
}


def parse_response(message: BaseModel, data) -> BaseModel:
    """Validate the raw reply to ``message`` into its response model."""
    return RESPONSE_MODELS[type(message)].model_validate(data)
