"""
Background service shared by every page.

Owns configuration access, the history matcher and the per-tab result cache.
Pages reach it only through messages.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional

from ..config import HighlightConfig
from ..logging import setup_logger
from .cache import ResultCache
from .config_store import ConfigStore
from .errors import ChannelError
from .matcher import HistoryMatcher
from .messages import (
    Ack,
    CheckVisited,
    CheckVisitedResponse,
    ConfigUpdated,
    GetConfig,
    RefreshHighlights,
    RefreshTab,
)
from .router import PageChannel, Router, background_router
from .scanner import is_internal_url

logger = setup_logger("visited_links.background")


@dataclass
class TabInfo:
    tab_id: Hashable
    url: Optional[str] = None
    channel: Optional[PageChannel] = None

    @property
    def reachable(self) -> bool:
        return self.channel is not None and bool(self.url) and not is_internal_url(self.url)


class BackgroundService:
    """Serves check-visited, get-config, config-updated and refresh-tab."""

    def __init__(
        self,
        config_store: ConfigStore,
        matcher: HistoryMatcher,
        cache: Optional[ResultCache] = None,
    ):
        self.config_store = config_store
        self.matcher = matcher
        self.cache = cache if cache is not None else ResultCache()
        self.tabs: Dict[Hashable, TabInfo] = {}
        self.router: Router = background_router({
            CheckVisited: self._on_check_visited,
            GetConfig: self._on_get_config,
            ConfigUpdated: self._on_config_updated,
            RefreshTab: self._on_refresh_tab,
        })

    async def close(self):
        for tab in list(self.tabs.values()):
            if tab.channel is not None:
                await tab.channel.close()
        self.tabs.clear()
        await self.matcher.store.close()
        await self.config_store.close()

    # Message handlers

    async def _on_check_visited(self, message: CheckVisited, sender: Optional[Hashable]) -> CheckVisitedResponse:
        return await self.handle_check_visited(message.urls, sender)

    async def _on_get_config(self, message: GetConfig, sender: Optional[Hashable]) -> HighlightConfig:
        return await self.config_store.load()

    async def _on_config_updated(self, message: ConfigUpdated, sender: Optional[Hashable]) -> Ack:
        await self.handle_config_updated()
        return Ack()

    async def _on_refresh_tab(self, message: RefreshTab, sender: Optional[Hashable]) -> Ack:
        if sender is not None:
            self.handle_refresh_tab(sender)
        return Ack()

    # Operations

    async def handle_check_visited(self, urls: List[str], tab_id: Optional[Hashable] = None) -> CheckVisitedResponse:
        try:
            config = await self.config_store.load()
            if not config.enabled:
                return CheckVisitedResponse(visited_urls=[], config=config)

            generation = None
            if tab_id is not None:
                cached = self.cache.lookup(tab_id, urls, config)
                if cached is not None:
                    return CheckVisitedResponse(visited_urls=sorted(cached), config=config)
                generation = self.cache.generation(tab_id)

            visited = await self.matcher.check_visited(urls, config.ignore_params, enabled=config.enabled)
            if tab_id is not None:
                self.cache.store(tab_id, urls, config, visited, generation=generation)
            return CheckVisitedResponse(visited_urls=sorted(visited), config=config)
        except Exception as e:
            logger.error(f"Error checking visited URLs: {e}")
            return CheckVisitedResponse(visited_urls=[], config=HighlightConfig(), error=str(e))

    async def handle_config_updated(self):
        self.cache.invalidate_all()
        await self.notify_all_tabs()

    def handle_refresh_tab(self, tab_id: Hashable):
        self.cache.invalidate_tab(tab_id)

    async def update_config(self, config: HighlightConfig) -> HighlightConfig:
        """Persist a new configuration and run the config-updated flow."""
        await self.config_store.save(config)
        await self.handle_config_updated()
        return config

    # Tab lifecycle

    def register_tab(self, tab_id: Hashable, url: Optional[str] = None, channel: Optional[PageChannel] = None) -> TabInfo:
        tab = self.tabs.get(tab_id)
        if tab is None:
            tab = self.tabs[tab_id] = TabInfo(tab_id=tab_id)
        if url is not None:
            tab.url = url
        if channel is not None:
            tab.channel = channel
        return tab

    def tab_navigated(self, tab_id: Hashable, url: str):
        self.register_tab(tab_id, url=url)
        self.cache.invalidate_tab(tab_id)

    async def tab_activated(self, tab_id: Hashable):
        tab = self.tabs.get(tab_id)
        if tab is None or not tab.url or is_internal_url(tab.url):
            return
        # The user may be returning from one of this tab's links
        self.cache.invalidate_tab(tab_id)
        await self._send_refresh(tab)

    async def tab_removed(self, tab_id: Hashable):
        self.cache.remove_tab(tab_id)
        tab = self.tabs.pop(tab_id, None)
        if tab is not None and tab.channel is not None:
            await tab.channel.close()

    async def notify_all_tabs(self):
        tabs = [tab for tab in self.tabs.values() if tab.reachable]
        if tabs:
            await asyncio.gather(*(self._send_refresh(tab) for tab in tabs))

    async def _send_refresh(self, tab: TabInfo):
        if not tab.reachable:
            return
        try:
            await tab.channel.send(RefreshHighlights())
        except ChannelError as e:
            logger.debug(f"Tab {tab.tab_id} did not take refresh-highlights: {e}")
        except Exception as e:
            logger.warning(f"Refreshing tab {tab.tab_id} failed: {e}")
