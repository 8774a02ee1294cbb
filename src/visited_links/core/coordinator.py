"""
Page-side highlight loop: scan links, ask the background which were visited,
apply the marker class, and keep doing so as the page changes.
"""

import asyncio
from enum import Enum
from typing import Callable, List, Optional, Set

from bs4 import Tag

from ..logging import setup_logger
from .errors import ChannelError, ContextInvalidatedError
from .messages import (
    Ack,
    CheckVisited,
    CheckVisitedResponse,
    GetStats,
    LinkStats,
    RefreshHighlights,
    RefreshTab,
)
from .page import COLOR_PROPERTY, VISIBLE, MutationRecord, PageDocument
from .router import BackgroundChannel, Router, page_router
from .scanner import LinkGroup, collect_links, contains_links, resolve_link

logger = setup_logger("visited_links.coordinator")

DEFAULT_DEBOUNCE_MS = 300


class CoordinatorState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    AWAITING_MATCH = "awaiting_match"
    APPLYING = "applying"
    STOPPED = "stopped"


class HighlightCoordinator:
    """
    Drives scan -> match -> apply cycles for one page.

    At most one cycle runs at a time. Triggers that arrive while a cycle is in
    flight are folded into a single pending cycle, started one debounce window
    after the current one finishes.
    """

    def __init__(
        self,
        page: PageDocument,
        channel: BackgroundChannel,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        on_stats: Optional[Callable[[LinkStats], None]] = None,
    ):
        self.page = page
        self.channel = channel
        self.debounce = debounce_ms / 1000.0
        self.on_stats = on_stats
        self.state = CoordinatorState.IDLE
        self.links: LinkGroup = {}
        self.stats = LinkStats()
        self.cycles = 0
        self._clicked: Set[str] = set()
        self._observer = None
        self._timer: Optional[asyncio.Task] = None
        self._cycle: Optional[asyncio.Task] = None
        self._pending = False
        self._force = False
        self._started = False
        self.router: Router = page_router({
            RefreshHighlights: self._on_refresh_highlights,
            GetStats: self._on_get_stats,
        })

    @property
    def stopped(self) -> bool:
        return self.state == CoordinatorState.STOPPED

    @property
    def busy(self) -> bool:
        return self._cycle is not None and not self._cycle.done()

    # Lifecycle

    def start(self):
        """Hook into the page and run the initial cycle. Needs a running loop."""
        if self._started or self.stopped:
            return
        self._started = True
        self.page.on_click(self.handle_click)
        self.page.on_visibility_change(self._on_visibility_change)
        self._launch()
        self._observer = self.page.observe(self._on_mutations)

    def stop(self):
        """Tear down observer and timers; no further cycles will run."""
        if self.stopped:
            return
        self.state = CoordinatorState.STOPPED
        self._pending = False
        self._force = False
        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None
        current = asyncio.current_task() if self._in_loop() else None
        for task in (self._timer, self._cycle):
            if task is not None and not task.done() and task is not current:
                task.cancel()
        self._timer = None
        logger.info(f"Stopped highlighting for {self.page.url}")

    async def wait_idle(self):
        """Wait until no debounce timer or cycle is outstanding."""
        while True:
            tasks = [t for t in (self._timer, self._cycle) if t is not None and not t.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    @staticmethod
    def _in_loop() -> bool:
        try:
            asyncio.get_running_loop()
            return True
        except RuntimeError:
            return False

    # Triggers

    def schedule(self, force: bool = False):
        """Debounced trigger: restart the timer, run a cycle when it fires."""
        if self.stopped:
            return
        self._force = self._force or force
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.create_task(self._fire_after_debounce())

    async def _fire_after_debounce(self):
        await asyncio.sleep(self.debounce)
        self._launch()

    def refresh(self, force: bool = False):
        """
        Explicit refresh command; runs now unless a cycle is in flight.

        ``force`` asks the background to drop this tab's cached result first.
        """
        self._launch(force=force)

    def _launch(self, force: bool = False):
        if self.stopped:
            return
        force = force or self._force
        if self.busy:
            self._pending = True
            self._force = force
            return
        self._force = False
        self._cycle = asyncio.create_task(self._run_cycle(force))

    async def _run_cycle(self, force: bool):
        try:
            await self.process_links(force=force)
        except Exception as e:
            logger.error(f"Error processing links on {self.page.url}: {e}")
            if not self.stopped:
                self.state = CoordinatorState.IDLE
        finally:
            if self._pending and not self.stopped:
                self._pending = False
                self.schedule()

    def _on_mutations(self, records: List[MutationRecord]):
        if any(contains_links(node) for record in records for node in record.added_nodes):
            self.schedule()

    def _on_visibility_change(self, state: str):
        if state == VISIBLE:
            # History may have changed while the page was in the background
            self.schedule(force=True)

    # Cycle

    async def process_links(self, force: bool = False):
        """Run one scan/match/apply cycle."""
        if self.stopped:
            return
        self.state = CoordinatorState.SCANNING
        links = collect_links(self.page)
        self.links = links
        if not links:
            self.state = CoordinatorState.IDLE
            return

        self.state = CoordinatorState.AWAITING_MATCH
        try:
            if force:
                await self.channel.send(RefreshTab())
            response = await self.channel.send(CheckVisited(urls=list(links)))
        except ContextInvalidatedError:
            logger.warning(f"Host context for {self.page.url} is gone")
            self.stop()
            return
        except ChannelError as e:
            logger.debug(f"Background unavailable, skipping cycle: {e}")
            self.state = CoordinatorState.IDLE
            return

        if self.stopped:
            return
        self.state = CoordinatorState.APPLYING
        self.apply(links, response)
        self.cycles += 1
        self.state = CoordinatorState.IDLE

    def apply(self, links: LinkGroup, response: CheckVisitedResponse):
        config = response.config
        self.page.set_style_property(COLOR_PROPERTY, config.highlight_color)

        for element in self.page.marked_elements():
            self.page.remove_marker(element)
        if not config.enabled:
            self._report(LinkStats(visited=0, total=sum(len(els) for els in links.values())))
            return

        visited = set(response.visited_urls) | self._clicked
        visited_count = 0
        total_count = 0
        for url, elements in links.items():
            total_count += len(elements)
            if url in visited:
                visited_count += len(elements)
                for element in elements:
                    self.page.add_marker(element)
        self._report(LinkStats(visited=visited_count, total=total_count))

    def _report(self, stats: LinkStats):
        self.stats = stats
        if self.on_stats is not None:
            try:
                self.on_stats(stats)
            except Exception as e:
                logger.debug(f"Stats listener failed: {e}")

    # Clicks

    def handle_click(self, element: Tag):
        """Mark the clicked link, and every link with the same URL, right away."""
        if self.stopped:
            return
        anchor = element if element.name == "a" and element.has_attr("href") else element.find_parent("a", href=True)
        if anchor is None:
            return
        url = resolve_link(self.page, anchor)
        if url is None:
            return
        self._clicked.add(url)
        if self.page.has_marker(anchor):
            return
        self.page.add_marker(anchor)
        for other in self.page.anchors():
            if other is not anchor and not self.page.has_marker(other) and resolve_link(self.page, other) == url:
                self.page.add_marker(other)

    # Stats

    def get_stats(self) -> LinkStats:
        return LinkStats(visited=len(self.page.marked_elements()), total=len(collect_links(self.page)))

    async def _on_refresh_highlights(self, message: RefreshHighlights, sender) -> Ack:
        self.refresh(force=True)
        return Ack()

    async def _on_get_stats(self, message: GetStats, sender) -> LinkStats:
        return self.get_stats()
