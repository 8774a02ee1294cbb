"""
Per-tab cache of match results.
"""

import itertools
from dataclasses import dataclass
from typing import Dict, FrozenSet, Hashable, Iterable, Optional, Set, Tuple

from ..config import HighlightConfig
from ..logging import setup_logger

logger = setup_logger("visited_links.cache")


@dataclass(frozen=True)
class SessionCacheEntry:
    """Last successful match for one tab and the inputs it was computed from."""
    urls: FrozenSet[str]
    config: HighlightConfig
    visited: FrozenSet[str]


class ResultCache:
    """
    Match results keyed by tab id.

    Entries have no expiry; they live until one of the invalidation events
    fires: configuration updated (all tabs), refresh requested, tab activated
    or navigated (one tab), tab closed (entry removed). A lookup only hits when
    the candidate set and configuration equal the ones stored.
    """

    def __init__(self):
        self._entries: Dict[Hashable, SessionCacheEntry] = {}
        self._generations: Dict[Hashable, int] = {}
        self._epoch = 0
        self._counter = itertools.count(1)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, tab_id: Hashable) -> bool:
        return tab_id in self._entries

    def lookup(self, tab_id: Hashable, urls: Iterable[str], config: HighlightConfig) -> Optional[Set[str]]:
        entry = self._entries.get(tab_id)
        if entry is None:
            return None
        if entry.urls != frozenset(urls) or entry.config != config:
            return None
        logger.debug(f"Cache hit for tab {tab_id}")
        return set(entry.visited)

    def generation(self, tab_id: Hashable) -> Tuple[int, int]:
        """Token that changes whenever ``tab_id``'s entry is invalidated."""
        return self._epoch, self._generations.get(tab_id, 0)

    def store(
        self,
        tab_id: Hashable,
        urls: Iterable[str],
        config: HighlightConfig,
        visited: Iterable[str],
        generation: Optional[Tuple[int, int]] = None,
    ) -> bool:
        """
        Remember a match result for ``tab_id``.

        When ``generation`` is given it must still equal ``generation(tab_id)``;
        a result computed across an invalidation is dropped instead of stored.
        """
        if generation is not None and generation != self.generation(tab_id):
            logger.debug(f"Discarding result for tab {tab_id} invalidated while matching")
            return False
        self._entries[tab_id] = SessionCacheEntry(
            urls=frozenset(urls),
            config=config.model_copy(deep=True),
            visited=frozenset(visited),
        )
        return True

    def _bump(self, tab_id: Hashable):
        self._generations[tab_id] = next(self._counter)

    def invalidate_all(self):
        count = len(self._entries)
        self._entries.clear()
        self._epoch += 1
        logger.debug(f"Cleared {count} cached tab entries")

    def invalidate_tab(self, tab_id: Hashable):
        self._bump(tab_id)
        if self._entries.pop(tab_id, None) is not None:
            logger.debug(f"Invalidated cache for tab {tab_id}")

    def remove_tab(self, tab_id: Hashable):
        # The generation is kept so a match still running for a closed tab cannot store
        self._bump(tab_id)
        self._entries.pop(tab_id, None)