"""
Visited-link matching against a history store.
"""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from ..logging import setup_logger
from .history import DEFAULT_MAX_RESULTS, HistoryStore
from .normalizer import extract_domain, ignore_set, is_valid_http_url, normalize_url

logger = setup_logger("visited_links.matcher")


@dataclass
class DomainLookup:
    """Outcome of the history query for one domain."""
    domain: str
    history_urls: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def group_by_domain(urls: Iterable[str]) -> "OrderedDict[str, List[str]]":
    """
    Group valid http(s) URLs by hostname.

    Invalid URLs are dropped and duplicates collapsed, so every valid input URL
    appears in exactly one group exactly once, in first-seen order.
    """
    groups: "OrderedDict[str, List[str]]" = OrderedDict()
    seen: Set[str] = set()
    for url in urls:
        if url in seen or not is_valid_http_url(url):
            continue
        domain = extract_domain(url)
        if not domain:
            continue
        seen.add(url)
        groups.setdefault(domain, []).append(url)
    return groups


class HistoryMatcher:
    """Determines which candidate URLs appear in the history store.

    Holds no state of its own beyond the store reference and the per-query
    result cap.
    """

    def __init__(self, store: HistoryStore, max_results: int = DEFAULT_MAX_RESULTS):
        self.store = store
        self.max_results = max_results

    async def _query_domain(self, domain: str) -> DomainLookup:
        try:
            history_urls = await self.store.search(domain, self.max_results)
            return DomainLookup(domain=domain, history_urls=list(history_urls or []))
        except Exception as e:
            logger.warning(f"History lookup for {domain} failed, treating as unvisited: {e}")
            return DomainLookup(domain=domain, error=str(e) or type(e).__name__)

    async def lookup_domains(self, domains: Iterable[str]) -> List[DomainLookup]:
        """Query every domain concurrently; one result per domain, never raises."""
        tasks = [asyncio.create_task(self._query_domain(domain)) for domain in domains]
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    async def check_visited(
        self,
        urls: Iterable[str],
        ignore_params: Optional[Iterable[str]] = None,
        enabled: bool = True,
    ) -> Set[str]:
        """
        Return the subset of ``urls`` that have been visited.

        Args:
            urls: Candidate URLs harvested from a page
            ignore_params: Query parameter names left out of the comparison
            enabled: When False nothing is queried and the result is empty

        Returns:
            Set of the original candidate strings found in history
        """
        if not enabled:
            logger.debug("Highlighting disabled, skipping history lookup")
            return set()

        ignored = ignore_set(ignore_params)
        groups = group_by_domain(urls)
        if not groups:
            return set()

        logger.debug(f"Checking {sum(len(g) for g in groups.values())} URLs across {len(groups)} domains")
        lookups = await self.lookup_domains(groups.keys())

        visited: Set[str] = set()
        failed = 0
        for lookup in lookups:
            if not lookup.ok:
                failed += 1
                continue
            history_keys = {normalize_url(url, ignored) for url in lookup.history_urls}
            for url in groups[lookup.domain]:
                if normalize_url(url, ignored) in history_keys:
                    visited.add(url)

        if failed:
            logger.info(f"{failed}/{len(lookups)} domain lookups failed; their links stay unvisited")
        logger.debug(f"Found {len(visited)} visited URLs")
        return visited


def visited_by_domain(visited: Iterable[str]) -> Dict[str, int]:
    """Count visited URLs per domain, mostly useful for reporting."""
    counts: Dict[str, int] = {}
    for url in visited:
        domain = extract_domain(url) or "(unknown)"
        counts[domain] = counts.get(domain, 0) + 1
    return counts
