"""
Core module containing the matching engine and the page-side highlight loop.
"""

from .normalizer import normalize_url, extract_domain, is_valid_http_url
from .history import HistoryStore, InMemoryHistoryStore, SqliteHistoryStore
from .matcher import HistoryMatcher, DomainLookup, group_by_domain
from .cache import ResultCache
from .page import PageDocument, MARKER_CLASS
from .scanner import collect_links
from .coordinator import HighlightCoordinator, CoordinatorState
from .background import BackgroundService

__all__ = [
    'normalize_url',
    'extract_domain',
    'is_valid_http_url',
    'HistoryStore',
    'InMemoryHistoryStore',
    'SqliteHistoryStore',
    'HistoryMatcher',
    'DomainLookup',
    'group_by_domain',
    'ResultCache',
    'PageDocument',
    'MARKER_CLASS',
    'collect_links',
    'HighlightCoordinator',
    'CoordinatorState',
    'BackgroundService',
]
