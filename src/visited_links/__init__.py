"""
Visited Link Highlighter: marks links on a page that appear in browsing
history, ignoring configured tracking parameters.
"""

from .config import HighlightConfig, Settings
from .core import (
    BackgroundService,
    HighlightCoordinator,
    HistoryMatcher,
    PageDocument,
    ResultCache,
    collect_links,
    extract_domain,
    is_valid_http_url,
    normalize_url,
)

__version__ = "1.0.0"

__all__ = [
    'HighlightConfig',
    'Settings',
    'BackgroundService',
    'HighlightCoordinator',
    'HistoryMatcher',
    'PageDocument',
    'ResultCache',
    'collect_links',
    'extract_domain',
    'is_valid_http_url',
    'normalize_url',
    '__version__',
]
