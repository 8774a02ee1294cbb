"""
Link collection for a page.
"""

from typing import Dict, List, Optional
from urllib.parse import urljoin, urlsplit

from bs4 import Tag

from .page import PageDocument

# URL spaces that belong to the browser or its extensions, never to history
INTERNAL_SCHEMES = ("chrome", "chrome-extension", "moz-extension", "edge", "about")

LinkGroup = Dict[str, List[Tag]]


def is_internal_url(url: str) -> bool:
    scheme, sep, _ = url.partition(":")
    return bool(sep) and scheme.strip().lower() in INTERNAL_SCHEMES


def resolve_href(href: Optional[str], base_url: str) -> Optional[str]:
    """
    Resolve a raw ``href`` against ``base_url``.

    Returns None for references that are never link candidates: empty values,
    ``javascript:`` pseudo-URLs, pure fragments, internal browser pages and
    anything that does not parse.
    """
    if href is None:
        return None
    href = href.strip()
    if not href or href.startswith("#"):
        return None
    if href.lower().startswith("javascript:"):
        return None
    try:
        resolved = urljoin(base_url, href)
        parts = urlsplit(resolved)
        parts.port
    except ValueError:
        return None
    if not parts.scheme or is_internal_url(resolved):
        return None
    return resolved


def resolve_link(page: PageDocument, element: Tag) -> Optional[str]:
    """Resolved URL of a single anchor, or None when it is not a candidate."""
    return resolve_href(element.get("href"), page.base_url)


def collect_links(page: PageDocument, root: Optional[Tag] = None) -> LinkGroup:
    """
    Map each candidate URL under ``root`` to the anchors that reference it.

    Anchors sharing a resolved URL are all kept, in document order.
    """
    base_url = page.base_url
    links: LinkGroup = {}
    for anchor in page.anchors(root):
        url = resolve_href(anchor.get("href"), base_url)
        if url is None:
            continue
        links.setdefault(url, []).append(anchor)
    return links


def contains_links(node) -> bool:
    """True when ``node`` is an anchor with an href or contains one."""
    if not isinstance(node, Tag):
        return False
    if node.name == "a" and node.has_attr("href"):
        return True
    return node.find("a", href=True) is not None
