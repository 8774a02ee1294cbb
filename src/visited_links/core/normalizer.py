"""
URL normalization used to compare page links against history entries.

Both sides of a comparison go through ``normalize_url`` with the same ignore
set, so two URLs are "the same visit" iff their canonical keys are equal.
"""

import re
from typing import FrozenSet, Iterable, List, Optional
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

VALID_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}

# Separators accepted when a user types several parameter names at once
_PARAM_SEPARATORS = re.compile(r"[,，\s]+")

# Characters browsers leave as-is when serializing a path or fragment; "%" is
# kept so existing escapes are not encoded twice
_PATH_SAFE = "/%:@!$&'()*+,;=~[]^|"
_FRAGMENT_SAFE = _PATH_SAFE + "#?{}"


def _split_http(url: str):
    """Parse ``url`` and return the split result if it is a usable http(s) URL."""
    try:
        parts = urlsplit(url.strip())
        # Accessing port validates it and raises ValueError when malformed
        parts.port
    except (ValueError, AttributeError):
        return None
    if parts.scheme.lower() not in VALID_SCHEMES or not parts.hostname:
        return None
    return parts


def _netloc(parts, scheme: str) -> str:
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if parts.port is not None and parts.port != DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{parts.port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    return netloc


def ignore_set(params: Optional[Iterable[str]]) -> FrozenSet[str]:
    """Lower-case a configured parameter list into a lookup set."""
    if not params:
        return frozenset()
    return frozenset(p.strip().lower() for p in params if p and p.strip())


def parse_ignore_params(raw: str) -> List[str]:
    """
    Split user input into parameter names.

    Accepts comma (ASCII or full-width) and whitespace separated names and
    keeps the first occurrence of each.

    Example:
        >>> parse_ignore_params("utm_source, fbclid  gclid,fbclid")
        ['utm_source', 'fbclid', 'gclid']
    """
    names: List[str] = []
    for name in _PARAM_SEPARATORS.split(raw or ""):
        name = name.strip()
        if name and name not in names:
            names.append(name)
    return names


def normalize_url(url: str, ignore_params: Optional[Iterable[str]] = None) -> str:
    """
    Build the canonical comparison key for a URL.

    Normalizations applied:
    - Drop query parameters whose name (case-insensitive) is ignored
    - Stable sort of the remaining parameters by name
    - Drop an empty fragment marker
    - Lower-case scheme and host, drop the default port, empty path -> "/"
    - Percent-encode non-ASCII and unsafe characters in path and fragment

    Anything that is not a parseable http(s) URL is returned unchanged, so it
    can still serve as a key that only matches itself.

    Args:
        url: URL to normalize
        ignore_params: Parameter names excluded from the comparison

    Returns:
        Canonical URL string

    Example:
        >>> normalize_url("https://x.com/a?b=2&utm_source=x&a=1#", ["UTM_SOURCE"])
        'https://x.com/a?a=1&b=2'
    """
    parts = _split_http(url)
    if parts is None:
        return url

    ignored = ignore_params if isinstance(ignore_params, frozenset) else ignore_set(ignore_params)
    scheme = parts.scheme.lower()

    params = parse_qsl(parts.query, keep_blank_values=True)
    if ignored:
        params = [(key, value) for key, value in params if key.lower() not in ignored]
    # sorted() is stable, so repeated names keep their relative order
    params = sorted(params, key=lambda item: item[0])

    path = quote(parts.path or "/", safe=_PATH_SAFE)
    fragment = quote(parts.fragment, safe=_FRAGMENT_SAFE)
    query = urlencode(params)

    # urlunsplit drops an empty fragment, which squashes a bare trailing "#"
    return urlunsplit((scheme, _netloc(parts, scheme), path, query, fragment))


def extract_domain(url: str) -> Optional[str]:
    """Return the hostname of ``url``, or None when it does not parse."""
    try:
        hostname = urlsplit(url.strip()).hostname
    except (ValueError, AttributeError):
        return None
    return hostname or None


def is_valid_http_url(url: str) -> bool:
    """Check that ``url`` parses and uses the http or https scheme."""
    if not isinstance(url, str):
        return False
    return _split_http(url) is not None
