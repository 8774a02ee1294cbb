"""
History stores: the read-only record of previously navigated URLs.

Stores are searched by free text (typically a domain) the way a browser's
history API is, not by exact URL.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..logging import setup_logger
from .errors import HistoryQueryError

logger = setup_logger("visited_links.history")

DEFAULT_MAX_RESULTS = 10000

CHROMIUM_QUERY = text(
    "SELECT url FROM urls "
    "WHERE url LIKE :pattern ESCAPE '\\' OR title LIKE :pattern ESCAPE '\\' "
    "ORDER BY last_visit_time DESC LIMIT :limit"
)

FIREFOX_QUERY = text(
    "SELECT url FROM moz_places "
    "WHERE visit_count > 0 AND (url LIKE :pattern ESCAPE '\\' OR title LIKE :pattern ESCAPE '\\') "
    "ORDER BY last_visit_date DESC LIMIT :limit"
)


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class HistoryStore(ABC):
    """Abstract base class for history sources."""

    @abstractmethod
    async def search(self, text: str, max_results: int = DEFAULT_MAX_RESULTS) -> List[str]:
        """Return URLs of history entries whose URL or title contains ``text``."""
        pass

    async def close(self):
        """Release any resources held by the store."""
        return None


class InMemoryHistoryStore(HistoryStore):
    """History kept in a Python list, newest entry last."""

    def __init__(self, urls: Optional[Iterable[str]] = None):
        self._urls: List[str] = list(urls or [])

    def add(self, url: str):
        self._urls.append(url)

    def __len__(self) -> int:
        return len(self._urls)

    async def search(self, text: str, max_results: int = DEFAULT_MAX_RESULTS) -> List[str]:
        needle = text.lower()
        matches = [url for url in reversed(self._urls) if needle in url.lower()]
        return matches[:max_results]


class SqliteHistoryStore(HistoryStore):
    """
    Read-only access to a browser history database.

    Supports the Chromium ``History`` file (``urls`` table) and the Firefox
    ``places.sqlite`` file (``moz_places`` table). The flavour is detected from
    the schema on first use. The database is opened read-only so a copy held
    by a running browser is never modified.
    """

    def __init__(self, path: str, engine: Optional[AsyncEngine] = None):
        self.path = Path(path)
        self.engine = engine
        self.flavour: Optional[str] = None

    def _ensure_engine(self) -> AsyncEngine:
        if self.engine is None:
            if not self.path.exists():
                raise HistoryQueryError(f"History database not found: {self.path}")
            url = f"sqlite+aiosqlite:///file:{self.path.resolve()}?mode=ro&uri=true"
            self.engine = create_async_engine(url)
            logger.debug(f"Opened history database {self.path}")
        return self.engine

    async def _detect_flavour(self, conn) -> str:
        result = await conn.execute(
            text("SELECT name FROM sqlite_master WHERE type = 'table' AND name IN ('urls', 'moz_places')")
        )
        tables = {row[0] for row in result}
        if "moz_places" in tables:
            return "firefox"
        if "urls" in tables:
            return "chromium"
        raise HistoryQueryError(f"{self.path} is not a Chromium or Firefox history database")

    async def search(self, text: str, max_results: int = DEFAULT_MAX_RESULTS) -> List[str]:
        engine = self._ensure_engine()
        try:
            async with engine.connect() as conn:
                if self.flavour is None:
                    self.flavour = await self._detect_flavour(conn)
                    logger.info(f"Detected {self.flavour} history schema in {self.path}")
                query = FIREFOX_QUERY if self.flavour == "firefox" else CHROMIUM_QUERY
                result = await conn.execute(query, {"pattern": _like_pattern(text), "limit": max_results})
                return [row[0] for row in result]
        except SQLAlchemyError as e:
            raise HistoryQueryError(f"History query for {text!r} failed: {e}") from e

    async def close(self):
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            logger.debug(f"Closed history database {self.path}")
