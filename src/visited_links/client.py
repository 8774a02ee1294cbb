"""
HTTP channels between pages and the background API.
"""

from typing import Hashable, Optional

import aiohttp
from pydantic import BaseModel, ValidationError

from .logging import setup_logger
from .core.errors import ChannelError, ContextInvalidatedError
from .core.messages import parse_response
from .core.router import BackgroundChannel, PageChannel

logger = setup_logger("visited_links.client")

DEFAULT_TIMEOUT = 30


class _HttpChannel:
    """Shared aiohttp plumbing: lazily created or borrowed session."""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, timeout: float = DEFAULT_TIMEOUT):
        self.session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.closed = False

    async def __aenter__(self):
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            logger.debug("Created aiohttp session")
        return self.session

    async def close(self):
        self.closed = True
        if self.session is not None and self._owns_session:
            await self.session.close()
            logger.debug("Closed aiohttp session")
        self.session = None

    async def _post(self, url: str, message: BaseModel, params: Optional[dict] = None) -> BaseModel:
        session = self._ensure_session()
        try:
            async with session.post(url, json=message.model_dump(mode="json"), params=params) as response:
                if response.status in (404, 405, 503):
                    raise ChannelError(f"{url} is not listening (status {response.status})")
                if response.status >= 400:
                    detail = await response.text()
                    raise ChannelError(f"{url} rejected {message.action}: {response.status} {detail}")
                data = await response.json()
        except aiohttp.ClientError as e:
            raise ChannelError(f"Could not reach {url}: {e}") from e
        try:
            return parse_response(message, data)
        except ValidationError as e:
            raise ChannelError(f"Unexpected reply to {message.action} from {url}: {e}") from e


class HttpBackgroundChannel(_HttpChannel, BackgroundChannel):
    """Page -> background channel over the ``/messages`` endpoint."""

    def __init__(
        self,
        base_url: str,
        tab_id: Optional[Hashable] = None,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(session=session, timeout=timeout)
        self.base_url = base_url.rstrip("/")
        self.tab_id = tab_id
        logger.debug(f"Initialized background channel to {self.base_url} for tab {tab_id}")

    async def send(self, message: BaseModel) -> BaseModel:
        if self.closed:
            raise ContextInvalidatedError("Background channel was closed")
        params = {"tab_id": str(self.tab_id)} if self.tab_id is not None else None
        return await self._post(f"{self.base_url}/messages", message, params=params)


class HttpPageChannel(_HttpChannel, PageChannel):
    """Background -> page channel posting to a page's callback URL."""

    def __init__(self, callback_url: str, session: Optional[aiohttp.ClientSession] = None, timeout: float = DEFAULT_TIMEOUT):
        super().__init__(session=session, timeout=timeout)
        self.callback_url = callback_url

    async def send(self, message: BaseModel) -> BaseModel:
        if self.closed:
            raise ChannelError(f"Page channel to {self.callback_url} was closed")
        return await self._post(self.callback_url, message)
