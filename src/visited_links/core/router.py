"""
Message dispatch and in-process channels.

A ``Router`` only maps message kinds to handlers; all decisions are made by
the handlers themselves.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Optional, Type

from pydantic import BaseModel

from ..logging import setup_logger
from .errors import ChannelError, ContextInvalidatedError, UnknownMessageError
from .messages import BACKGROUND_MESSAGES, PAGE_MESSAGES

logger = setup_logger("visited_links.router")

Handler = Callable[[Any, Optional[Hashable]], Awaitable[BaseModel]]


class Router:
    """
    Dispatches messages to the handler registered for their type.

    ``serves`` lists the message kinds this side of the channel must answer;
    construction fails if any of them lacks a handler, so adding a message kind
    without handling it is caught immediately.
    """

    def __init__(self, handlers: Dict[Type[BaseModel], Handler], serves: Iterable[Type[BaseModel]]):
        serves = tuple(serves)
        missing = [kind.__name__ for kind in serves if kind not in handlers]
        if missing:
            raise UnknownMessageError(f"No handler registered for: {', '.join(missing)}")
        extra = [kind.__name__ for kind in handlers if kind not in serves]
        if extra:
            raise UnknownMessageError(f"Handlers registered for kinds this side does not serve: {', '.join(extra)}")
        self._handlers = dict(handlers)

    @property
    def kinds(self):
        return tuple(self._handlers)

    async def dispatch(self, message: BaseModel, sender: Optional[Hashable] = None) -> BaseModel:
        handler = self._handlers.get(type(message))
        if handler is None:
            raise UnknownMessageError(f"Unhandled message kind: {type(message).__name__}")
        logger.debug(f"Dispatching {getattr(message, 'action', type(message).__name__)} from {sender}")
        return await handler(message, sender)


def background_router(handlers: Dict[Type[BaseModel], Handler]) -> Router:
    return Router(handlers, BACKGROUND_MESSAGES)


def page_router(handlers: Dict[Type[BaseModel], Handler]) -> Router:
    return Router(handlers, PAGE_MESSAGES)


class BackgroundChannel(ABC):
    """Page-side endpoint for talking to the background service."""

    @abstractmethod
    async def send(self, message: BaseModel) -> BaseModel:
        pass


class PageChannel(ABC):
    """Background-side endpoint for talking to one page."""

    @abstractmethod
    async def send(self, message: BaseModel) -> BaseModel:
        pass

    async def close(self):
        return None


class LocalBackgroundChannel(BackgroundChannel):
    """In-process channel from a page (``tab_id``) to a background router."""

    def __init__(self, router: Router, tab_id: Hashable):
        self.router: Optional[Router] = router
        self.tab_id = tab_id
        self.invalidated = False

    def invalidate(self):
        """Simulate the page's host context being torn down."""
        self.invalidated = True
        self.router = None

    async def send(self, message: BaseModel) -> BaseModel:
        if self.invalidated:
            raise ContextInvalidatedError(f"Context for tab {self.tab_id} was invalidated")
        if self.router is None:
            raise ChannelError("Background is not listening")
        return await self.router.dispatch(message, self.tab_id)


class LocalPageChannel(PageChannel):
    """In-process channel from the background to a page router."""

    def __init__(self, router: Optional[Router] = None):
        self.router = router

    def attach(self, router: Router):
        self.router = router

    async def send(self, message: BaseModel) -> BaseModel:
        if self.router is None:
            raise ChannelError("No page script is listening")
        return await self.router.dispatch(message)
