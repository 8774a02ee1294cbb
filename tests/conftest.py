"""Shared fixtures for the highlighter test suite."""

import os

# Keep test runs from writing a rotating log file into the working tree
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio

import pytest

from visited_links.config import HighlightConfig
from visited_links.core.background import BackgroundService
from visited_links.core.config_store import InMemoryConfigStore
from visited_links.core.errors import HistoryQueryError
from visited_links.core.history import HistoryStore, InMemoryHistoryStore
from visited_links.core.matcher import HistoryMatcher


class RecordingHistoryStore(InMemoryHistoryStore):
    """In-memory history that records every search and can fail chosen domains."""

    def __init__(self, urls=None, failing=()):
        super().__init__(urls)
        self.failing = set(failing)
        self.queries = []

    async def search(self, text, max_results=10000):
        self.queries.append(text)
        if text in self.failing:
            raise HistoryQueryError(f"lookup for {text} exploded")
        return await super().search(text, max_results)


class GatedHistoryStore(RecordingHistoryStore):
    """Answers from history as it was when the search began, once ``gate`` is set."""

    def __init__(self, urls=None):
        super().__init__(urls)
        self.gate = asyncio.Event()
        self.started = asyncio.Event()

    async def search(self, text, max_results=10000):
        result = await super().search(text, max_results)
        self.started.set()
        await self.gate.wait()
        return result


class ExplodingHistoryStore(HistoryStore):
    async def search(self, text, max_results=10000):
        raise AssertionError("history must not be queried")


@pytest.fixture
def history():
    return RecordingHistoryStore()


@pytest.fixture
def make_service():
    def _make(urls=(), config=None, failing=()):
        store = RecordingHistoryStore(urls, failing=failing)
        service = BackgroundService(InMemoryConfigStore(config or HighlightConfig()), HistoryMatcher(store))
        return service, store

    return _make
