import sqlite3

import pytest

from visited_links.core.errors import HistoryQueryError
from visited_links.core.history import InMemoryHistoryStore, SqliteHistoryStore


def _chromium_db(path, rows):
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE urls (id INTEGER PRIMARY KEY, url TEXT, title TEXT, visit_count INTEGER, last_visit_time INTEGER)")
    conn.executemany(
        "INSERT INTO urls (url, title, visit_count, last_visit_time) VALUES (?, ?, 1, ?)",
        [(url, title, i) for i, (url, title) in enumerate(rows)],
    )
    conn.commit()
    conn.close()


def _firefox_db(path, rows):
    conn = sqlite3.connect(path)
    conn.execute(
        "CREATE TABLE moz_places (id INTEGER PRIMARY KEY, url TEXT, title TEXT, visit_count INTEGER, last_visit_date INTEGER)"
    )
    conn.executemany(
        "INSERT INTO moz_places (url, title, visit_count, last_visit_date) VALUES (?, ?, ?, ?)",
        [(url, None, visits, i) for i, (url, visits) in enumerate(rows)],
    )
    conn.commit()
    conn.close()


async def test_in_memory_search_is_case_insensitive_newest_first_and_capped():
    store = InMemoryHistoryStore(["https://x.com/1", "https://y.com/", "https://X.com/2"])

    assert await store.search("x.com") == ["https://X.com/2", "https://x.com/1"]
    assert await store.search("x.com", max_results=1) == ["https://X.com/2"]


async def test_chromium_history_matches_url_and_title(tmp_path):
    db = tmp_path / "History"
    _chromium_db(db, [("https://x.com/a", "A"), ("https://y.com/b", "about x.com"), ("https://z.com/", "Z")])
    store = SqliteHistoryStore(str(db))

    try:
        results = await store.search("x.com")
    finally:
        await store.close()

    assert store.flavour == "chromium"
    assert sorted(results) == ["https://x.com/a", "https://y.com/b"]


async def test_chromium_history_treats_like_wildcards_literally(tmp_path):
    db = tmp_path / "History"
    _chromium_db(db, [("https://my_site.com/", ""), ("https://myXsite.com/", "")])
    store = SqliteHistoryStore(str(db))

    try:
        results = await store.search("my_site.com")
    finally:
        await store.close()

    assert results == ["https://my_site.com/"]


async def test_firefox_history_skips_unvisited_places(tmp_path):
    db = tmp_path / "places.sqlite"
    _firefox_db(db, [("https://x.com/read", 3), ("https://x.com/bookmarked-only", 0)])
    store = SqliteHistoryStore(str(db))

    try:
        results = await store.search("x.com")
        assert store.flavour == "firefox"
    finally:
        await store.close()

    assert results == ["https://x.com/read"]


async def test_missing_database_raises_history_error(tmp_path):
    store = SqliteHistoryStore(str(tmp_path / "missing"))

    with pytest.raises(HistoryQueryError):
        await store.search("x.com")


async def test_unknown_schema_raises_history_error(tmp_path):
    db = tmp_path / "other.sqlite"
    conn = sqlite3.connect(db)
    conn.execute("CREATE TABLE things (id INTEGER)")
    conn.close()
    store = SqliteHistoryStore(str(db))

    try:
        with pytest.raises(HistoryQueryError):
            await store.search("x.com")
    finally:
        await store.close()
