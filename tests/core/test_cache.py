from visited_links.config import HighlightConfig
from visited_links.core.cache import ResultCache


URLS = ["https://x.com/a", "https://x.com/b"]


def test_lookup_misses_until_stored():
    cache = ResultCache()
    config = HighlightConfig()

    assert cache.lookup(1, URLS, config) is None

    cache.store(1, URLS, config, {"https://x.com/a"})

    assert cache.lookup(1, list(reversed(URLS)), config) == {"https://x.com/a"}
    assert 1 in cache


def test_lookup_misses_when_candidates_or_config_differ():
    cache = ResultCache()
    config = HighlightConfig()
    cache.store(1, URLS, config, {"https://x.com/a"})

    assert cache.lookup(1, URLS + ["https://x.com/c"], config) is None
    assert cache.lookup(1, URLS, HighlightConfig(ignore_params=["utm_source"])) is None


def test_stored_entry_is_isolated_from_later_config_mutation():
    cache = ResultCache()
    config = HighlightConfig()
    cache.store(1, URLS, config, set())

    config.ignore_params.append("ref")

    assert cache.lookup(1, URLS, HighlightConfig()) == set()


def test_invalidate_all_clears_every_tab():
    cache = ResultCache()
    config = HighlightConfig()
    cache.store(1, URLS, config, set())
    cache.store(2, URLS, config, set())

    cache.invalidate_all()

    assert len(cache) == 0
    assert cache.lookup(1, URLS, config) is None


def test_invalidate_tab_only_touches_that_tab():
    cache = ResultCache()
    config = HighlightConfig()
    cache.store(1, URLS, config, set())
    cache.store(2, URLS, config, set())

    cache.invalidate_tab(1)
    cache.remove_tab(99)

    assert 1 not in cache
    assert 2 in cache


def test_remove_tab_drops_entry():
    cache = ResultCache()
    cache.store("tab", URLS, HighlightConfig(), set())

    cache.remove_tab("tab")

    assert len(cache) == 0


def test_store_is_dropped_when_tab_was_invalidated_meanwhile():
    cache = ResultCache()
    config = HighlightConfig()

    before = cache.generation(1)
    cache.invalidate_tab(1)

    assert cache.store(1, URLS, config, set(), generation=before) is False
    assert 1 not in cache

    current = cache.generation(1)
    assert cache.store(1, URLS, config, set(), generation=current) is True
    assert 1 in cache


def test_generation_changes_on_every_invalidation_kind():
    cache = ResultCache()
    seen = {cache.generation(1)}

    cache.invalidate_all()
    seen.add(cache.generation(1))
    cache.invalidate_tab(1)
    seen.add(cache.generation(1))
    cache.remove_tab(1)
    seen.add(cache.generation(1))

    assert len(seen) == 4


def test_other_tabs_keep_their_generation():
    cache = ResultCache()
    before = cache.generation(2)

    cache.invalidate_tab(1)
    cache.remove_tab(3)

    assert cache.generation(2) == before
