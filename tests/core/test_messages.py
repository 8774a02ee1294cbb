import pytest
from pydantic import ValidationError

from visited_links.config import HighlightConfig
from visited_links.core.errors import ChannelError, UnknownMessageError
from visited_links.core.messages import (
    Ack,
    CheckVisited,
    CheckVisitedResponse,
    ConfigUpdated,
    GetConfig,
    GetStats,
    LinkStats,
    RefreshHighlights,
    RefreshTab,
    parse_message,
    parse_response,
)
from visited_links.core.router import (
    LocalPageChannel,
    Router,
    background_router,
    page_router,
)


@pytest.mark.parametrize(
    "data, kind",
    [
        ({"action": "check-visited", "urls": ["https://x.com/"]}, CheckVisited),
        ({"action": "get-config"}, GetConfig),
        ({"action": "config-updated"}, ConfigUpdated),
        ({"action": "refresh-tab"}, RefreshTab),
        ({"action": "refresh-highlights"}, RefreshHighlights),
        ({"action": "get-stats"}, GetStats),
    ],
)
def test_parse_message_picks_model_by_action(data, kind):
    assert isinstance(parse_message(data), kind)


def test_unknown_action_is_rejected():
    with pytest.raises(ValidationError):
        parse_message({"action": "delete-history"})


def test_check_visited_response_uses_wire_names():
    response = parse_response(
        CheckVisited(urls=[]),
        {"visitedUrls": ["https://x.com/"], "config": {"ignoreParams": ["ref"], "highlightTextColor": "abc"}},
    )

    assert response.visited_urls == ["https://x.com/"]
    assert response.config.ignore_params == ["ref"]
    assert response.config.highlight_color == "#AABBCC"
    assert response.model_dump(by_alias=True)["visitedUrls"] == ["https://x.com/"]


def test_response_models_per_kind():
    assert parse_response(RefreshTab(), {"success": True}) == Ack()
    assert parse_response(GetStats(), {"visited": 2, "total": 8}) == LinkStats(visited=2, total=8)
    assert isinstance(parse_response(GetConfig(), {}), HighlightConfig)


@pytest.mark.parametrize("visited, total, percent", [(0, 0, 0), (1, 3, 33), (2, 3, 67), (4, 4, 100)])
def test_link_stats_percent(visited, total, percent):
    assert LinkStats(visited=visited, total=total).percent == percent


def test_empty_check_visited_response_defaults():
    response = CheckVisitedResponse()

    assert response.visited_urls == []
    assert response.config == HighlightConfig()
    assert response.error is None


async def _ack(message, sender):
    return Ack()


def test_router_refuses_missing_handler():
    with pytest.raises(UnknownMessageError, match="GetStats"):
        page_router({RefreshHighlights: _ack})


def test_router_refuses_kinds_served_by_the_other_side():
    with pytest.raises(UnknownMessageError, match="RefreshHighlights"):
        background_router({
            CheckVisited: _ack,
            GetConfig: _ack,
            ConfigUpdated: _ack,
            RefreshTab: _ack,
            RefreshHighlights: _ack,
        })


async def test_router_dispatch_rejects_unserved_kind():
    router = Router({GetStats: _ack}, serves=[GetStats])

    assert await router.dispatch(GetStats()) == Ack()
    with pytest.raises(UnknownMessageError):
        await router.dispatch(GetConfig())


async def test_page_channel_without_listener_raises_channel_error():
    channel = LocalPageChannel()

    with pytest.raises(ChannelError):
        await channel.send(RefreshHighlights())

    channel.attach(page_router({RefreshHighlights: _ack, GetStats: _ack}))
    assert await channel.send(RefreshHighlights()) == Ack()
