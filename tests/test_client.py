import pytest
from aiohttp import web
from aiohttp import test_utils

from visited_links.client import HttpBackgroundChannel, HttpPageChannel
from visited_links.core.errors import ChannelError, ContextInvalidatedError
from visited_links.core.messages import Ack, CheckVisited, CheckVisitedResponse, GetStats, LinkStats, RefreshTab


@pytest.fixture
async def server():
    received = []

    async def messages(request):
        body = await request.json()
        received.append((body["action"], request.query.get("tab_id")))
        if body["action"] == "check-visited":
            return web.json_response({"visitedUrls": body["urls"][:1], "config": {"ignoreParams": ["ref"]}})
        return web.json_response({"success": True})

    async def page(request):
        return web.json_response({"visited": 1, "total": 4})

    async def garbage(request):
        return web.json_response({"visited": "many"})

    async def broken(request):
        return web.Response(status=500, text="boom")

    app = web.Application()
    app.router.add_post("/messages", messages)
    app.router.add_post("/page", page)
    app.router.add_post("/garbage", garbage)
    app.router.add_post("/broken", broken)
    server = test_utils.TestServer(app)
    await server.start_server()
    server.received = received
    yield server
    await server.close()


async def test_background_channel_posts_messages(server):
    async with HttpBackgroundChannel(str(server.make_url("/")), tab_id=3) as channel:
        response = await channel.send(CheckVisited(urls=["https://x.com/a", "https://x.com/b"]))
        ack = await channel.send(RefreshTab())

    assert isinstance(response, CheckVisitedResponse)
    assert response.visited_urls == ["https://x.com/a"]
    assert response.config.ignore_params == ["ref"]
    assert ack == Ack()
    assert server.received == [("check-visited", "3"), ("refresh-tab", "3")]


async def test_closed_background_channel_reports_invalidated_context(server):
    channel = HttpBackgroundChannel(str(server.make_url("/")), tab_id=1)
    await channel.close()

    with pytest.raises(ContextInvalidatedError):
        await channel.send(RefreshTab())


async def test_page_channel_parses_stats(server):
    async with HttpPageChannel(str(server.make_url("/page"))) as channel:
        stats = await channel.send(GetStats())

    assert stats == LinkStats(visited=1, total=4)


@pytest.mark.parametrize("path", ["/missing", "/broken", "/garbage"])
async def test_page_channel_failures_become_channel_errors(server, path):
    async with HttpPageChannel(str(server.make_url(path))) as channel:
        with pytest.raises(ChannelError):
            await channel.send(GetStats())


async def test_unreachable_host_is_a_channel_error():
    async with HttpPageChannel("http://127.0.0.1:9/page", timeout=2) as channel:
        with pytest.raises(ChannelError):
            await channel.send(GetStats())
