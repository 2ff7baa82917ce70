"""
Preview server tests

HTTP providers and the websocket notification channel, served in-process
with aiohttp's test utilities.
"""

import asyncio

import pytest
from aiohttp import test_utils

from dskit.lib.previewer import PreviewServer
from dskit.models import NotificationTopic


async def clients_wait(server: PreviewServer, count: int = 1) -> None:
    for _ in range(100):
        if len(server.clients) >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError("preview client never registered")


class TestRoutes:
    """Provider endpoints"""

    @pytest.mark.asyncio
    async def test_markup(self, settings):
        server = PreviewServer(settings)
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.get("/api/markup/button/brand")
            assert response.status == 200
            assert "slds-button_brand" in await response.text()

    @pytest.mark.asyncio
    async def test_unknown_markup(self, settings):
        server = PreviewServer(settings)
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.get("/api/markup/button/nope")
            assert response.status == 404
            assert "nope" in (await response.json())["error"]

    @pytest.mark.asyncio
    async def test_broken_markup_module(self, settings, project):
        (project / "ui" / "components" / "button" / "example.py").write_text("variants = {\n")
        server = PreviewServer(settings)
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.get("/api/markup/button/default")
            assert response.status == 500

    @pytest.mark.asyncio
    async def test_comments(self, settings):
        server = PreviewServer(settings)
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.get("/api/comments")
            assert response.status == 200
            assert "@summary Clickable control" in await response.text()

    @pytest.mark.asyncio
    async def test_preview_page(self, settings):
        server = PreviewServer(settings)
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.get("/preview")
            assert response.status == 200
            page = await response.text()
            assert 'href="/assets/styles/index.css"' in page
            assert "Lightning Design System Preview" in page


class TestNotifications:
    """emit() reaches connected preview clients"""

    @pytest.mark.asyncio
    async def test_emit_broadcasts_topic(self, settings):
        server = PreviewServer(settings)
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            first = await client.ws_connect("/events")
            second = await client.ws_connect("/events")
            await clients_wait(server, 2)

            await server.emit(NotificationTopic.STYLES)

            assert await first.receive_json(timeout=2) == {"topic": "styles"}
            assert await second.receive_json(timeout=2) == {"topic": "styles"}
            await first.close()
            await second.close()

    @pytest.mark.asyncio
    async def test_emit_without_clients(self, settings):
        server = PreviewServer(settings)
        await server.emit(NotificationTopic.MARKUP)

    @pytest.mark.asyncio
    async def test_markup_change_end_to_end(self, settings, project):
        """Script edit -> eviction -> markup topic -> fresh markup"""
        server = PreviewServer(settings)
        module = project / "ui" / "components" / "button" / "example.py"
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            ws = await client.ws_connect("/events")
            await clients_wait(server)

            response = await client.get("/api/markup/button/default")
            assert "Default" in await response.text()

            module.write_text('variants = {"default": lambda: "<button>Edited</button>"}\n')
            await server.dispatcher.dispatch(module)

            assert await ws.receive_json(timeout=2) == {"topic": "markup"}
            response = await client.get("/api/markup/button/default")
            assert await response.text() == "<button>Edited</button>"
            await ws.close()
