"""
Live preview server

Serves component previews over HTTP and pushes change notifications to
connected browsers over a websocket. A WatchDispatcher running alongside
the server recompiles styles, evicts markup modules and calls emit().

Routes:
    GET /preview                             preview shell page
    GET /api/comments                        documentation comments (text)
    GET /api/markup/{component}/{variant}    rendered markup (HTML)
    GET /events                              websocket, {"topic": "..."} messages
    /assets/*, /*                            static files (assets/, .www/)
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Set

from aiohttp import WSMsgType, web
from loguru import logger

from ..config import AppSettings, appsettings
from ..models.watch import NotificationTopic
from .components import comments_get
from .log import LOG, state_connectToLogger
from .markup import MarkupCache, MarkupError, MarkupProvider
from .paths import PathResolver
from .watch import WatchDispatcher


PREVIEW_PAGE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{title} Preview</title>
  <link id="framework-css" rel="stylesheet" href="{css_url}">
</head>
<body>
  <main id="preview"></main>
  <pre id="comments"></pre>
  <script>
    const params = new URLSearchParams(location.search);
    const component = params.get("component");
    const variant = params.get("variant") || "default";
    const stylesheet = document.getElementById("framework-css");
    async function markupLoad() {{
      if (!component) return;
      const response = await fetch(`/api/markup/${{component}}/${{variant}}`);
      document.getElementById("preview").innerHTML = await response.text();
    }}
    async function commentsLoad() {{
      const response = await fetch("/api/comments");
      document.getElementById("comments").textContent = await response.text();
    }}
    const socket = new WebSocket(`ws://${{location.host}}/events`);
    socket.onmessage = (event) => {{
      const topic = JSON.parse(event.data).topic;
      if (topic === "styles") stylesheet.href = "{css_url}?" + Date.now();
      if (topic === "markup") markupLoad();
      if (topic === "comments") commentsLoad();
    }};
    markupLoad();
  </script>
</body>
</html>
"""


def callback_adapt(computation: Callable[..., Awaitable[Any]]) -> Callable[..., "asyncio.Future[Any]"]:
    """
    Expose a coroutine function through a node-style callback convention.

    The returned function takes the coroutine's arguments followed by a
    callback, schedules the computation and invokes the callback exactly
    once: ``callback(error)`` on failure or ``callback(None, result)`` on
    success. Must be called with a running event loop.

    Example:
        markup_fetch = callback_adapt(provider.markup_get)
        markup_fetch("button", "default", lambda err, html=None: ...)
    """
    def provider(*args: Any) -> "asyncio.Future[Any]":
        *arguments, done = args
        task = asyncio.ensure_future(computation(*arguments))

        def finished(future: "asyncio.Future[Any]") -> None:
            if future.cancelled():
                done(asyncio.CancelledError())
                return
            error = future.exception()
            if error is not None:
                done(error)
            else:
                done(None, future.result())

        task.add_done_callback(finished)
        return task

    return provider


async def provider_await(provider: Callable[..., Any], *args: Any) -> Any:
    """Await a callback-style provider; its error is raised unchanged"""
    future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()

    def done(error: Optional[BaseException] = None, result: Any = None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    provider(*args, done)
    return await future


class PreviewServer:
    """
    HTTP preview endpoint plus change-notification channel

    Attributes:
        settings: Settings in effect
        verbosity: Logging verbosity (read by LOG)
        cache: Markup module cache shared with the dispatcher
        comments_fetch: ``comments_fetch(callback)`` provider
        markup_fetch: ``markup_fetch(component, variant, callback)`` provider
        clients: Connected websocket clients
        dispatcher: Watch dispatcher calling emit()
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or appsettings
        self.verbosity = self.settings.verbosity
        self.paths = PathResolver(self.settings)

        self.cache = MarkupCache(serve_stale=self.settings.serve_stale_markup)
        self.markup = MarkupProvider(self.paths.ui, self.cache)
        self.comments_fetch = callback_adapt(lambda: comments_get(self.paths.ui))
        self.markup_fetch = callback_adapt(self.markup.markup_get)

        self.clients: Set[web.WebSocketResponse] = set()
        self.dispatcher = WatchDispatcher.fromSettings(self.settings, self.emit, self.cache)

        self.app = web.Application()
        self.routes_setup()
        self._runner: Optional[web.AppRunner] = None
        self._watchTask: Optional["asyncio.Task[None]"] = None
        self._stopEvent = asyncio.Event()

    @property
    def cssUrl(self) -> str:
        framework = Path(self.settings.framework_entry).stem
        assets_prefix = Path(self.settings.assets_dir).as_posix()
        output = Path(self.settings.framework_output).as_posix()
        if output.startswith(assets_prefix + "/"):
            output = "assets" + output[len(assets_prefix):]
        return f"/{output}/{framework}.css"

    def routes_setup(self) -> None:
        self.app.router.add_get("/preview", self.preview_handle)
        self.app.router.add_get("/api/comments", self.comments_handle)
        self.app.router.add_get("/api/markup/{component}/{variant}", self.markup_handle)
        self.app.router.add_get("/events", self.events_handle)
        if self.paths.assets.is_dir():
            self.app.router.add_static("/assets", self.paths.assets)
        if self.paths.www.is_dir():
            self.app.router.add_static("/", self.paths.www)

    async def preview_handle(self, request: web.Request) -> web.Response:
        page = PREVIEW_PAGE.format(title=self.settings.display_name, css_url=self.cssUrl)
        return web.Response(text=page, content_type="text/html")

    async def comments_handle(self, request: web.Request) -> web.Response:
        try:
            comments = await provider_await(self.comments_fetch)
        except Exception as e:
            logger.error(f"Comments error: {e}")
            return web.json_response({"error": str(e)}, status=500)
        return web.Response(text=comments, content_type="text/plain")

    async def markup_handle(self, request: web.Request) -> web.Response:
        component = request.match_info["component"]
        variant = request.match_info["variant"]
        try:
            markup = await provider_await(self.markup_fetch, component, variant)
        except MarkupError as e:
            return web.json_response({"error": str(e)}, status=404)
        except Exception as e:
            logger.error(f"Markup error for {component}/{variant}: {e}")
            return web.json_response({"error": str(e)}, status=500)
        return web.Response(text=markup, content_type="text/html")

    async def events_handle(self, request: web.Request) -> web.WebSocketResponse:
        """Register a preview client until it disconnects"""
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.clients.add(ws)
        LOG(f"Preview client connected ({len(self.clients)} total)", level=2)
        try:
            async for message in ws:
                if message.type == WSMsgType.ERROR:
                    logger.warning(f"Preview client error: {ws.exception()}")
        finally:
            self.clients.discard(ws)
        return ws

    async def emit(self, topic: NotificationTopic) -> None:
        """Broadcast a topic to every connected preview client"""
        message = json.dumps({"topic": topic.value})
        clients = [client for client in self.clients if not client.closed]
        LOG(f"emit {topic.value} -> {len(clients)} client(s)", level=2)
        if clients:
            await asyncio.gather(
                *(client.send_str(message) for client in clients),
                return_exceptions=True,
            )

    async def start(self) -> None:
        """Start the HTTP server and the watch session"""
        state_connectToLogger(self)
        (self.paths.root / self.settings.framework_output).mkdir(parents=True, exist_ok=True)
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.settings.preview_host, self.settings.preview_port)
        await site.start()
        self._watchTask = asyncio.create_task(self.dispatcher.run(self._stopEvent))
        LOG(
            f"Previewer available at: http://{self.settings.preview_host}:"
            f"{self.settings.preview_port}/preview",
            level=1,
        )

    async def stop(self) -> None:
        self._stopEvent.set()
        if self._watchTask is not None:
            await self._watchTask
        for client in list(self.clients):
            await client.close()
        if self._runner is not None:
            await self._runner.cleanup()

    async def serve(self) -> None:
        """Run until the process is terminated"""
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()


def main() -> None:
    """Console entry point for the preview server"""
    asyncio.run(PreviewServer().serve())


if __name__ == "__main__":
    main()
