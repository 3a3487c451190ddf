"""The HTTP server: routes, user context, and the command that runs it all."""

from __future__ import annotations

import argparse
import asyncio
import html
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from aiohttp import web

from .bus import Bus
from .models import UserContext
from .websocket import WebsocketHandler

_SHUTDOWN_TIMEOUT = 5.0


@web.middleware
async def _user_middleware(request: web.Request, handler):
    if not request.path.startswith("/auth"):
        request["user"] = UserContext.anonymous()
    return await handler(request)


def _render_index(user: UserContext) -> str:
    if user.logged_in:
        status = f"Logged in as {html.escape(user.discord_user.username)}"
    else:
        status = "Not logged in"
    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8"><title>Tournament</title></head>'
        f"<body><p>{status}</p></body></html>\n"
    )


class Handler:
    """The web application and the server that runs it."""

    def __init__(
        self,
        ws_handler: WebsocketHandler,
        log: Optional[logging.Logger] = None,
        static_dir="static",
    ) -> None:
        self._ws = ws_handler
        self._log = log or logging.getLogger(__name__)
        self._runner: Optional[web.AppRunner] = None
        self._stopped: Optional[asyncio.Event] = None

        self.app = web.Application(middlewares=[_user_middleware])
        static = Path(static_dir)
        if static.is_dir():
            self.app.router.add_static("/static", static)
        self.app.router.add_get("/", self._index)
        self.app.router.add_get("/connect", self._connect)

    @property
    def addresses(self) -> List[Tuple]:
        """The socket addresses the server listens on while serving."""
        return list(self._runner.addresses) if self._runner else []

    async def _index(self, request: web.Request) -> web.Response:
        user = request.get("user")
        if not isinstance(user, UserContext):
            return web.Response(status=500, text="internal server error context")
        return web.Response(status=200, text=_render_index(user), content_type="text/html")

    async def _connect(self, request: web.Request) -> web.StreamResponse:
        return await self._ws.new_connection(request)

    async def serve(self, host: str, port: int) -> None:
        """Listen on ``host``:``port`` until stopped; an empty host means all interfaces."""
        self._stopped = asyncio.Event()
        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(runner, host or None, port)
        try:
            await site.start()
        except OSError as exc:
            await runner.cleanup()
            raise RuntimeError(f"failed to start server: {exc}") from exc
        self._runner = runner
        await self._stopped.wait()

    async def stop(self) -> None:
        """Shut the server down and let ``serve`` return."""
        runner, self._runner = self._runner, None
        try:
            if runner is not None:
                await runner.cleanup()
        finally:
            if self._stopped is not None:
                self._stopped.set()


async def _run(host: str, port: int, log: logging.Logger) -> None:
    ws_handler = WebsocketHandler(Bus(), log)
    handler = Handler(ws_handler, log)

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, shutdown.set)
    except (NotImplementedError, RuntimeError):
        pass

    async def serve_rest() -> None:
        try:
            await handler.serve(host, port)
        except RuntimeError as exc:
            log.error("failed to start rest handler err=%s", exc)

    ws_task = asyncio.create_task(ws_handler.serve())
    rest_task = asyncio.create_task(serve_rest())

    await shutdown.wait()
    log.info("Shutting down...")

    try:
        await asyncio.wait_for(handler.stop(), _SHUTDOWN_TIMEOUT)
    except asyncio.TimeoutError:
        log.error("failed to stop rest handler err=timed out")
    await ws_handler.stop()
    await asyncio.wait({ws_task, rest_task}, timeout=1.0)


def main(argv=None) -> int:
    """Run the tournament server until interrupted."""
    parser = argparse.ArgumentParser(prog="optourney", description="Run the tournament server.")
    parser.add_argument("--host", default="", help="interface to listen on (default: all)")
    parser.add_argument("--port", type=int, default=3000, help="port to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG,
        stream=sys.stdout,
        format="time=%(asctime)s level=%(levelname)s msg=%(message)s",
    )
    log = logging.getLogger("optourney")
    try:
        asyncio.run(_run(args.host, args.port, log))
    except KeyboardInterrupt:
        log.info("Shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())