"""arbor websocket server - FastAPI application.

Clients connect to ``/ws`` and receive every message broadcast through
the :class:`~arbor.ws.MessageHub` (script log batches among them) as JSON.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from arbor.cache import EntityCache
from arbor.config import Settings, get_settings
from arbor.notifications import NotificationScheduler
from arbor.ws import MessageHub

logger = logging.getLogger(__name__)


def create_app(
    hub: Optional[MessageHub] = None,
    cache: Optional[EntityCache] = None,
    scheduler: Optional[NotificationScheduler] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the application around a hub (a fresh one if not given)."""
    settings = settings or get_settings()
    hub = hub or MessageHub()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting arbor server (instance={settings.instance_name})")
        yield
        # push out anything still waiting for its debounce timer
        if scheduler is not None:
            scheduler.flush_all()
        logger.info("Shutting down arbor server")

    app = FastAPI(title="arbor", description="Note graph script API events", lifespan=lifespan)
    app.state.hub = hub
    app.state.cache = cache
    app.state.scheduler = scheduler

    @app.get("/health")
    async def health():
        """Health check with entity counts when a cache is attached."""
        result = {"service": "arbor", "status": "ok", "subscribers": len(hub)}
        if cache is not None:
            result["notes"] = len(cache.notes)
            result["branches"] = len(cache.branches)
        return result

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await websocket.accept()
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        # broadcasts arrive on timer threads; hand them to this socket's loop
        token = hub.subscribe(lambda message: loop.call_soon_threadsafe(queue.put_nowait, message))

        async def forward():
            while True:
                await websocket.send_json(await queue.get())

        async def watch_disconnect():
            while True:
                await websocket.receive_text()

        await websocket.send_json({"type": "connected"})
        tasks = [asyncio.create_task(forward()), asyncio.create_task(watch_disconnect())]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    logger.warning(f"Websocket client error: {exc}")
        finally:
            for task in tasks:
                task.cancel()
            hub.unsubscribe(token)

    return app
