"""Websocket server command for arbor CLI."""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arbor import ScriptApi

logger = logging.getLogger(__name__)


def cmd_serve(args, api: "ScriptApi"):
    """Run the websocket server that pushes script log batches to clients."""
    import uvicorn

    from arbor.notifications import NotificationScheduler
    from arbor.server import create_app
    from arbor.ws import MessageHub

    hub = MessageHub()
    scheduler = NotificationScheduler(hub, interval=api.settings.log_debounce_seconds)
    app = create_app(hub=hub, cache=api.cache, scheduler=scheduler, settings=api.settings)

    host = args.host or api.settings.host
    port = args.port or api.settings.port
    print(f"Serving arbor on ws://{host}:{port}/ws")
    uvicorn.run(app, host=host, port=port, log_level=api.settings.log_level.lower())
