"""The ASGI application.

``ApiApp`` mounts a router behind an ASGI 3.0 callable::

    router = Router()
    router.route("/users/:id", user_schema, {"GET": get_user})

    app = ApiApp(router, ApiConfig(base_path="/api"))

Serve it with any ASGI server. Requests outside ``base_path`` get a 404;
``POST /api/_batch`` is the batch endpoint unless disabled in the config.
"""

import logging
from collections.abc import Callable
from typing import Any

from facet._internal.asgi import Receive, Scope, Send
from facet._internal.invoke import invoke
from facet.config import ApiConfig
from facet.routing.router import Router
from facet.server.handler import handle_request

logger = logging.getLogger("facet.server")


class ApiApp:
    """ASGI entry point wrapping a ``Router`` and an ``ApiConfig``."""

    __slots__ = ("_shutdown_hooks", "_startup_hooks", "config", "router")

    def __init__(self, router: Router, config: ApiConfig | None = None) -> None:
        self.router = router
        self.config = config or ApiConfig()
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []

    def __repr__(self) -> str:
        return f"ApiApp(routes={len(self.router.routes)}, base_path={self.config.base_path!r})"

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup.
        """
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._shutdown_hooks.append(func)
        return func

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        await handle_request(scope, receive, send, router=self.router, config=self.config)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        await invoke(hook)
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    await invoke(hook)
                await send({"type": "lifespan.shutdown.complete"})
                return
