"""
Server handle: adopts a pre-bound listener and drives uvicorn explicitly.

The handle is built in the CONFIGURED state and does nothing until `start()`.
uvicorn owns the accept loop and the graceful drain; the handle only tracks
the lifecycle and ownership of the listener.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import socket
from typing import Any

import uvicorn
from fastapi import FastAPI

from .errors import ConfigurationError, ServerStateError
from .routes import freeze_routes

logger = logging.getLogger(__name__)

STARTUP_POLL_INTERVAL_S = 0.01

_SUPPORTED_FAMILIES = {socket.AF_INET, socket.AF_INET6}
if hasattr(socket, "AF_UNIX"):
    _SUPPORTED_FAMILIES.add(socket.AF_UNIX)


class ServerState(str, enum.Enum):
    CONFIGURED = "configured"
    RUNNING = "running"
    STOPPED = "stopped"


def adopt_listener(listener: Any) -> tuple[socket.socket, Any]:
    """
    Validate a caller-supplied listener and return it with its bound address.

    Raises ConfigurationError if the socket is closed, of the wrong kind,
    already listening, or not bound to an address yet.
    """
    if not isinstance(listener, socket.socket):
        raise ConfigurationError(f"Listener must be a socket.socket, got {type(listener).__name__}.")
    if listener.fileno() == -1:
        raise ConfigurationError("Listener is closed.")
    if listener.type != socket.SOCK_STREAM:
        raise ConfigurationError("Listener must be a stream (TCP) socket.")
    if listener.family not in _SUPPORTED_FAMILIES:
        raise ConfigurationError(f"Unsupported listener address family: {listener.family!r}.")

    try:
        address = listener.getsockname()
    except OSError as exc:
        raise ConfigurationError(f"Listener address is unavailable: {exc}") from exc

    if listener.family == socket.AF_INET or listener.family == socket.AF_INET6:
        if address[1] == 0:
            raise ConfigurationError("Listener is not bound to a port.")
    elif not address:
        raise ConfigurationError("Listener is not bound to a path.")

    if hasattr(socket, "SO_ACCEPTCONN") and listener.getsockopt(socket.SOL_SOCKET, socket.SO_ACCEPTCONN):
        raise ConfigurationError("Listener is already listening; pass a bound socket that is not yet accepting.")

    return listener, address


class ServerHandle:
    """
    A fully configured server that has not started accepting connections.

    Lifecycle: CONFIGURED -> RUNNING -> STOPPED. A stopped handle cannot be
    restarted; build a new one with `startup.run`.
    """

    def __init__(
        self,
        app: FastAPI,
        listener: socket.socket,
        *,
        graceful_shutdown_timeout: float | None = None,
    ) -> None:
        self._listener, self._address = adopt_listener(listener)
        self.app = app
        self.routes = freeze_routes(app)
        config = uvicorn.Config(
            app,
            lifespan="off",
            # Logging backend is configured by the process, not by uvicorn.
            log_config=None,
            access_log=False,
            timeout_graceful_shutdown=graceful_shutdown_timeout,
        )
        self._server = uvicorn.Server(config)
        self._task: asyncio.Task[None] | None = None
        self._state = ServerState.CONFIGURED

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def address(self) -> Any:
        return self._address

    async def start(self) -> None:
        """
        Begin accepting connections; returns once the listener is serving.
        """
        if self._state is not ServerState.CONFIGURED:
            raise ServerStateError(f"Cannot start a server in state '{self._state.value}'.")

        self._state = ServerState.RUNNING
        self._task = asyncio.create_task(self._server.serve(sockets=[self._listener]))
        self._task.add_done_callback(self._on_serve_done)

        while not self._server.started:
            if self._task.done():
                self._state = ServerState.STOPPED
                self._listener.close()
                await self._task
                raise ServerStateError("Server exited during startup.")
            await asyncio.sleep(STARTUP_POLL_INTERVAL_S)

        logger.info("server_started address=%s", self._address)

    async def stop(self) -> None:
        """
        Stop accepting and wait for in-flight requests to finish.
        """
        if self._state is ServerState.STOPPED:
            return

        if self._task is None:
            self._listener.close()
            self._state = ServerState.STOPPED
            logger.info("server_stopped address=%s started=false", self._address)
            return

        self._server.should_exit = True
        try:
            await self._task
        finally:
            self._state = ServerState.STOPPED
            self._listener.close()

    async def wait(self) -> None:
        """
        Block until the server has stopped (signal, `stop()`, or listener failure).
        """
        if self._task is None:
            raise ServerStateError("Server was never started.")
        await self._task

    def _on_serve_done(self, task: asyncio.Task[None]) -> None:
        self._state = ServerState.STOPPED
        self._listener.close()
        if task.cancelled():
            logger.warning("server_cancelled address=%s", self._address)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("server_failed address=%s", self._address, exc_info=exc)
            return
        logger.info("server_stopped address=%s", self._address)
