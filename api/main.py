"""
Process entrypoint: read settings, set up logging, open the listener and DB
pool, then serve until SIGINT/SIGTERM and close the pool.

    python api/main.py
"""

from __future__ import annotations

import asyncio
import logging
import signal
import socket

import startup
from core import db, settings
from core.log import configure_logging
from core.server import ServerHandle

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def open_listener(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    listener = socket.socket(family, socket.SOCK_STREAM)
    listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        listener.bind((host, port))
    except OSError:
        listener.close()
        raise
    return listener


async def serve_until_signalled(handle: ServerHandle, stop_requested: asyncio.Event) -> None:
    await handle.start()
    stopped = asyncio.create_task(handle.wait())
    signalled = asyncio.create_task(stop_requested.wait())
    try:
        await asyncio.wait({stopped, signalled}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        signalled.cancel()
    await handle.stop()
    await stopped


async def main() -> None:
    configure_logging(settings.log_level())

    # The loop owns these signals for the whole run. uvicorn re-raises the
    # signal it caught once it has drained; it must land here, not on the
    # default action that would kill the process before the pool is closed.
    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()
    for sig in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, stop_requested.set)

    listener = open_listener(settings.app_host(), settings.app_port())
    try:
        db_pool = await db.create_pool()
        try:
            handle = startup.run(
                listener,
                db_pool,
                graceful_shutdown_timeout=settings.graceful_shutdown_timeout_s(),
            )
            await serve_until_signalled(handle, stop_requested)
        finally:
            await db_pool.close()
            logger.info("db_pool_closed")
    finally:
        listener.close()
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)


if __name__ == "__main__":
    asyncio.run(main())
