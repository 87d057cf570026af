"""
Bootstrap error types.

Per-request failures never surface here: handler exceptions become HTTP
responses in `core.middleware`, and per-connection socket errors stay inside
uvicorn/asyncio.
"""

from __future__ import annotations


# Raised while wiring the server; no handle is produced.
class ConfigurationError(RuntimeError):
    pass


class ServerStateError(RuntimeError):
    pass
