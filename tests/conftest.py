"""
Shared pytest fixtures.

The `api/` directory is on sys.path via `pythonpath` in pyproject.toml, so
tests import `startup`, `core`, ... exactly as the entrypoint does.
"""

from __future__ import annotations

import logging
import socket
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Support `from fakes import ...` in test modules.
_tests_dir = Path(__file__).parent
if str(_tests_dir) not in sys.path:
    sys.path.insert(0, str(_tests_dir))

from fakes import FakePool, serving  # noqa: E402


@pytest.fixture
def listener():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    yield sock
    sock.close()


@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool()


@pytest.fixture(autouse=True)
def _capture_info_logs(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)


@pytest_asyncio.fixture
async def server(listener, fake_pool):
    async with serving(listener, fake_pool) as handle:
        yield handle
