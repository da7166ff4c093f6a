"""
conftest.py - Shared Fixtures
===============================
"""

import asyncio
import io
from contextlib import asynccontextmanager, suppress

import pytest
from rich.console import Console

from sendfile.config import Config
from sendfile.console import ConsoleReporter
from sendfile.transfer import FileServer


class CapturedReporter(ConsoleReporter):
    """Reporter that writes into in-memory buffers."""

    def __init__(self):
        self.out_buffer = io.StringIO()
        self.err_buffer = io.StringIO()
        super().__init__(
            out=Console(file=self.out_buffer, highlight=False),
            err=Console(file=self.err_buffer, highlight=False),
        )

    @property
    def out_lines(self):
        return self.out_buffer.getvalue().splitlines()

    @property
    def err_lines(self):
        return self.err_buffer.getvalue().splitlines()


@pytest.fixture
def reporter():
    return CapturedReporter()


@pytest.fixture
def server_config(tmp_path):
    """Loopback server writing into a fresh directory."""
    return Config(
        host='127.0.0.1',
        port=0,
        output_dir=tmp_path / 'received',
        io_timeout=5.0,
        connect_timeout=5.0,
    )


@pytest.fixture
def running_server(server_config, reporter):
    """Factory for a started server that is stopped on exit."""
    @asynccontextmanager
    async def _run(config=None):
        server = FileServer(config or server_config, reporter)
        await server.start()
        task = asyncio.create_task(server.serve_forever())
        try:
            yield server
        finally:
            await server.stop()
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
    return _run


@pytest.fixture
def eventually():
    """Poll a condition until it holds or a deadline passes."""
    async def _wait(predicate, timeout=5.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.01)
    return _wait
