"""
Shared fixtures.

Engine-level tests run against a FakeClock so expiry is exact; server tests
use a real-clock engine on a free loopback port.
"""

import asyncio
import socket
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio

from kvengine.cache.keyspace import Keyspace
from kvengine.engine import KVEngine
from kvengine.network.tcp_server import KVServer
from kvengine.protocol.executor import CommandExecutor
from kvengine.protocol.parser import ProtocolParser

LOOPBACK = "127.0.0.1"
STARTUP_TIMEOUT = 2.0


class FakeClock:
    """Deterministic time source; tests move it forward with advance()."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def keyspace(clock: FakeClock) -> Keyspace:
    return Keyspace(clock=clock)


@pytest.fixture
def engine(clock: FakeClock) -> KVEngine:
    """Fake-clock engine; its sweeper is never started."""
    return KVEngine(clock=clock)


@pytest.fixture
def parser() -> ProtocolParser:
    return ProtocolParser()


@pytest.fixture
def executor(engine: KVEngine) -> CommandExecutor:
    return CommandExecutor(engine)


@pytest.fixture
def server_port() -> int:
    """An ephemeral port the OS just handed out."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((LOOPBACK, 0))
        return sock.getsockname()[1]
    finally:
        sock.close()


@pytest_asyncio.fixture
async def server(server_port: int) -> AsyncGenerator[KVServer, None]:
    """Running server with a real-clock engine, torn down after the test."""
    srv = KVServer(host=LOOPBACK, port=server_port, engine=KVEngine())
    task = asyncio.create_task(srv.start())

    deadline = asyncio.get_running_loop().time() + STARTUP_TIMEOUT
    while not srv.is_running():
        if task.done():
            task.result()
        if asyncio.get_running_loop().time() > deadline:
            raise RuntimeError(f"server did not start on port {server_port}")
        await asyncio.sleep(0.01)

    yield srv

    await srv.stop()
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


class AsyncClient:
    """One line-protocol connection; use as `async with`."""

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None

    async def __aenter__(self) -> "AsyncClient":
        self.reader, self.writer = await asyncio.open_connection(self.host, self.port)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.writer is None:
            return
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            pass

    async def send_command(self, line: str) -> str:
        """Write one request line and return the reply without its newline."""
        self.writer.write(line.rstrip("\n").encode() + b"\n")
        await self.writer.drain()
        reply = await asyncio.wait_for(self.reader.readline(), timeout=STARTUP_TIMEOUT)
        return reply.decode().rstrip("\r\n")


@pytest.fixture
def client_factory(server_port: int) -> Callable[[], AsyncClient]:
    return lambda: AsyncClient(LOOPBACK, server_port)


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: real-time tests (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: tests spanning several components")
