"""
Tests for the Async TCP Server

These tests verify:
- Server startup and connection handling
- Commands over the wire for every value kind
- Error responses and QUIT
- Concurrent clients sharing one engine

Run with: python -m pytest tests/test_server.py -v
"""

import asyncio

import pytest

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
class TestServerBasics:
    """Test basic server functionality."""

    async def test_server_starts(self, server):
        assert server.is_running()
        assert server.engine.sweeper.is_running()

    async def test_ping(self, server, client_factory):
        async with client_factory() as client:
            assert await client.send_command("PING") == "OK PONG"

    async def test_set_get(self, server, client_factory):
        async with client_factory() as client:
            assert await client.send_command("SET greeting hello") == "OK stored"
            assert await client.send_command("GET greeting") == "OK hello"
            assert await client.send_command("GET missing") == "OK (nil)"

    async def test_invalid_command(self, server, client_factory):
        async with client_factory() as client:
            assert await client.send_command("FLY away") == "ERROR invalid command"
            assert await client.send_command("GET") == "ERROR invalid command"
            # Connection still usable
            assert await client.send_command("PING") == "OK PONG"

    async def test_engine_error(self, server, client_factory):
        async with client_factory() as client:
            await client.send_command("SET name alice")
            response = await client.send_command("INCR name")
            assert response.startswith("ERROR value is not an integer")

    async def test_quit(self, server, client_factory):
        async with client_factory() as client:
            client.writer.write(b"QUIT\n")
            await client.writer.drain()
            data = await asyncio.wait_for(client.reader.read(), timeout=2)
            assert data == b""


@pytest.mark.asyncio
class TestServerDataTypes:
    """Test collection commands over the wire."""

    async def test_lists(self, server, client_factory):
        async with client_factory() as client:
            assert await client.send_command("LPUSH recent a b c") == "OK 3"
            assert await client.send_command("LRANGE recent 0 1") == "OK c b"

    async def test_leaderboard(self, server, client_factory):
        async with client_factory() as client:
            await client.send_command("ZADD board 10 bob 10 alice 5 carol")
            assert await client.send_command("ZRANGE board 0 -1") == "OK carol alice bob"
            assert await client.send_command("ZRANGE board 0 0 WITHSCORES") == "OK carol 5"

    async def test_hashes(self, server, client_factory):
        async with client_factory() as client:
            assert await client.send_command("HSET user:1 name alice") == "OK 1"
            assert await client.send_command("HGETALL user:1") == "OK name alice"

    async def test_ttl_expiry(self, server, client_factory):
        async with client_factory() as client:
            await client.send_command("SET temp value 1")
            assert await client.send_command("TTL temp") == "OK 1"
            await asyncio.sleep(1.2)
            assert await client.send_command("GET temp") == "OK (nil)"


@pytest.mark.asyncio
class TestServerConcurrency:
    """Test multiple clients against one engine."""

    async def test_shared_engine(self, server, client_factory):
        async with client_factory() as writer_client, client_factory() as reader_client:
            await writer_client.send_command("SET shared value")
            assert await reader_client.send_command("GET shared") == "OK value"

    async def test_concurrent_increments(self, server, client_factory):
        async def worker():
            async with client_factory() as client:
                for _ in range(50):
                    await client.send_command("INCR counter")

        await asyncio.gather(*(worker() for _ in range(5)))

        async with client_factory() as client:
            assert await client.send_command("GET counter") == "OK 250"

    async def test_stats(self, server, client_factory):
        async with client_factory() as client:
            await client.send_command("SET a 1")

        stats = server.get_stats()
        assert stats["total_connections"] >= 1
        assert stats["total_requests"] >= 1
        assert stats["engine_stats"]["keyspace"]["active_keys"] == 1
