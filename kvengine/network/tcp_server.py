"""
Line-Protocol TCP Server

Serves one KVEngine to other processes. The engine never performs I/O;
all socket handling lives here.

Each connection is a coroutine that reads one request line, runs it
against the engine and writes one reply line. Engine calls are short and
CPU-bound, so they run inline on the event loop; the engine's own lock
keeps them atomic with respect to the expiry sweeper thread.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional, Set

from ..config.settings import settings
from ..engine import KVEngine
from ..protocol.commands import CommandType, Response, ResponseStatus
from ..protocol.executor import CommandExecutor
from ..protocol.parser import ProtocolParser

logger = logging.getLogger(__name__)


class KVServer:
    """
    asyncio server exposing a KVEngine over the text protocol.

    Usage:
        server = KVServer(port=7171)
        await server.start()    # serves until stop() or cancellation

    Attributes:
        host, port: Listening address
        engine: Engine shared by every connection
        executor: Maps parsed commands onto engine calls
    """

    def __init__(self, host: str = None, port: int = None, engine: KVEngine = None):
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.engine = engine if engine is not None else KVEngine()
        self.parser = ProtocolParser()
        self.executor = CommandExecutor(self.engine)

        self._server: Optional[asyncio.Server] = None
        self._running = False
        self._writers: Set[StreamWriter] = set()
        self._connection_count = 0
        self._total_requests = 0
        self._error_replies = 0

    async def handle_client(self, reader: StreamReader, writer: StreamWriter) -> None:
        """Serve one connection until EOF, QUIT or a transport error."""
        peer = writer.get_extra_info("peername")
        self._connection_count += 1
        self._writers.add(writer)
        logger.debug(f"Connection opened: {peer}")

        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                reply = self._reply_to(line)
                if reply is None:
                    logger.debug(f"QUIT from {peer}")
                    break
                writer.write(reply.encode())
                await writer.drain()
        except (ConnectionResetError, BrokenPipeError):
            logger.debug(f"Connection lost: {peer}")
        except ValueError:
            # StreamReader.readline raises ValueError past the buffer limit
            logger.warning(f"Request line from {peer} exceeded {settings.READ_BUFFER_SIZE} bytes")
        except Exception:
            logger.exception(f"Unexpected error serving {peer}")
        finally:
            self._writers.discard(writer)
            await self._close_writer(writer)
            logger.debug(f"Connection closed: {peer}")

    def _reply_to(self, line: bytes) -> Optional[str]:
        """Encoded reply for one request line; None means close the connection."""
        try:
            text = line.decode("utf-8")
        except UnicodeDecodeError:
            return self._format(Response.error("invalid encoding"))

        command = self.parser.parse_request(text)
        if command.type == CommandType.QUIT:
            return None
        if not command.is_valid:
            return self._format(Response.error("invalid command"))

        self._total_requests += 1
        return self._format(self.executor.execute(command))

    def _format(self, response: Response) -> str:
        if response.status is ResponseStatus.ERROR:
            self._error_replies += 1
        return self.parser.format_response(response)

    @staticmethod
    async def _close_writer(writer: StreamWriter) -> None:
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass

    async def start(self) -> None:
        """
        Bind, start the engine's expiry sweeper and serve until stopped.

        Returns once stop() has closed the listener or the task is cancelled.
        """
        if self._running:
            return

        self._server = await asyncio.start_server(
            self.handle_client, self.host, self.port, limit=settings.READ_BUFFER_SIZE,
        )
        self._running = True
        self.engine.start()
        bound = ", ".join(str(s.getsockname()) for s in self._server.sockets or ())
        logger.info(f"Listening on {bound}")

        try:
            await self._server.serve_forever()
        except asyncio.CancelledError:
            logger.debug("Serve loop cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        """Close the listener and every open connection, then stop the sweeper."""
        self.engine.stop()
        if self._server is None:
            return

        self._server.close()
        for writer in list(self._writers):
            await self._close_writer(writer)
        try:
            await self._server.wait_closed()
        finally:
            self._server = None
            self._running = False
        logger.info("Server stopped")

    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> dict:
        """Connection and request counters plus the engine's own stats."""
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "total_connections": self._connection_count,
            "open_connections": len(self._writers),
            "total_requests": self._total_requests,
            "error_replies": self._error_replies,
            "engine_stats": self.engine.get_stats(),
        }


async def run_server(host: str = None, port: int = None, engine: KVEngine = None) -> None:
    """Create a server and serve until cancelled."""
    server = KVServer(host=host, port=port, engine=engine)
    try:
        await server.start()
    finally:
        await server.stop()
