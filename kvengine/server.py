#!/usr/bin/env python3
"""
KV-Engine Server Entry Point

Runs a fresh engine behind the line-protocol server until SIGINT/SIGTERM.

Usage:
    python -m kvengine.server                      # 0.0.0.0:7171
    python -m kvengine.server --port 8080
    python -m kvengine.server --sweep-interval 1   # Active expiry once per second
    python -m kvengine.server --log-level WARNING
    kv-engine --debug                              # Installed console script

Environment Variables:
    KV_ENGINE_HOST, KV_ENGINE_PORT, KV_ENGINE_SWEEP_INTERVAL,
    KV_ENGINE_DEBUG (true/false), KV_ENGINE_LOG_LEVEL
"""

import argparse
import asyncio
import logging
import signal
import sys

from .config.settings import settings
from .engine import KVEngine
from .network.tcp_server import KVServer

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kv-engine",
        description="Serve an embedded KV-Engine over a line protocol",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default=settings.HOST, help="Address to bind")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Port to listen on")
    parser.add_argument(
        "--sweep-interval",
        type=float,
        default=settings.SWEEP_INTERVAL,
        help="Seconds between active expiry passes",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level when --debug is not given",
    )
    parser.add_argument("--debug", action="store_true", default=settings.DEBUG, help="Log at DEBUG")
    return parser


def setup_logging(debug: bool = False, level: str = None) -> None:
    """Send log records to stdout; --debug wins over --log-level."""
    if debug:
        resolved = logging.DEBUG
    else:
        resolved = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stdout)])


async def serve(server: KVServer) -> None:
    """Run the server until a termination signal arrives."""
    loop = asyncio.get_running_loop()
    serving = asyncio.create_task(server.start())

    if sys.platform != "win32":
        def request_stop(sig: signal.Signals) -> None:
            logger.info(f"Received {sig.name}, shutting down")
            loop.create_task(server.stop())

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, request_stop, sig)

    try:
        await serving
    finally:
        await server.stop()


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug, level=args.log_level)

    engine = KVEngine(sweep_interval=args.sweep_interval)
    server = KVServer(host=args.host, port=args.port, engine=engine)
    logger.info(
        f"Starting KV-Engine on {args.host}:{args.port} "
        f"(sweep every {args.sweep_interval}s, debug={args.debug})"
    )

    try:
        asyncio.run(serve(server))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
