#!/usr/bin/env python3
"""
KV-Engine Line Client

Talks to a running `python -m kvengine.server` over its text protocol.

Usage:
    python scripts/client.py                        # Interactive prompt on localhost:7171
    python scripts/client.py GET user:1             # Run one command and exit
    python scripts/client.py --port 8080 < cmds.txt # Run one command per input line
    python scripts/client.py --raw LRANGE feed 0 -1 # Print the raw response line

Prompt commands:
    help        Show the command summary
    reconnect   Drop and re-open the connection
    exit        Leave the prompt (also Ctrl-D)
"""

import argparse
import socket
import sys
from typing import Optional, Tuple

# Command history with arrow keys where readline exists
try:
    import readline  # noqa: F401
except ImportError:
    pass

COMMAND_SUMMARY = """
Keys      SET key value [ttl] | GET | DEL key [key ...] | EXISTS | EXPIRE key secs
          TTL | PERSIST | TYPE | KEYS [pattern]
Counters  INCR | INCRBY key n | DECR | DECRBY key n | APPEND key s | STRLEN
Lists     LPUSH/RPUSH key v [v ...] | LPOP | RPOP | LRANGE key start stop
          LTRIM key start stop | LLEN
Sets      SADD/SREM key m [m ...] | SISMEMBER key m | SMEMBERS | SCARD
Hashes    HSET key f v [f v ...] | HGET key f | HDEL key f [f ...] | HGETALL
          HINCRBY key f n | HLEN
Sorted    ZADD key score member [score member ...] | ZINCRBY key n member
          ZREM | ZSCORE key m | ZRANK key m | ZRANGE key start stop [WITHSCORES]
          ZCARD
Other     PUBLISH channel message | PING [msg] | QUIT
"""


class LineClient:
    """Blocking client for the newline-delimited protocol."""

    def __init__(self, host: str, port: int, timeout: float = 5.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._sock: Optional[socket.socket] = None
        self._file = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self) -> None:
        self._sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        self._file = self._sock.makefile("rb")

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def call(self, line: str) -> Optional[str]:
        """
        Send one request line and read one response line.

        Returns:
            The response without its newline, or None when the server
            closed the connection (the reply to QUIT)
        """
        if not self.connected:
            raise ConnectionError("not connected")
        self._sock.sendall(line.rstrip("\r\n").encode("utf-8") + b"\n")
        reply = self._file.readline()
        if not reply:
            self.close()
            return None
        return reply.decode("utf-8").rstrip("\r\n")

    def __enter__(self) -> "LineClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def split_reply(reply: str) -> Tuple[str, str]:
    status, _, body = reply.partition(" ")
    return status, body


def render(command: str, reply: Optional[str], raw: bool = False) -> str:
    """Human-friendly rendering of a reply; list replies go one item per line."""
    if reply is None:
        return "(connection closed)"
    if raw:
        return reply
    status, body = split_reply(reply)
    if status == "ERROR":
        return f"(error) {body}"
    name = command.split()[0].upper() if command.split() else ""
    if name in ("LRANGE", "SMEMBERS", "KEYS") and body:
        return "\n".join(f"{i}) {item}" for i, item in enumerate(body.split(), 1))
    if name in ("HGETALL", "ZRANGE") and body:
        parts = body.split()
        if name == "ZRANGE" and not command.upper().endswith("WITHSCORES"):
            return "\n".join(f"{i}) {item}" for i, item in enumerate(parts, 1))
        pairs = zip(parts[0::2], parts[1::2])
        return "\n".join(f"{left} => {right}" for left, right in pairs)
    return body or "(empty)"


def run_lines(client: LineClient, lines, raw: bool) -> int:
    """Run commands from an iterable of lines; returns the number of errors."""
    errors = 0
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        reply = client.call(line)
        print(render(line, reply, raw))
        if reply is None:
            break
        if reply.startswith("ERROR"):
            errors += 1
    return errors


def repl(client: LineClient, raw: bool) -> None:
    print(f"Connected to {client.host}:{client.port}. Type 'help' for commands.")
    while True:
        try:
            line = input(f"{client.host}:{client.port}> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not line:
            continue
        word = line.lower()
        if word == "help":
            print(COMMAND_SUMMARY)
            continue
        if word == "exit":
            break
        if word == "reconnect":
            client.close()
            try:
                client.connect()
                print("Reconnected.")
            except OSError as exc:
                print(f"Reconnect failed: {exc}")
            continue
        if not client.connected:
            print("Not connected; use 'reconnect'.")
            continue
        try:
            reply = client.call(line)
        except OSError as exc:
            print(f"(error) {exc}")
            client.close()
            continue
        print(render(line, reply, raw))
        if reply is None:
            break


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Line client for a KV-Engine server")
    parser.add_argument("--host", default="localhost", help="Server host (default: localhost)")
    parser.add_argument("--port", type=int, default=7171, help="Server port (default: 7171)")
    parser.add_argument("--timeout", type=float, default=5.0, help="Socket timeout in seconds")
    parser.add_argument("--raw", action="store_true", help="Print response lines unchanged")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run once")
    args = parser.parse_args(argv)

    client = LineClient(args.host, args.port, args.timeout)
    try:
        client.connect()
    except OSError as exc:
        print(f"Cannot connect to {args.host}:{args.port}: {exc}", file=sys.stderr)
        print(f"  Start one with: python -m kvengine.server --port {args.port}", file=sys.stderr)
        return 1

    try:
        if args.command:
            return 1 if run_lines(client, [" ".join(args.command)], args.raw) else 0
        if not sys.stdin.isatty():
            return 1 if run_lines(client, sys.stdin, args.raw) else 0
        repl(client, args.raw)
        return 0
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(main())
