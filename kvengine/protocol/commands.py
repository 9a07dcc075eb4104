"""
Protocol Command and Response Definitions

This module defines the data structures for protocol commands and responses.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class CommandType(Enum):
    """Enumeration of supported command types (value = wire name)."""
    # Keyspace
    SET = "SET"
    GET = "GET"
    DEL = "DEL"
    EXISTS = "EXISTS"
    EXPIRE = "EXPIRE"
    TTL = "TTL"
    PERSIST = "PERSIST"
    TYPE = "TYPE"
    KEYS = "KEYS"
    # Strings / counters
    INCR = "INCR"
    INCRBY = "INCRBY"
    DECR = "DECR"
    DECRBY = "DECRBY"
    APPEND = "APPEND"
    STRLEN = "STRLEN"
    # Lists
    LPUSH = "LPUSH"
    RPUSH = "RPUSH"
    LPOP = "LPOP"
    RPOP = "RPOP"
    LRANGE = "LRANGE"
    LTRIM = "LTRIM"
    LLEN = "LLEN"
    # Sets
    SADD = "SADD"
    SREM = "SREM"
    SISMEMBER = "SISMEMBER"
    SMEMBERS = "SMEMBERS"
    SCARD = "SCARD"
    # Hashes
    HSET = "HSET"
    HGET = "HGET"
    HDEL = "HDEL"
    HGETALL = "HGETALL"
    HINCRBY = "HINCRBY"
    HLEN = "HLEN"
    # Sorted sets
    ZADD = "ZADD"
    ZINCRBY = "ZINCRBY"
    ZREM = "ZREM"
    ZSCORE = "ZSCORE"
    ZRANK = "ZRANK"
    ZRANGE = "ZRANGE"
    ZCARD = "ZCARD"
    # Pub/Sub
    PUBLISH = "PUBLISH"
    # Connection
    PING = "PING"
    QUIT = "QUIT"
    UNKNOWN = "UNKNOWN"


# Allowed argument counts per command: (minimum, maximum); None = unbounded
ARITY: Dict[CommandType, Tuple[int, Optional[int]]] = {
    CommandType.SET: (2, 3),
    CommandType.GET: (1, 1),
    CommandType.DEL: (1, None),
    CommandType.EXISTS: (1, 1),
    CommandType.EXPIRE: (2, 2),
    CommandType.TTL: (1, 1),
    CommandType.PERSIST: (1, 1),
    CommandType.TYPE: (1, 1),
    CommandType.KEYS: (0, 1),
    CommandType.INCR: (1, 1),
    CommandType.INCRBY: (2, 2),
    CommandType.DECR: (1, 1),
    CommandType.DECRBY: (2, 2),
    CommandType.APPEND: (2, 2),
    CommandType.STRLEN: (1, 1),
    CommandType.LPUSH: (2, None),
    CommandType.RPUSH: (2, None),
    CommandType.LPOP: (1, 1),
    CommandType.RPOP: (1, 1),
    CommandType.LRANGE: (3, 3),
    CommandType.LTRIM: (3, 3),
    CommandType.LLEN: (1, 1),
    CommandType.SADD: (2, None),
    CommandType.SREM: (2, None),
    CommandType.SISMEMBER: (2, 2),
    CommandType.SMEMBERS: (1, 1),
    CommandType.SCARD: (1, 1),
    CommandType.HSET: (3, None),
    CommandType.HGET: (2, 2),
    CommandType.HDEL: (2, None),
    CommandType.HGETALL: (1, 1),
    CommandType.HINCRBY: (3, 3),
    CommandType.HLEN: (1, 1),
    CommandType.ZADD: (3, None),
    CommandType.ZINCRBY: (3, 3),
    CommandType.ZREM: (2, None),
    CommandType.ZSCORE: (2, 2),
    CommandType.ZRANK: (2, 2),
    CommandType.ZRANGE: (3, 4),
    CommandType.ZCARD: (1, 1),
    CommandType.PUBLISH: (2, 2),
    CommandType.PING: (0, 1),
    CommandType.QUIT: (0, 0),
}


@dataclass
class Command:
    """
    Represents a parsed protocol command.

    Attributes:
        type: The type of command (UNKNOWN for anything unparseable)
        args: Arguments following the command name
        raw: The original raw command string
    """
    type: CommandType
    args: List[str] = field(default_factory=list)
    raw: str = ""

    @property
    def key(self) -> str:
        """First argument, which is the key for every keyed command."""
        return self.args[0] if self.args else ""

    @property
    def is_valid(self) -> bool:
        """Check that the argument count fits the command."""
        if self.type == CommandType.UNKNOWN:
            return False
        low, high = ARITY[self.type]
        if len(self.args) < low or (high is not None and len(self.args) > high):
            return False
        if self.type in (CommandType.HSET, CommandType.ZADD):
            # field/value or score/member pairs after the key
            return (len(self.args) - 1) % 2 == 0
        return True


class ResponseStatus(Enum):
    """Enumeration of response statuses."""
    OK = "OK"
    ERROR = "ERROR"


NIL = "(nil)"


def format_number(value: float) -> str:
    """Render a score: integral floats without the trailing '.0'."""
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def encode_value(value: Any) -> str:
    """Flatten an engine result into a single protocol line body."""
    if value is None:
        return NIL
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, (int, str)):
        return str(value)
    if isinstance(value, dict):
        return " ".join(f"{k} {v}" for k, v in value.items())
    if isinstance(value, (set, frozenset)):
        return " ".join(sorted(value))
    if isinstance(value, tuple):
        return " ".join(encode_value(part) for part in value)
    return " ".join(encode_value(item) for item in value)


@dataclass
class Response:
    """
    Represents a protocol response.

    Attributes:
        status: OK or ERROR
        message: Response message or error description
        value: Encoded result body, if any
    """
    status: ResponseStatus
    message: str = ""
    value: Optional[str] = None

    @classmethod
    def ok(cls, message: str = "", value: Optional[str] = None) -> "Response":
        """Create a successful response."""
        return cls(status=ResponseStatus.OK, message=message, value=value)

    @classmethod
    def error(cls, message: str) -> "Response":
        """Create an error response."""
        return cls(status=ResponseStatus.ERROR, message=message)

    @classmethod
    def stored(cls) -> "Response":
        return cls.ok(message="stored")

    @classmethod
    def nil(cls) -> "Response":
        """Absent key or empty pop."""
        return cls.ok(value=NIL)

    @classmethod
    def pong(cls, message: str = "PONG") -> "Response":
        return cls.ok(message=message)

    @classmethod
    def value_response(cls, value: Any) -> "Response":
        """Create a response carrying an engine result."""
        return cls.ok(value=encode_value(value))
