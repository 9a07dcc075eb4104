"""
Command Executor

Maps parsed protocol commands onto engine operations and translates the
outcome into a Response:

- Absent keys and empty pops become `OK (nil)`
- TypeMismatch, InvalidTTL, NotANumber, InvalidRange and the other engine
  errors become `ERROR <message>`
"""

import logging
import math
from typing import Callable, Dict, List

from ..cache.strings import parse_int
from ..engine import KVEngine
from ..errors import InvalidRange, InvalidTTL, KVError, NotANumber
from .commands import Command, CommandType, Response

logger = logging.getLogger(__name__)


def _int_arg(value: str, error=NotANumber) -> int:
    return parse_int(value, error=error)


def _ttl_arg(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise InvalidTTL(f"invalid expire time: {value!r}") from None


def _pairs(args: List[str]) -> List[tuple]:
    return list(zip(args[0::2], args[1::2]))


class CommandExecutor:
    """
    Executes commands against one engine.

    Usage:
        executor = CommandExecutor(engine)
        response = executor.execute(parser.parse_request("INCR hits"))
    """

    def __init__(self, engine: KVEngine):
        self.engine = engine
        self._handlers: Dict[CommandType, Callable[[List[str]], object]] = {
            CommandType.SET: self._set,
            CommandType.GET: lambda a: engine.strings.get(a[0]),
            CommandType.DEL: lambda a: sum(1 for key in a if engine.delete(key)),
            CommandType.EXISTS: lambda a: engine.exists(a[0]),
            CommandType.EXPIRE: lambda a: engine.expire(a[0], _ttl_arg(a[1])),
            CommandType.TTL: self._ttl,
            CommandType.PERSIST: lambda a: engine.keyspace.persist(a[0]),
            CommandType.TYPE: self._type,
            CommandType.KEYS: lambda a: engine.keyspace.keys(a[0] if a else "*"),
            CommandType.INCR: lambda a: engine.strings.incr(a[0]),
            CommandType.INCRBY: lambda a: engine.strings.incr_by(a[0], _int_arg(a[1])),
            CommandType.DECR: lambda a: engine.strings.decr(a[0]),
            CommandType.DECRBY: lambda a: engine.strings.decr_by(a[0], _int_arg(a[1])),
            CommandType.APPEND: lambda a: engine.strings.append(a[0], a[1]),
            CommandType.STRLEN: lambda a: engine.strings.strlen(a[0]),
            CommandType.LPUSH: lambda a: engine.lists.push_left(a[0], *a[1:]),
            CommandType.RPUSH: lambda a: engine.lists.push_right(a[0], *a[1:]),
            CommandType.LPOP: lambda a: engine.lists.pop_left(a[0]),
            CommandType.RPOP: lambda a: engine.lists.pop_right(a[0]),
            CommandType.LRANGE: lambda a: engine.lists.range(
                a[0], _int_arg(a[1], InvalidRange), _int_arg(a[2], InvalidRange)),
            CommandType.LTRIM: self._ltrim,
            CommandType.LLEN: lambda a: engine.lists.length(a[0]),
            CommandType.SADD: lambda a: engine.sets.add(a[0], *a[1:]),
            CommandType.SREM: lambda a: engine.sets.remove(a[0], *a[1:]),
            CommandType.SISMEMBER: lambda a: engine.sets.is_member(a[0], a[1]),
            CommandType.SMEMBERS: lambda a: engine.sets.members(a[0]),
            CommandType.SCARD: lambda a: engine.sets.cardinality(a[0]),
            CommandType.HSET: lambda a: engine.hashes.hset_many(a[0], dict(_pairs(a[1:]))),
            CommandType.HGET: lambda a: engine.hashes.hget(a[0], a[1]),
            CommandType.HDEL: lambda a: engine.hashes.hdel(a[0], *a[1:]),
            CommandType.HGETALL: lambda a: engine.hashes.hgetall(a[0]),
            CommandType.HINCRBY: lambda a: engine.hashes.hincr_by(a[0], a[1], _int_arg(a[2])),
            CommandType.HLEN: lambda a: engine.hashes.hlen(a[0]),
            CommandType.ZADD: lambda a: engine.zsets.zadd(a[0], _pairs(a[1:])),
            CommandType.ZINCRBY: lambda a: engine.zsets.zincr_by(a[0], a[1], a[2]),
            CommandType.ZREM: lambda a: engine.zsets.zrem(a[0], *a[1:]),
            CommandType.ZSCORE: lambda a: engine.zsets.zscore(a[0], a[1]),
            CommandType.ZRANK: lambda a: engine.zsets.zrank(a[0], a[1]),
            CommandType.ZRANGE: self._zrange,
            CommandType.ZCARD: lambda a: engine.zsets.zcard(a[0]),
            CommandType.PUBLISH: lambda a: engine.pubsub.publish(a[0], a[1]),
        }

    def execute(self, command: Command) -> Response:
        """
        Execute a parsed command.

        Args:
            command: A valid Command (QUIT is handled by the connection)

        Returns:
            Response object with the result
        """
        if not command.is_valid:
            return Response.error("invalid command")
        if command.type == CommandType.PING:
            return Response.pong(command.args[0] if command.args else "PONG")

        handler = self._handlers.get(command.type)
        if handler is None:
            return Response.error("invalid command")

        try:
            result = handler(command.args)
        except KVError as exc:
            logger.debug(f"{command.type.value} failed: {exc}")
            return Response.error(str(exc))

        if command.type == CommandType.SET:
            return Response.stored() if result else Response.nil()
        if result is None:
            return Response.nil()
        return Response.value_response(result)

    def _set(self, args: List[str]) -> bool:
        ttl = _ttl_arg(args[2]) if len(args) == 3 else None
        return self.engine.strings.set(args[0], args[1], ttl=ttl)

    def _ttl(self, args: List[str]):
        remaining = self.engine.ttl_remaining(args[0])
        return math.ceil(remaining) if remaining is not None else None

    def _type(self, args: List[str]) -> str:
        kind = self.engine.keyspace.type_of(args[0])
        return kind.value if kind is not None else "none"

    def _ltrim(self, args: List[str]) -> str:
        self.engine.lists.trim(args[0], _int_arg(args[1], InvalidRange), _int_arg(args[2], InvalidRange))
        return "trimmed"

    def _zrange(self, args: List[str]) -> list:
        with_scores = len(args) == 4
        if with_scores and args[3].upper() != "WITHSCORES":
            raise InvalidRange(f"unexpected argument: {args[3]!r}")
        return self.engine.zsets.zrange(
            args[0],
            _int_arg(args[1], InvalidRange),
            _int_arg(args[2], InvalidRange),
            with_scores=with_scores,
        )
