"""
Line Protocol Codec

Turns request lines into Command objects and Response objects into reply
lines. Requests are whitespace-separated words; the first word names the
command, case-insensitively. Replies are `<STATUS> [BODY]`.

    SET user:1 alice 60        -> OK stored
    GET user:1                 -> OK alice
    GET missing                -> OK (nil)
    LRANGE feed 0 -1           -> OK c b a
    INCRBY user:1 x            -> ERROR value is not an integer: 'x'
    QUIT                       -> (connection closed)
"""

from typing import List

from .commands import ARITY, Command, CommandType, Response
from ..config.settings import settings

_BY_NAME = {ct.value: ct for ct in CommandType if ct != CommandType.UNKNOWN}

# Commands whose first argument is not a key
_UNKEYED = frozenset({CommandType.PING, CommandType.KEYS, CommandType.PUBLISH})


class ProtocolParser:
    """
    Stateless codec shared by every connection.

    Anything malformed (unknown name, wrong arity, an oversized word)
    parses to a Command of type UNKNOWN rather than raising, so the server
    can answer it with a single error line.
    """

    def __init__(self):
        self.max_key_length = settings.MAX_KEY_LENGTH
        self.max_value_length = settings.MAX_VALUE_LENGTH

    def parse_request(self, data: str) -> Command:
        """
        >>> ProtocolParser().parse_request("set k v 60\\n").args
        ['k', 'v', '60']
        """
        raw = data.strip()
        words = raw.split()
        if not words:
            return Command(type=CommandType.UNKNOWN, raw=raw)

        command_type = _BY_NAME.get(words[0].upper(), CommandType.UNKNOWN)
        args = words[1:]
        if command_type is CommandType.UNKNOWN or self._oversized(command_type, args):
            return Command(type=CommandType.UNKNOWN, raw=raw)

        command = Command(type=command_type, args=args, raw=raw)
        return command if command.is_valid else Command(type=CommandType.UNKNOWN, raw=raw)

    def _oversized(self, command_type: CommandType, args: List[str]) -> bool:
        keyed = ARITY[command_type][0] > 0 and command_type not in _UNKEYED
        for position, word in enumerate(args):
            limit = self.max_key_length if keyed and position == 0 else self.max_value_length
            if len(word) > limit:
                return True
        return False

    def format_response(self, response: Response) -> str:
        """Reply line for a response, newline included; a value wins over a message."""
        body = response.value if response.value is not None else response.message
        status = response.status.value
        return f"{status} {body}\n" if body else f"{status}\n"
