"""
Error Types

Every engine operation reports failures by raising one of these to its
immediate caller. An empty pop or an absent key is not an error and is
returned as None or an empty collection instead.
"""


class KVError(Exception):
    """Base class for all engine errors."""

    message = "error"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)


class KeyNotFound(KVError):
    """The operation requires a live key and there is none."""

    message = "key not found"


class TypeMismatch(KVError):
    """The key holds a value of a different type than the operation expects."""

    message = "operation against a key holding the wrong kind of value"


class InvalidTTL(KVError):
    """A time-to-live that is not strictly positive."""

    message = "invalid expire time"


class NotANumber(KVError):
    """Numeric operation on a value that is not an integer."""

    message = "value is not an integer"


class InvalidRange(KVError):
    """Malformed or out of range start/stop/index arguments."""

    message = "index out of range"


class HandlerError(KVError):
    """A pub/sub handler raised while a message was being delivered."""

    message = "subscriber handler failed"

    def __init__(self, channel: str, cause: BaseException):
        super().__init__(f"handler for channel '{channel}' failed: {cause!r}")
        self.channel = channel
        self.cause = cause
