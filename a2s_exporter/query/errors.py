"""Exceptions raised by the A2S query client.

Every error here is scoped to a single target and a single tick; the poller
catches ``QueryError`` and falls back to the cached result.
"""


class QueryError(Exception):
    """Base class for per-target query failures."""


class QueryTimeout(QueryError):
    """No reply arrived within the timeout window."""


class SpoofedSource(QueryError):
    """Reply came from an address other than the one queried."""

    def __init__(self, expected, actual):
        super().__init__(f"Reply from {actual[0]}:{actual[1]}, expected {expected[0]}:{expected[1]}")
        self.expected = expected
        self.actual = actual


class MalformedHeader(QueryError):
    """Reply does not start with the -1 simple-packet header."""


class TruncatedReply(QueryError):
    """Reply ended before all expected fields were read."""


class OversizedReply(QueryError):
    """Reply exceeded the receive buffer limit."""


class QueryIOError(QueryError):
    """Socket-level failure (resolve, bind, send or receive)."""
