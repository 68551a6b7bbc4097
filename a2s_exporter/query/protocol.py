"""A2S_INFO wire format: request construction and reply parsing."""

import logging
import struct
from typing import Optional, Tuple

from .errors import MalformedHeader, TruncatedReply
from .models import QueryResult

SIMPLE_HEADER = -1
INFO_REQUEST = b'\xFF\xFF\xFF\xFF\x54Source Engine Query\x00'
INFO_REPLY_TYPE = 0x49
CHALLENGE_REPLY_TYPE = 0x41
CHALLENGE_TOKEN_SIZE = 4

_HEADER = struct.Struct('<i')
_TRAILER = struct.Struct('<HBBB')  # game id, players, max players, bots


def build_info_request(challenge: bytes = b'') -> bytes:
    """Return the info request, with the challenge token appended if given."""
    return INFO_REQUEST + challenge


def check_header(data: bytes, after_challenge: bool = False) -> None:
    """
    Validate the 4-byte simple-packet header and presence of a type byte.

    Raises:
        MalformedHeader: If the header is missing or not -1
    """
    suffix = " after challenge" if after_challenge else ""
    if len(data) < _HEADER.size + 1:
        raise MalformedHeader(f"Reply too short for packet header{suffix} ({len(data)} bytes)")

    header, = _HEADER.unpack_from(data)
    if header != SIMPLE_HEADER:
        raise MalformedHeader(f"Invalid packet header in response{suffix}: {header}")


def challenge_token(data: bytes) -> Optional[bytes]:
    """
    Return the challenge token if *data* is a challenge reply, else None.

    Expects a reply that already passed ``check_header``.
    """
    if data[4] != CHALLENGE_REPLY_TYPE:
        return None

    token = data[5:5 + CHALLENGE_TOKEN_SIZE]
    if len(token) < CHALLENGE_TOKEN_SIZE:
        raise TruncatedReply(f"Challenge reply carries {len(token)} token bytes, expected 4")
    return token


class _Reader:
    """Sequential little-endian reader over a reply buffer."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = data
        self.offset = offset

    def byte(self) -> int:
        if self.offset >= len(self.data):
            raise TruncatedReply(f"Reply ended at offset {self.offset} reading a byte")
        value = self.data[self.offset]
        self.offset += 1
        return value

    def string(self) -> str:
        end = self.data.find(b'\x00', self.offset)
        if end == -1:
            raise TruncatedReply(f"Unterminated string at offset {self.offset}")
        value = self.data[self.offset:end].decode('utf-8', errors='replace')
        self.offset = end + 1
        return value

    def unpack(self, fmt: struct.Struct) -> Tuple[int, ...]:
        if self.offset + fmt.size > len(self.data):
            raise TruncatedReply(
                f"Reply ended at offset {self.offset}, need {fmt.size} more bytes"
            )
        values = fmt.unpack_from(self.data, self.offset)
        self.offset += fmt.size
        return values


def parse_info_reply(
    data: bytes,
    ping: int,
    logger: Optional[logging.Logger] = None
) -> QueryResult:
    """
    Parse an A2S_INFO reply body into a QueryResult.

    Parsing starts after the 4-byte header. A reply type other than 0x49 is
    logged and parsing continues on a best-effort basis.

    Args:
        data: Full reply datagram, header included
        ping: Measured round-trip in milliseconds
        logger: Optional logger for reply-type anomalies

    Returns:
        QueryResult: Parsed reply

    Raises:
        TruncatedReply: If the reply ends before the last field
    """
    logger = logger or logging.getLogger(__name__)
    reader = _Reader(data, offset=_HEADER.size)

    reply_type = reader.byte()
    if reply_type != INFO_REPLY_TYPE:
        logger.warning(
            "Unexpected reply type in info response",
            extra={"reply_type": f"0x{reply_type:02X}"}
        )

    server_name = reader.string()
    map_name = reader.string()
    folder = reader.string()
    game = reader.string()
    game_id, num_players, max_players, num_bots = reader.unpack(_TRAILER)

    # Some servers report more bots than players; keep the raw count then
    if num_bots <= num_players:
        num_players -= num_bots

    return QueryResult(
        ping=ping,
        server_name=server_name,
        map=map_name,
        folder=folder,
        game=game,
        game_id=game_id,
        num_players=num_players,
        num_bots=num_bots,
        max_players=max_players
    )
