"""UDP client for the Source engine info query."""

import logging
import socket
import time
from typing import Tuple

from .errors import OversizedReply, QueryIOError, QueryTimeout, SpoofedSource
from .models import QueryResult, Target
from .protocol import build_info_request, challenge_token, check_header, parse_info_reply

DEFAULT_TIMEOUT = 5.0
# Largest single-packet A2S reply
MAX_REPLY_SIZE = 1400


class ProtocolClient:
    """
    Perform one A2S_INFO exchange per call.

    Each query opens its own ephemeral UDP socket, so calls for different
    targets share nothing. Replies must come from the exact address that was
    queried and must fit in ``max_reply_size`` bytes; larger datagrams are
    rejected rather than truncated.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_reply_size: int = MAX_REPLY_SIZE,
        logger: logging.Logger = None
    ):
        """
        Initialize protocol client.

        Args:
            timeout: Seconds to wait for each reply
            max_reply_size: Largest accepted reply in bytes
            logger: Optional logger instance
        """
        self.timeout = timeout
        self.max_reply_size = max_reply_size
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    def query(self, target: Target) -> QueryResult:
        """
        Query one server for its info.

        Args:
            target: Server to query

        Returns:
            QueryResult: Parsed reply

        Raises:
            QueryError: Any per-target failure (timeout, spoofed source,
                malformed or truncated reply, socket error)
        """
        family, address = self._resolve(target)

        try:
            with socket.socket(family, socket.SOCK_DGRAM) as sock:
                sock.bind(('::', 0) if family == socket.AF_INET6 else ('0.0.0.0', 0))
                sock.settimeout(self.timeout)

                started = time.monotonic()
                sock.sendto(build_info_request(), address)
                data = self._receive(sock, address)
                ping = int((time.monotonic() - started) * 1000)

                check_header(data)

                token = challenge_token(data)
                if token is not None:
                    self.logger.debug(
                        "Server requested challenge",
                        extra={"target": target.identity}
                    )
                    sock.sendto(build_info_request(token), address)
                    data = self._receive(sock, address)
                    check_header(data, after_challenge=True)

        except socket.timeout as e:
            raise QueryTimeout(f"No reply within {self.timeout:g}s") from e
        except OSError as e:
            raise QueryIOError(str(e)) from e

        return parse_info_reply(data, ping, self.logger)

    def _resolve(self, target: Target) -> Tuple[int, tuple]:
        # Invalid IDNA hostnames raise UnicodeError rather than gaierror
        try:
            infos = socket.getaddrinfo(target.host, target.port, type=socket.SOCK_DGRAM)
        except (OSError, UnicodeError) as e:
            raise QueryIOError(f"Unable to resolve {target.identity}: {e}") from e

        family, _, _, _, address = infos[0]
        return family, address

    def _receive(self, sock: socket.socket, address: tuple) -> bytes:
        # One spare byte lets an oversized datagram be detected instead of cut
        data, source = sock.recvfrom(self.max_reply_size + 1)

        if source[:2] != address[:2]:
            raise SpoofedSource(address[:2], source[:2])

        if len(data) > self.max_reply_size:
            raise OversizedReply(
                f"Reply exceeds {self.max_reply_size} bytes"
            )
        return data
