"""Shared pytest configuration and fixtures."""

import socket
import struct
import threading

import pytest

from a2s_exporter.query.models import QueryResult, Target
from a2s_exporter.utils.logger import setup_logger


HEADER = b'\xFF\xFF\xFF\xFF'


def _info_reply(
    server_name="Test Server",
    map_name="de_dust2",
    folder="cstrike",
    game="Counter-Strike: Source",
    game_id=240,
    players=10,
    max_players=32,
    bots=2,
    reply_type=0x49,
    header=HEADER,
):
    body = b'\x00'.join(
        s.encode('utf-8') if isinstance(s, str) else s
        for s in (server_name, map_name, folder, game)
    ) + b'\x00'
    return header + bytes([reply_type]) + body + struct.pack('<HBBB', game_id, players, max_players, bots)


@pytest.fixture
def info_reply():
    """Factory building a synthetic A2S_INFO reply datagram."""
    return _info_reply


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def sample_result():
    """A parsed result as a healthy server would produce."""
    return QueryResult(
        ping=23,
        server_name="My, Cool=Server",
        map="de_dust2",
        folder="cstrike",
        game="Counter-Strike: Source",
        game_id=240,
        num_players=8,
        num_bots=2,
        max_players=32
    )


class FakeGameServer:
    """
    Loopback UDP server answering with scripted replies.

    ``responder`` receives each request datagram and returns the reply bytes,
    or None to stay silent. With ``spoof`` set, replies are sent from a second
    socket so their source port differs from the queried one.
    """

    def __init__(self, responder, spoof=False):
        self.responder = responder
        self.requests = []
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(('127.0.0.1', 0))
        self.sock.settimeout(0.05)
        self.target = Target(host='127.0.0.1', port=self.sock.getsockname()[1], label='test')
        self.reply_sock = self.sock
        if spoof:
            self.reply_sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            self.reply_sock.bind(('127.0.0.1', 0))
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self):
        while not self._stop.is_set():
            try:
                data, addr = self.sock.recvfrom(4096)
            except socket.timeout:
                continue
            self.requests.append(data)
            reply = self.responder(data)
            if reply is not None:
                self.reply_sock.sendto(reply, addr)

    def __enter__(self):
        self._thread.start()
        return self

    def __exit__(self, *exc):
        self._stop.set()
        self._thread.join()
        self.sock.close()
        if self.reply_sock is not self.sock:
            self.reply_sock.close()


@pytest.fixture
def fake_server():
    """Factory for FakeGameServer context managers."""
    return FakeGameServer
