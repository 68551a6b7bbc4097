"""Data structures shared by the query client and the poller."""

from dataclasses import dataclass

DEFAULT_PORT = 27015


@dataclass(frozen=True)
class Target:
    """One game server to poll."""

    host: str
    port: int = DEFAULT_PORT
    label: str = "unknown"

    @property
    def identity(self) -> str:
        """Cache and logging key, ``host:port``."""
        return f"{self.host}:{self.port}"

    @classmethod
    def from_config(cls, server) -> "Target":
        return cls(host=server.host, port=server.port, label=server.label)


@dataclass(frozen=True)
class QueryResult:
    """Parsed A2S_INFO reply. String fields are raw server-supplied text."""

    ping: int
    server_name: str
    map: str
    folder: str
    game: str
    game_id: int
    num_players: int
    num_bots: int
    max_players: int
