"""Per-tick metric records produced by the poller."""

from dataclasses import dataclass
from typing import Union

from ..query.models import QueryResult, Target


@dataclass(frozen=True)
class OnlineRecord:
    """Target answered this tick."""

    target: Target
    result: QueryResult


@dataclass(frozen=True)
class OfflineRecord:
    """Target failed this tick but has answered before."""

    target: Target
    cached: QueryResult
    error: str = ""


@dataclass(frozen=True)
class UnknownRecord:
    """Target failed and has never answered; not written to the store."""

    target: Target
    error: str = ""


MetricRecord = Union[OnlineRecord, OfflineRecord, UnknownRecord]
