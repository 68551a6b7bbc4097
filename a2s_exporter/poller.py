"""Poll cycle: query every target, fall back to cached results, push the batch."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Union

from .query.client import ProtocolClient
from .query.errors import QueryError
from .query.models import QueryResult, Target
from .services.influx_sink import InfluxSink
from .services.result_cache import ResultCache
from .utils.line_protocol import encode_batch
from .utils.logger import setup_logger
from .utils.metrics import MetricRecord, OfflineRecord, OnlineRecord, UnknownRecord


@dataclass
class PollState:
    """
    State carried from one tick to the next.

    Owned by the application and handed to ``PollScheduler.run_tick``;
    the tick is the only code that mutates the cache.
    """

    targets: List[Target]
    cache: ResultCache = field(default_factory=ResultCache)
    ticks: int = 0


@dataclass
class TickReport:
    """Outcome of a single tick."""

    records: List[MetricRecord]
    batch: str
    sent: bool = False

    def count(self, record_type) -> int:
        return sum(1 for r in self.records if isinstance(r, record_type))


def resolve_record(
    target: Target,
    outcome: Union[QueryResult, QueryError],
    cache: ResultCache
) -> MetricRecord:
    """
    Choose the record for one target and update the cache on success.

    Args:
        target: Target that was queried
        outcome: Parsed result, or the error raised by the query
        cache: Last-known-good results

    Returns:
        MetricRecord: Online on success; Offline if the target failed but has
            a cached result; Unknown if it failed and never answered
    """
    if isinstance(outcome, QueryResult):
        cache.update(target, outcome)
        return OnlineRecord(target=target, result=outcome)

    cached = cache.get(target)
    if cached is not None:
        return OfflineRecord(target=target, cached=cached, error=str(outcome))
    return UnknownRecord(target=target, error=str(outcome))


class PollScheduler:
    """
    Run poll ticks.

    Targets are queried one at a time. A target that times out delays the
    rest of the tick but cannot affect their results.
    """

    def __init__(
        self,
        client: ProtocolClient,
        sink: InfluxSink,
        logger: logging.Logger = None,
        dry_run: bool = False
    ):
        """
        Initialize poll scheduler.

        Args:
            client: A2S query client
            sink: Destination for encoded batches
            logger: Optional logger instance
            dry_run: If True, log batches instead of sending them
        """
        self.client = client
        self.sink = sink
        self.dry_run = dry_run
        self.logger = logger or setup_logger("poller")

    async def run_tick(self, state: PollState) -> TickReport:
        """
        Query all targets, build the batch and hand it to the sink.

        Per-target and sink failures are logged, never raised.

        Args:
            state: Scheduler state; its cache is updated in place

        Returns:
            TickReport: Records and batch produced by this tick
        """
        state.ticks += 1
        records = []

        for target in state.targets:
            outcome = await self._query(target)
            records.append(resolve_record(target, outcome, state.cache))

        report = TickReport(records=records, batch=encode_batch(records))

        self.logger.info(
            f"Tick {state.ticks} complete: {report.count(OnlineRecord)} online, "
            f"{report.count(OfflineRecord)} offline, {report.count(UnknownRecord)} unknown"
        )

        if not report.batch:
            self.logger.warning("Nothing to write this tick")
        elif self.dry_run:
            self.logger.info("DRY RUN - batch preview:\n" + report.batch)
        else:
            report.sent = await self.sink.write(report.batch)
            if not report.sent:
                self.logger.warning(f"Dropped batch of {len(report.batch.splitlines())} line(s)")

        return report

    async def _query(self, target: Target) -> Union[QueryResult, QueryError]:
        try:
            return await asyncio.to_thread(self.client.query, target)
        except QueryError as e:
            self.logger.warning(
                f"Unable to query {target.identity}: {e}",
                extra={
                    "target": target.identity,
                    "error_type": type(e).__name__,
                }
            )
            return e
