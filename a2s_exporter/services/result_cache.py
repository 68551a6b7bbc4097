"""Last-known-good query results per target."""

import logging
from typing import Dict, Optional

from ..query.models import QueryResult, Target


class ResultCache:
    """
    Map each target identity to its most recent successful QueryResult.

    Entries appear after the first successful query and are only ever
    replaced by newer results, never removed. Held in memory for the life of
    the process; the poller is the only writer.
    """

    def __init__(self, logger: logging.Logger = None):
        self._results: Dict[str, QueryResult] = {}
        self.logger = logger or logging.getLogger(__name__)

    def update(self, target: Target, result: QueryResult) -> None:
        """Store *result* as the latest good result for *target*."""
        if target.identity not in self._results:
            self.logger.debug("First result cached", extra={"target": target.identity})
        self._results[target.identity] = result

    def get(self, target: Target) -> Optional[QueryResult]:
        """Return the cached result for *target*, None if it never answered."""
        return self._results.get(target.identity)

    def __contains__(self, target: Target) -> bool:
        return target.identity in self._results

    def __len__(self) -> int:
        return len(self._results)
