"""InfluxDB v2 write API client."""

import logging

import httpx

from ..config.models import InfluxDBConfig


class InfluxSink:
    """
    Push line-protocol batches to InfluxDB.

    Delivery failures are reported through the return value and logged;
    nothing is queued for retry.
    """

    def __init__(self, config: InfluxDBConfig, logger: logging.Logger = None):
        """
        Initialize InfluxDB sink.

        Args:
            config: InfluxDB connection settings
            logger: Optional logger instance
        """
        self.url = f"{config.host}/api/v2/write"
        self.params = {"org": config.organization, "bucket": config.bucket}
        self.headers = {
            "Authorization": f"Token {config.token}",
            "Content-Type": "text/plain; charset=utf-8",
            "Accept": "application/json",
        }
        self.timeout = config.timeout_secs
        self.logger = logger or logging.getLogger(__name__)

    async def write(self, batch: str) -> bool:
        """
        Send one batch of lines.

        Args:
            batch: Newline-separated line-protocol records

        Returns:
            bool: True if InfluxDB accepted the batch, False otherwise
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.url,
                    params=self.params,
                    headers=self.headers,
                    content=batch.encode("utf-8")
                )

        except httpx.HTTPError as e:
            self.logger.error(f"Unable to save results: {e}")
            return False

        if not response.is_success:
            self.logger.error(
                f"InfluxDB returned error code: {response.status_code} {response.text}"
            )
            return False

        self.logger.debug(f"Batch accepted with status {response.status_code}")
        return True
