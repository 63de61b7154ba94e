"""
InfluxDB 2.x sink for energy measurements.

Writes each :class:`~electricity.src.models.Measurement` as a single point
using the synchronous write API, so a worker knows the outcome before it
reads the next chunk. Any client-side failure is re-raised as
:class:`~electricity.src.errors.SinkSubmitError`.

CHANGELOG:
- 2026-03-05: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import logging

from influxdb_client import InfluxDBClient, Point
from influxdb_client.client.write_api import SYNCHRONOUS

from electricity.src.errors import SinkSubmitError
from electricity.src.models import Measurement

logger = logging.getLogger(__name__)


def to_point(measurement: Measurement) -> Point:
    """Convert a measurement into an InfluxDB point (server-side timestamp)."""
    point = Point(measurement.name)
    for key, value in measurement.fields.items():
        point = point.field(key, value)
    return point


class InfluxSink:
    """Synchronous InfluxDB writer.

    Args:
        url: InfluxDB base URL (e.g. ``http://localhost:8086``).
        token: API token with write access to *bucket*.
        org: Organisation name.
        bucket: Destination bucket.
        client: Optional pre-built ``InfluxDBClient`` (tests).
    """

    def __init__(
        self,
        *,
        url: str,
        token: str,
        org: str,
        bucket: str,
        client: InfluxDBClient | None = None,
    ) -> None:
        self._org = org
        self._bucket = bucket
        self._client = client or InfluxDBClient(url=url, token=token, org=org)
        self._write_api = self._client.write_api(write_options=SYNCHRONOUS)

    def submit(self, measurement: Measurement) -> None:
        """Write *measurement* to the configured bucket.

        Raises:
            SinkSubmitError: The write failed for any reason.
        """
        point = to_point(measurement)
        logger.debug("Writing to InfluxDB: %s", point.to_line_protocol())
        try:
            self._write_api.write(bucket=self._bucket, org=self._org, record=point)
        except Exception as exc:
            raise SinkSubmitError(
                f"Failed to write to bucket '{self._bucket}': {exc}"
            ) from exc

    def close(self) -> None:
        """Close the write API and the underlying client."""
        self._write_api.close()
        self._client.close()
