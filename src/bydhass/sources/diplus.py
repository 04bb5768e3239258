"""Di-Plus poll source."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from bydhass._transport import Transport
from bydhass.exceptions import BydHassError
from bydhass.ingestion.diplus import parse_diplus_response
from bydhass.models.snapshot import Snapshot
from bydhass.sensors import MONITORED_SENSOR_IDS, build_api_template, validate_values

_logger = logging.getLogger(__name__)

# BatteryPercentage: cheapest sensor that proves the head unit answers.
_HEALTH_SENSOR_IDS: tuple[int, ...] = (33,)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DiplusClient:
    """Reads the monitored sensors from the head unit's Di-Plus service.

    Parameters
    ----------
    endpoint : str
        Full ``getDiPars`` URL (see :attr:`BridgeConfig.diplus_endpoint`).
    transport : Transport
        JSON transport, normally :class:`~bydhass._transport.HttpTransport`.
    sensor_ids : sequence of int
        Catalog ids requested on every poll.
    now : callable
        UTC wall clock used for ``captured_at``.
    """

    def __init__(
        self,
        endpoint: str,
        transport: Transport,
        *,
        sensor_ids: Sequence[int] = MONITORED_SENSOR_IDS,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._endpoint = endpoint
        self._transport = transport
        self._sensor_ids = tuple(sensor_ids)
        self._template = build_api_template(self._sensor_ids)
        self._now = now

    async def fetch_values(self, sensor_ids: Sequence[int] | None = None) -> dict[str, float]:
        template = self._template if sensor_ids is None else build_api_template(sensor_ids)
        body = await self._transport.get_json(self._endpoint, params={"text": template})
        return parse_diplus_response(body)

    async def poll(self) -> Snapshot:
        values = await self.fetch_values()
        for warning in validate_values(values):
            _logger.warning("Di-Plus data: %s", warning)
        _logger.debug("Di-Plus returned %d values", len(values))
        return Snapshot(values=values, captured_at=self._now())

    async def healthy(self) -> bool:
        try:
            await self.fetch_values(_HEALTH_SENSOR_IDS)
        except BydHassError as exc:
            _logger.debug("Di-Plus health check failed: %s", exc)
            return False
        return True
