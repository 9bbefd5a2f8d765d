"""Live telemetry from a pub/sub feed.

One transport connection, three channels: status, position and planned path.
Position arrives either as local-frame odometry (projected around the
origin) or as a geographic fix (used as-is; the origin is never re-derived
from fixes).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from pydantic import ValidationError

from pyhunter._constants import (
    NAV_SAT_FIX_MESSAGE_TYPE,
    ODOMETRY_MESSAGE_TYPE,
    PATH_MESSAGE_TYPE,
    STATUS_MESSAGE_TYPE,
)
from pyhunter._redact import redact_for_log, redact_url
from pyhunter._transport import MessageHandler, PubSubTransport, Subscription, TransportFactory, transport_for_url
from pyhunter.config import HunterConfig
from pyhunter.exceptions import HunterTransportError, MalformedSampleError, ProjectionOutOfRangeError
from pyhunter.geo import GeoPoint
from pyhunter.models.enums import PositionSource, SourceMode, TransportState
from pyhunter.models.messages import parse_fix_message, parse_odometry_message, parse_path_message
from pyhunter.models.status import VehicleStatus
from pyhunter.sources.base import SourceSink

_logger = logging.getLogger(__name__)


class LiveSource:
    """Subscribes to the configured topics and forwards parsed samples."""

    mode = SourceMode.LIVE

    def __init__(
        self,
        *,
        config: HunterConfig,
        origin: GeoPoint,
        sink: SourceSink,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._config = config
        self._origin = origin
        self._sink = sink
        self._transport_factory = transport_factory
        self._transport: PubSubTransport | None = None
        self._subscriptions: list[Subscription] = []
        self._task: asyncio.Task[None] | None = None
        self._connected = False
        self._cancelled = True

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def subscriptions(self) -> tuple[Subscription, ...]:
        return tuple(self._subscriptions)

    def start(self) -> None:
        if self._task is not None:
            return
        self._cancelled = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    def _channels(self) -> list[tuple[str, str, MessageHandler]]:
        if self._config.position_source == PositionSource.ODOMETRY:
            pose_type = ODOMETRY_MESSAGE_TYPE
        else:
            pose_type = NAV_SAT_FIX_MESSAGE_TYPE
        return [
            (self._config.status_topic, STATUS_MESSAGE_TYPE, self._handle_status),
            (self._config.pose_topic, pose_type, self._handle_pose),
            (self._config.path_topic, PATH_MESSAGE_TYPE, self._handle_path),
        ]

    async def _run(self) -> None:
        url = self._config.transport_url
        try:
            factory = self._transport_factory or transport_for_url(url)
        except HunterTransportError:
            _logger.warning("No transport for url=%s", redact_url(url), exc_info=True)
            self._set_connected(False)
            return

        try:
            transport = factory(self._on_transport_state)
        except Exception:
            _logger.warning("Transport factory failed url=%s", redact_url(url), exc_info=True)
            self._set_connected(False)
            return
        self._transport = transport
        try:
            await transport.connect(url)
        except HunterTransportError as exc:
            _logger.warning("Live connect failed: %s", exc)
            self._set_connected(False)
            return
        except Exception:
            _logger.warning("Live connect failed url=%s", redact_url(url), exc_info=True)
            self._set_connected(False)
            return

        if self._cancelled:
            # Torn down while connecting: discard the late connection.
            await self._close_transport(transport)
            return

        for topic, message_type, handler in self._channels():
            try:
                subscription = await transport.subscribe(topic, message_type, handler)
            except HunterTransportError as exc:
                _logger.warning("Subscribe failed topic=%s: %s", topic, exc)
                continue
            except Exception:
                _logger.warning("Subscribe failed topic=%s", topic, exc_info=True)
                continue
            if self._cancelled:
                await self._release(subscription)
                return
            self._subscriptions.append(subscription)

        if not self._subscriptions:
            self._set_connected(False)

    def _on_transport_state(self, state: TransportState) -> None:
        if self._cancelled:
            return
        _logger.debug("Transport state=%s url=%s", state, redact_url(self._config.transport_url))
        self._set_connected(state == TransportState.CONNECTED)

    def _set_connected(self, connected: bool) -> None:
        if self._cancelled and connected:
            return
        changed = connected != self._connected
        self._connected = connected
        if changed and not self._cancelled:
            self._sink.on_connected(connected)

    def _accepting(self, topic: str) -> bool:
        if self._cancelled:
            return False
        if not self._connected:
            _logger.debug("Dropping message while disconnected topic=%s", topic)
            return False
        return True

    def _handle_status(self, message: dict[str, Any]) -> None:
        if not self._accepting(self._config.status_topic):
            return
        try:
            status = VehicleStatus.model_validate(message)
        except ValidationError:
            _logger.debug("Malformed status message=%s", redact_for_log(message), exc_info=True)
            return
        self._sink.on_status(status)

    def _handle_pose(self, message: dict[str, Any]) -> None:
        if not self._accepting(self._config.pose_topic):
            return
        try:
            if self._config.position_source == PositionSource.ODOMETRY:
                pose = parse_odometry_message(message, self._origin)
            else:
                pose = parse_fix_message(message)
        except MalformedSampleError as exc:
            _logger.debug("Skipping pose sample: %s", exc)
            return
        except ProjectionOutOfRangeError as exc:
            _logger.warning("Discarding out-of-range pose (%s, %s)", exc.longitude, exc.latitude)
            return
        self._sink.on_pose(pose)

    def _handle_path(self, message: dict[str, Any]) -> None:
        if not self._accepting(self._config.path_topic):
            return
        points = parse_path_message(message)
        if points is None:
            _logger.debug("Ignoring path message without fixes=%s", redact_for_log(message))
            return
        self._sink.on_path(points)

    async def stop(self) -> None:
        """Unwind every subscription and close the transport."""
        self._cancelled = True
        self._connected = False

        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        subscriptions = self._subscriptions
        self._subscriptions = []
        for subscription in subscriptions:
            await self._release(subscription)

        transport = self._transport
        self._transport = None
        if transport is not None:
            await self._close_transport(transport)
        _logger.debug("Live source stopped (%d subscriptions released)", len(subscriptions))

    @staticmethod
    async def _release(subscription: Subscription) -> None:
        try:
            await subscription.unsubscribe()
        except Exception:
            _logger.debug("Unsubscribe failed topic=%s", subscription.topic, exc_info=True)

    @staticmethod
    async def _close_transport(transport: PubSubTransport) -> None:
        try:
            await transport.close()
        except Exception:
            _logger.debug("Transport close failed", exc_info=True)
