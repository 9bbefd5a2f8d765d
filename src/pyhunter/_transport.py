"""Pub/sub transport contract and the rosbridge websocket implementation."""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import Callable
from typing import Any, Protocol
from urllib.parse import urlsplit

import aiohttp

from pyhunter._redact import redact_for_log, redact_url
from pyhunter.exceptions import HunterTransportError
from pyhunter.models.enums import TransportState

_logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict[str, Any]], None]
StateHandler = Callable[[TransportState], None]


class Subscription(Protocol):
    topic: str

    async def unsubscribe(self) -> None:
        ...


class PubSubTransport(Protocol):
    """Structural transport interface used by the live source.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementations concrete. Lifecycle changes are reported
    through the ``on_state`` callback given to the factory.
    """

    async def connect(self, url: str) -> None:
        ...

    async def subscribe(self, topic: str, message_type: str, on_message: MessageHandler) -> Subscription:
        ...

    async def close(self) -> None:
        ...


TransportFactory = Callable[[StateHandler], PubSubTransport]


class _RosbridgeSubscription:
    def __init__(self, transport: RosbridgeTransport, topic: str, sub_id: str) -> None:
        self.topic = topic
        self._transport = transport
        self._sub_id = sub_id
        self._active = True

    async def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        await self._transport._unsubscribe(self.topic, self._sub_id)


class RosbridgeTransport:
    """rosbridge v2 JSON protocol over an aiohttp websocket."""

    def __init__(
        self,
        on_state: StateHandler,
        *,
        session: aiohttp.ClientSession | None = None,
        heartbeat: float = 30.0,
    ) -> None:
        self._on_state = on_state
        self._external_session = session is not None
        self._http_session = session
        self._heartbeat = heartbeat
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._handlers: dict[str, dict[str, MessageHandler]] = {}
        self._ids = itertools.count(1)
        self._closing = False
        self._closed_reported = False

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def _emit(self, state: TransportState) -> None:
        if state == TransportState.CLOSED:
            if self._closed_reported:
                return
            self._closed_reported = True
        try:
            self._on_state(state)
        except Exception:
            _logger.warning("Transport state handler failed state=%s", state, exc_info=True)

    async def connect(self, url: str) -> None:
        if self._ws is not None:
            raise HunterTransportError("Transport already connected", url=redact_url(url))
        self._closing = False
        self._closed_reported = False
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()

        _logger.debug("rosbridge connect url=%s", redact_url(url))
        try:
            ws = await self._http_session.ws_connect(url, heartbeat=self._heartbeat)
        except (aiohttp.ClientError, OSError, TimeoutError, ValueError) as exc:
            await self._release_session()
            self._emit(TransportState.ERROR)
            raise HunterTransportError(f"Connect to {redact_url(url)} failed: {exc}", url=redact_url(url)) from exc

        self._ws = ws
        self._reader = asyncio.create_task(self._read_loop(ws))
        self._emit(TransportState.CONNECTED)

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._dispatch(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    _logger.warning("rosbridge websocket error: %s", ws.exception())
                    self._emit(TransportState.ERROR)
                    break
        finally:
            if not self._closing:
                self._ws = None
                self._emit(TransportState.CLOSED)

    def _dispatch(self, text: str) -> None:
        try:
            frame = json.loads(text)
        except json.JSONDecodeError:
            _logger.debug("rosbridge frame is not JSON: %s", text[:200])
            return
        if not isinstance(frame, dict) or frame.get("op") != "publish":
            if isinstance(frame, dict) and frame.get("op") == "status":
                _logger.debug("rosbridge status frame=%s", redact_for_log(frame))
            return

        topic = frame.get("topic")
        message = frame.get("msg")
        if not isinstance(topic, str) or not isinstance(message, dict):
            return
        handlers = list(self._handlers.get(topic, {}).values())
        for handler in handlers:
            try:
                handler(message)
            except Exception:
                _logger.warning("Message handler failed topic=%s", topic, exc_info=True)

    async def _send(self, frame: dict[str, Any]) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            raise HunterTransportError("Transport is not connected")
        try:
            await ws.send_json(frame)
        except (aiohttp.ClientError, ConnectionResetError, RuntimeError) as exc:
            raise HunterTransportError(f"Send failed op={frame.get('op')}: {exc}") from exc

    async def subscribe(self, topic: str, message_type: str, on_message: MessageHandler) -> Subscription:
        sub_id = f"subscribe:{topic}:{next(self._ids)}"
        await self._send({"op": "subscribe", "id": sub_id, "topic": topic, "type": message_type})
        self._handlers.setdefault(topic, {})[sub_id] = on_message
        _logger.debug("rosbridge subscribed topic=%s type=%s id=%s", topic, message_type, sub_id)
        return _RosbridgeSubscription(self, topic, sub_id)

    async def _unsubscribe(self, topic: str, sub_id: str) -> None:
        handlers = self._handlers.get(topic)
        if handlers is not None:
            handlers.pop(sub_id, None)
            if not handlers:
                self._handlers.pop(topic, None)
        if not self.is_connected:
            return
        try:
            await self._send({"op": "unsubscribe", "id": sub_id, "topic": topic})
        except HunterTransportError:
            _logger.debug("rosbridge unsubscribe failed topic=%s", topic, exc_info=True)

    async def close(self) -> None:
        self._closing = True
        self._handlers.clear()
        ws = self._ws
        self._ws = None
        reader = self._reader
        self._reader = None
        try:
            if ws is not None and not ws.closed:
                await ws.close()
        finally:
            if reader is not None and not reader.done():
                reader.cancel()
            await self._release_session()
            self._emit(TransportState.CLOSED)

    async def _release_session(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None


def transport_for_url(url: str) -> TransportFactory:
    """Pick the transport implementation from the URL scheme."""
    scheme = urlsplit(url).scheme.lower()
    if scheme in {"ws", "wss"}:
        return RosbridgeTransport
    if scheme in {"mqtt", "mqtts", "tcp", "ssl"}:
        from pyhunter._mqtt import MqttTransport

        return MqttTransport
    raise HunterTransportError(f"Unsupported transport scheme: {scheme!r}", url=redact_url(url))
