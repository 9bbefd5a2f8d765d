"""MQTT transport: paho-mqtt network thread feeding an asyncio loop.

Topics carry JSON objects with the same shape rosbridge would publish in
``msg``. The message type tag is informational only.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, cast
from urllib.parse import unquote, urlsplit

import paho.mqtt.client as mqtt

from pyhunter._redact import redact_url
from pyhunter._transport import MessageHandler, StateHandler, Subscription
from pyhunter.exceptions import HunterTransportError
from pyhunter.models.enums import TransportState

_logger = logging.getLogger(__name__)

_TLS_SCHEMES = frozenset({"mqtts", "ssl"})


def _parse_broker(raw_broker: str) -> tuple[str, int]:
    value = raw_broker.strip()
    if not value:
        raise ValueError("Broker value is empty")

    scheme = ""
    if "://" in value:
        scheme, value = value.split("://", 1)
    if "@" in value:
        value = value.rsplit("@", 1)[1]
    if "/" in value:
        value = value.split("/", 1)[0]

    host, _, maybe_port = value.rpartition(":")
    if host and maybe_port.isdigit():
        return host, int(maybe_port)
    return value, 8883 if scheme.lower() in _TLS_SCHEMES else 1883


def decode_mqtt_payload(payload: bytes) -> dict[str, Any]:
    """Parse an MQTT payload into a JSON object."""
    parsed = json.loads(payload.decode("utf-8"))
    if not isinstance(parsed, dict):
        raise ValueError("MQTT payload is not a JSON object")
    return parsed


class _MqttSubscription:
    def __init__(self, transport: MqttTransport, topic: str, handler: MessageHandler) -> None:
        self.topic = topic
        self._transport = transport
        self._handler = handler
        self._active = True

    async def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._transport._unsubscribe(self.topic, self._handler)


class MqttTransport:
    """Threaded paho-mqtt client that emits parsed messages onto an asyncio loop."""

    def __init__(
        self,
        on_state: StateHandler,
        *,
        keepalive: int = 60,
        client_id: str = "",
    ) -> None:
        self._on_state = on_state
        self._keepalive = keepalive
        self._client_id = client_id
        self._loop: asyncio.AbstractEventLoop | None = None
        self._client: mqtt.Client | None = None
        self._handlers: dict[str, list[MessageHandler]] = {}
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _emit(self, state: TransportState) -> None:
        self._connected = state == TransportState.CONNECTED
        try:
            self._on_state(state)
        except Exception:
            _logger.warning("Transport state handler failed state=%s", state, exc_info=True)

    def _emit_threadsafe(self, state: TransportState) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._emit, state)

    async def connect(self, url: str) -> None:
        if self._client is not None:
            raise HunterTransportError("Transport already connected", url=redact_url(url))
        self._loop = asyncio.get_running_loop()
        try:
            parts = urlsplit(url)
            host, port = _parse_broker(url)
        except ValueError as exc:
            raise HunterTransportError(f"Invalid broker URL: {exc}", url=redact_url(url)) from exc

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(_logger)
        if parts.username:
            client.username_pw_set(unquote(parts.username), unquote(parts.password or "") or None)
        if parts.scheme.lower() in _TLS_SCHEMES:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                _logger.warning("MQTT connect failed: %s", reason_code)
                self._emit_threadsafe(TransportState.ERROR)
                return
            _logger.debug("MQTT connected reason=%s", reason_code)
            # Re-subscribe after paho's automatic reconnect.
            for topic in list(self._handlers):
                c.subscribe(topic, qos=0)
            self._emit_threadsafe(TransportState.CONNECTED)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                payload = decode_mqtt_payload(msg.payload)
            except (UnicodeDecodeError, ValueError):
                _logger.debug("MQTT payload parse failure topic=%s", msg.topic, exc_info=True)
                return
            loop = self._loop
            if loop is not None and not loop.is_closed():
                loop.call_soon_threadsafe(self._dispatch, msg.topic, payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            _logger.debug("MQTT disconnected: %s", reason_code)
            self._emit_threadsafe(TransportState.CLOSED)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        _logger.debug("MQTT connect host=%s port=%s", host, port)
        try:
            await self._loop.run_in_executor(None, client.connect, host, port, self._keepalive)
        except (OSError, ValueError) as exc:
            self._emit(TransportState.ERROR)
            raise HunterTransportError(f"Connect to {redact_url(url)} failed: {exc}", url=redact_url(url)) from exc
        client.loop_start()
        self._client = client

    def _dispatch(self, topic: str, payload: dict[str, Any]) -> None:
        for handler in list(self._handlers.get(topic, [])):
            try:
                handler(payload)
            except Exception:
                _logger.warning("Message handler failed topic=%s", topic, exc_info=True)

    async def subscribe(self, topic: str, message_type: str, on_message: MessageHandler) -> Subscription:
        client = self._client
        if client is None:
            raise HunterTransportError("Transport is not connected")
        first = topic not in self._handlers
        self._handlers.setdefault(topic, []).append(on_message)
        if first:
            try:
                result, _mid = client.subscribe(topic, qos=0)
            except ValueError as exc:
                self._handlers.pop(topic, None)
                raise HunterTransportError(f"MQTT subscribe rejected topic={topic}: {exc}") from exc
            if result != mqtt.MQTT_ERR_SUCCESS and result != mqtt.MQTT_ERR_NO_CONN:
                self._handlers.pop(topic, None)
                raise HunterTransportError(f"MQTT subscribe failed topic={topic} rc={result}")
        _logger.debug("MQTT subscribed topic=%s type=%s", topic, message_type)
        return _MqttSubscription(self, topic, on_message)

    def _unsubscribe(self, topic: str, handler: MessageHandler) -> None:
        handlers = self._handlers.get(topic)
        if handlers is None:
            return
        if handler in handlers:
            handlers.remove(handler)
        if handlers:
            return
        self._handlers.pop(topic, None)
        client = self._client
        if client is not None:
            client.unsubscribe(topic)

    async def close(self) -> None:
        client = self._client
        self._client = None
        self._handlers.clear()
        if client is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, client.disconnect)
        finally:
            await loop.run_in_executor(None, client.loop_stop)
            _logger.debug("MQTT network loop stopped")
            self._emit(TransportState.CLOSED)
