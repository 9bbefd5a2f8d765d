from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from pyhunter._transport import MessageHandler, StateHandler
from pyhunter.exceptions import HunterTransportError
from pyhunter.geo import GeoPoint
from pyhunter.models.enums import TransportState
from pyhunter.render.surface import IconImage

_CARTO_STYLE_SOURCES = {
    "carto": {"type": "vector", "attribution": "© CARTO"},
    "osm": {"type": "vector", "attribution": "© OpenStreetMap contributors"},
    "carto-labels": {"type": "vector", "attribution": "© CARTO"},
}


class FakeSurface:
    """In-memory render surface that behaves like MapLibre for overlay calls."""

    def __init__(
        self,
        *,
        container: Any = None,
        initial_style: str | dict[str, Any],
        initial_center: GeoPoint,
        initial_zoom: float,
    ) -> None:
        self.container = container
        self.style: str | dict[str, Any] = initial_style
        self.center = initial_center
        self.zoom = initial_zoom
        self.loaded = False
        self.calls: list[tuple[Any, ...]] = []
        self.handlers: dict[str, list[Callable[[Any], None]]] = {}
        self.sources: dict[str, dict[str, Any]] = {}
        self.layers: list[str] = []
        self.images: dict[str, IconImage] = {}
        self.fail_on: set[str] = set()

    def _record(self, *call: Any) -> None:
        if call[0] in self.fail_on:
            raise RuntimeError(f"{call[0]} failed")
        self.calls.append(call)

    def fire(self, event: str, payload: Any = None) -> None:
        for handler in list(self.handlers.get(event, [])):
            handler(payload)

    def finish_style_load(self) -> None:
        self.loaded = True
        self.fire("styledata")

    def pans(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == "pan_to"]

    def mutations(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] not in {"pan_to", "has_image", "get_style"}]

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def set_style(self, descriptor: str | dict[str, Any]) -> None:
        self._record("set_style", descriptor)
        self.style = descriptor
        self.loaded = False
        self.sources.clear()
        self.layers.clear()
        self.images.clear()

    def pan_to(self, point: GeoPoint, *, duration_ms: int) -> None:
        self._record("pan_to", point, duration_ms)
        self.center = point

    def add_source(self, source_id: str, source: dict[str, Any]) -> None:
        self._record("add_source", source_id)
        if source_id in self.sources:
            raise ValueError(f"There is already a source with ID {source_id!r}")
        self.sources[source_id] = source

    def set_source_data(self, source_id: str, data: dict[str, Any]) -> None:
        self._record("set_source_data", source_id)
        if source_id not in self.sources:
            raise KeyError(source_id)
        self.sources[source_id] = {**self.sources[source_id], "data": data}

    def remove_source(self, source_id: str) -> None:
        self._record("remove_source", source_id)
        if source_id not in self.sources:
            raise KeyError(source_id)
        del self.sources[source_id]

    def add_layer(self, layer: dict[str, Any], before_id: str | None = None) -> None:
        self._record("add_layer", layer["id"], before_id)
        if layer["id"] in self.layers:
            raise ValueError(f"Layer with id {layer['id']!r} already exists")
        if layer["source"] not in self.sources:
            raise ValueError(f"Source {layer['source']!r} does not exist")
        if before_id is None:
            self.layers.append(layer["id"])
        else:
            self.layers.insert(self.layers.index(before_id), layer["id"])

    def remove_layer(self, layer_id: str) -> None:
        self._record("remove_layer", layer_id)
        self.layers.remove(layer_id)

    def add_image(self, image_id: str, image: IconImage) -> None:
        self._record("add_image", image_id)
        if image_id in self.images:
            raise ValueError(f"An image named {image_id!r} already exists")
        self.images[image_id] = image

    def has_image(self, image_id: str) -> bool:
        return image_id in self.images

    def get_style(self) -> dict[str, Any]:
        if isinstance(self.style, dict):
            base = dict(self.style.get("sources", {}))
        else:
            base = dict(_CARTO_STYLE_SOURCES)
        return {"sources": {**base, **self.sources}}

    def is_style_loaded(self) -> bool:
        return self.loaded


class SurfaceRecorder:
    """Surface factory that keeps the surfaces it built."""

    def __init__(self) -> None:
        self.surfaces: list[FakeSurface] = []
        self.error: Exception | None = None

    def __call__(self, **kwargs: Any) -> FakeSurface:
        if self.error is not None:
            raise self.error
        surface = FakeSurface(**kwargs)
        self.surfaces.append(surface)
        return surface

    @property
    def surface(self) -> FakeSurface:
        return self.surfaces[-1]


class FakeSubscription:
    def __init__(self, transport: FakeTransport, topic: str, message_type: str, handler: MessageHandler) -> None:
        self.topic = topic
        self.message_type = message_type
        self.handler = handler
        self.active = True
        self._transport = transport

    async def unsubscribe(self) -> None:
        self.active = False
        self._transport.unsubscribed.append(self.topic)


class FakeTransport:
    def __init__(
        self,
        on_state: StateHandler,
        *,
        connect_gate: asyncio.Event | None = None,
        fail_connect: bool = False,
        fail_topics: frozenset[str] = frozenset(),
        error: Exception | None = None,
    ) -> None:
        self.on_state = on_state
        self.connect_gate = connect_gate
        self.fail_connect = fail_connect
        self.fail_topics = fail_topics
        self.error = error
        self.url: str | None = None
        self.subscriptions: list[FakeSubscription] = []
        self.unsubscribed: list[str] = []
        self.closed = False

    async def connect(self, url: str) -> None:
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        if self.fail_connect:
            self.on_state(TransportState.ERROR)
            if self.error is not None:
                raise self.error
            raise HunterTransportError("connection refused", url=url)
        self.url = url
        self.on_state(TransportState.CONNECTED)

    async def subscribe(self, topic: str, message_type: str, on_message: MessageHandler) -> FakeSubscription:
        if topic in self.fail_topics:
            if self.error is not None:
                raise self.error
            raise HunterTransportError(f"subscribe refused topic={topic}")
        subscription = FakeSubscription(self, topic, message_type, on_message)
        self.subscriptions.append(subscription)
        return subscription

    async def close(self) -> None:
        self.closed = True
        self.on_state(TransportState.CLOSED)

    def active_topics(self) -> dict[str, str]:
        return {s.topic: s.message_type for s in self.subscriptions if s.active}

    def publish(self, topic: str, message: dict[str, Any]) -> None:
        for subscription in list(self.subscriptions):
            if subscription.active and subscription.topic == topic:
                subscription.handler(message)


class TransportRecorder:
    """Transport factory that keeps the transports it built."""

    def __init__(self) -> None:
        self.transports: list[FakeTransport] = []
        self.connect_gate: asyncio.Event | None = None
        self.fail_connect = False
        self.fail_topics: frozenset[str] = frozenset()
        self.error: Exception | None = None

    def __call__(self, on_state: StateHandler) -> FakeTransport:
        transport = FakeTransport(
            on_state,
            connect_gate=self.connect_gate,
            fail_connect=self.fail_connect,
            fail_topics=self.fail_topics,
            error=self.error,
        )
        self.transports.append(transport)
        return transport

    @property
    def transport(self) -> FakeTransport:
        return self.transports[-1]


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def surfaces() -> SurfaceRecorder:
    return SurfaceRecorder()


@pytest.fixture
def transports() -> TransportRecorder:
    return TransportRecorder()


@pytest.fixture
def origin() -> GeoPoint:
    return GeoPoint(longitude=14.4208, latitude=50.088)
