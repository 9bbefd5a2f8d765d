"""Telemetry source variants.

Exactly one source is active at a time. Switching builds a fresh instance
of the requested variant; sources are never mutated into another mode.
"""

from __future__ import annotations

import random

from pyhunter._transport import TransportFactory
from pyhunter.config import HunterConfig
from pyhunter.geo import GeoPoint
from pyhunter.models.enums import SourceMode
from pyhunter.sources.base import SourceSink, TelemetrySource
from pyhunter.sources.live import LiveSource
from pyhunter.sources.simulated import SimulatedSource, simulate_tick


def build_source(
    mode: SourceMode,
    *,
    config: HunterConfig,
    origin: GeoPoint,
    sink: SourceSink,
    transport_factory: TransportFactory | None = None,
    rng: random.Random | None = None,
) -> TelemetrySource:
    """Construct a fresh source for *mode*."""
    if SourceMode(mode) == SourceMode.LIVE:
        return LiveSource(config=config, origin=origin, sink=sink, transport_factory=transport_factory)
    return SimulatedSource(origin=origin, sink=sink, tick_interval=config.sim_tick_interval, rng=rng)


__all__ = [
    "LiveSource",
    "SimulatedSource",
    "SourceSink",
    "TelemetrySource",
    "build_source",
    "simulate_tick",
]
