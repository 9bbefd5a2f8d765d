"""Vehicle pose sample."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pyhunter.geo import GeoPoint


class Pose(BaseModel):
    """A projected vehicle position.

    Once handed to the track store a pose is never mutated (the model is
    frozen).

    Parameters
    ----------
    position : GeoPoint
        Vehicle position.
    source_timestamp : float or None
        Epoch seconds from the message header, if any.
    heading : float or None
        Compass heading in degrees clockwise from north, if known.
    """

    model_config = ConfigDict(frozen=True)

    position: GeoPoint
    source_timestamp: float | None = None
    heading: float | None = None
