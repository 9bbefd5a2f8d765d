"""Camera follow/free state machine.

``FOLLOWING`` recenters the map on every new position; ``FREE`` leaves the
camera to the user. A user drag always drops to ``FREE``; only an explicit
user command brings it back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pyhunter.geo import GeoPoint
from pyhunter.models.enums import FollowState, MapStyleKey

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewState:
    follow_state: FollowState
    map_center: GeoPoint
    zoom: float
    style_key: MapStyleKey

    @property
    def follow_mode(self) -> bool:
        return self.follow_state == FollowState.FOLLOWING


class ViewController:
    """Owns follow mode and mirrors the render surface camera."""

    def __init__(
        self,
        *,
        center: GeoPoint,
        zoom: float,
        style_key: MapStyleKey = MapStyleKey.DARK,
    ) -> None:
        self._follow_state = FollowState.FOLLOWING
        self._center = center
        self._zoom = zoom
        self._style_key = style_key

    @property
    def follow_state(self) -> FollowState:
        return self._follow_state

    @property
    def following(self) -> bool:
        return self._follow_state == FollowState.FOLLOWING

    @property
    def style_key(self) -> MapStyleKey:
        return self._style_key

    def on_user_drag(self) -> bool:
        """Disengage follow. Returns ``True`` if the state changed."""
        if self._follow_state == FollowState.FREE:
            return False
        _logger.debug("User drag: follow disengaged")
        self._follow_state = FollowState.FREE
        return True

    def recenter(self) -> None:
        """Explicit recenter: always re-engages follow."""
        if self._follow_state != FollowState.FOLLOWING:
            _logger.debug("Recenter: follow re-engaged")
        self._follow_state = FollowState.FOLLOWING

    def toggle_follow(self) -> bool:
        """Flip follow mode. Returns the new ``following`` value."""
        if self._follow_state == FollowState.FOLLOWING:
            self._follow_state = FollowState.FREE
        else:
            self._follow_state = FollowState.FOLLOWING
        _logger.debug("Follow toggled to %s", self._follow_state)
        return self.following

    def should_pan_on_position(self) -> bool:
        return self._follow_state == FollowState.FOLLOWING

    def mirror_camera(self, center: GeoPoint, zoom: float | None = None) -> None:
        """Record the camera as reported by (or commanded to) the surface."""
        self._center = center
        if zoom is not None:
            self._zoom = zoom

    def set_style(self, key: MapStyleKey | str) -> bool:
        """Select a base style. Returns ``True`` if it changed."""
        new_key = MapStyleKey(key)
        if new_key == self._style_key:
            return False
        self._style_key = new_key
        return True

    def snapshot(self) -> ViewState:
        return ViewState(
            follow_state=self._follow_state,
            map_center=self._center,
            zoom=self._zoom,
            style_key=self._style_key,
        )
