"""Trail and planned-path store.

This is the only component allowed to hold ingested positions. Poses are
appended in receipt order; nothing is reordered or batched.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from pyhunter._constants import DEFAULT_TRAIL_MAX_LENGTH
from pyhunter.geo import GeoPoint
from pyhunter.models.pose import Pose


@dataclass(frozen=True)
class TrackSnapshot:
    """Immutable view of the store at one revision."""

    current: Pose | None
    trail: tuple[GeoPoint, ...]
    path: tuple[GeoPoint, ...]
    revision: int

    @property
    def current_position(self) -> GeoPoint | None:
        return self.current.position if self.current is not None else None


class TrackStore:
    """Bounded FIFO trail plus a wholesale-replaced planned path."""

    def __init__(self, max_length: int = DEFAULT_TRAIL_MAX_LENGTH) -> None:
        if max_length < 1:
            raise ValueError("max_length must be at least 1")
        self._max_length = max_length
        self._trail: deque[GeoPoint] = deque(maxlen=max_length)
        self._path: tuple[GeoPoint, ...] = ()
        self._current: Pose | None = None
        self._revision = 0

    @property
    def max_length(self) -> int:
        return self._max_length

    @property
    def current(self) -> Pose | None:
        return self._current

    @property
    def current_position(self) -> GeoPoint | None:
        return self._current.position if self._current is not None else None

    @property
    def trail(self) -> tuple[GeoPoint, ...]:
        return tuple(self._trail)

    @property
    def path(self) -> tuple[GeoPoint, ...]:
        return self._path

    @property
    def revision(self) -> int:
        return self._revision

    def on_pose(self, pose: Pose) -> None:
        """Append to the trail (evicting the oldest when full) and set current."""
        self._trail.append(pose.position)
        self._current = pose
        self._revision += 1

    def on_path(self, points: Iterable[GeoPoint] | None) -> None:
        """Replace the path. Empty or ``None`` clears it."""
        self._path = tuple(points) if points is not None else ()
        self._revision += 1

    def on_mode_switch(self) -> None:
        """Forget trail and path; history from the previous source is meaningless."""
        self.reset()

    def reset(self) -> None:
        self._trail.clear()
        self._path = ()
        self._current = None
        self._revision += 1

    def resize(self, max_length: int) -> None:
        """Change the trail bound, keeping the most recent points."""
        if max_length < 1:
            raise ValueError("max_length must be at least 1")
        if max_length == self.max_length:
            return
        self._max_length = max_length
        self._trail = deque(self._trail, maxlen=max_length)
        self._revision += 1

    def snapshot(self) -> TrackSnapshot:
        return TrackSnapshot(
            current=self._current,
            trail=tuple(self._trail),
            path=self._path,
            revision=self._revision,
        )
