# ================================
# file: core/observation_source.py
# ================================
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from core.types import Pose2D, LaserScan


class Observation:
    """One (pose, scan) pair delivered by an observation source."""
    __slots__ = ("pose", "scan", "t")

    def __init__(self, pose: Pose2D, scan: LaserScan, t: Optional[float] = None) -> None:
        self.pose = pose
        self.scan = scan
        self.t = t if t is not None else scan.t

    def __repr__(self) -> str:
        return f"Observation(pose={self.pose!r}, beams={self.scan.beam_count()}, t={self.t})"


class ObservationSource(ABC):
    """Observation source base class - unifies simulated and recorded input.

    The mapping core pulls one observation at a time; ``None`` means the
    stream is exhausted.
    """

    @abstractmethod
    def next_observation(self) -> Optional[Observation]:
        """Return the next observation or None when exhausted."""
        pass

    def close(self) -> None:
        """Release underlying resources (no-op by default)."""
        pass

    def __iter__(self) -> Iterator[Observation]:
        while True:
            obs = self.next_observation()
            if obs is None:
                return
            yield obs

    def __enter__(self) -> "ObservationSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
