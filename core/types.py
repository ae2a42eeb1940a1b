# ================================
# file: core/types.py
# ================================
"""Shared data structures for poses, LiDAR scans and occupancy cells.
Use minimal typing: Tuple/Optional/Dict/Sequence only.
"""
from __future__ import annotations
from enum import IntEnum
from typing import Sequence, Optional
import math

import numpy as np

from core.config import LIDAR_RANGE
from core.errors import InvalidScan


TWO_PI: float = 2.0 * math.pi


class CellState(IntEnum):
    """Three-valued occupancy cell. Values match the nav_msgs/OccupancyGrid convention."""
    UNKNOWN = -1
    FREE = 0
    BLOCKED = 100


def round_half_away(value: float) -> int:
    """Round to nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    if value >= 0.0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def round_half_away_array(values: np.ndarray) -> np.ndarray:
    """Vectorised round_half_away, returns int64."""
    values = np.asarray(values, dtype=np.float64)
    return (np.sign(values) * np.floor(np.abs(values) + 0.5)).astype(np.int64)


def wrap_two_pi(angle: float) -> float:
    """Wrap angle into [0, 2pi) using x - floor(x/2pi)*2pi."""
    return angle - math.floor(angle / TWO_PI) * TWO_PI


def wrap_angle(angle: float) -> float:
    """Wrap angle to [-pi, pi)"""
    return (angle + math.pi) % TWO_PI - math.pi


class Pose2D:
    """2D pose of the robot in world coordinates.


    Attributes
    -----------
    x, y : meters
    theta : radians
    """
    __slots__ = ("x", "y", "theta")


    def __init__(self, x: float, y: float, theta: float) -> None:
        self.x = float(x)
        self.y = float(y)
        self.theta = float(theta)


    def copy(self) -> "Pose2D":
        return Pose2D(self.x, self.y, self.theta)


    def distance_to(self, other: "Pose2D") -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return math.hypot(dx, dy)


    def relative_to(self, origin: "Pose2D") -> "Pose2D":
        """Motion from ``origin`` to ``self`` expressed in ``origin``'s body frame."""
        dx_w = self.x - origin.x
        dy_w = self.y - origin.y
        c, s = math.cos(origin.theta), math.sin(origin.theta)
        dx_b = c * dx_w + s * dy_w
        dy_b = -s * dx_w + c * dy_w
        return Pose2D(dx_b, dy_b, wrap_angle(self.theta - origin.theta))


    def compose(self, delta: "Pose2D") -> "Pose2D":
        """Apply a body-frame motion ``delta`` to this pose (inverse of relative_to)."""
        c, s = math.cos(self.theta), math.sin(self.theta)
        return Pose2D(self.x + c * delta.x - s * delta.y,
                      self.y + s * delta.x + c * delta.y,
                      wrap_angle(self.theta + delta.theta))


    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.theta)


    def as_tuple(self):
        return (self.x, self.y, self.theta)


    def __eq__(self, other) -> bool:
        if not isinstance(other, Pose2D):
            return NotImplemented
        return (self.x, self.y, self.theta) == (other.x, other.y, other.theta)


    def __repr__(self) -> str:
        return f"Pose2D(x={self.x:.3f}, y={self.y:.3f}, theta={self.theta:.3f})"




class LaserScan:
    """LiDAR scan container.


    Parameters
    ----------
    angle_min : float
    Starting angle (radians) relative to robot +x axis.
    angle_increment : float
    Angle increment per beam (radians).
    ranges : Sequence[float]
    Range array in meters; length equals beam count.
    range_max : float
    Maximum trustworthy measurement (meters).
    robot_pose : Optional[Pose2D]
    Pose when scan was taken (optional).
    t : Optional[float]
    Timestamp seconds.
    """
    __slots__ = ("angle_min", "angle_increment", "ranges", "range_max", "robot_pose", "t")


    def __init__(self, angle_min: float, angle_increment: float,
        ranges: Sequence[float], range_max: float = LIDAR_RANGE,
        robot_pose: Optional[Pose2D] = None,
        t: Optional[float] = None) -> None:
        self.angle_min = float(angle_min)
        self.angle_increment = float(angle_increment)
        self.ranges = [float(r) for r in ranges]
        self.range_max = float(range_max)
        self.robot_pose = robot_pose
        self.t = t


    def beam_count(self) -> int:
        return len(self.ranges)


    def beam_angle(self, i: int) -> float:
        """Beam angle in the sensor frame."""
        return self.angle_min + i * self.angle_increment


    def with_pose(self, pose: Pose2D, t: Optional[float] = None) -> "LaserScan":
        """Snapshot of this scan with the acquisition pose and stamp attached."""
        stamp = self.t if t is None else t
        return LaserScan(self.angle_min, self.angle_increment, self.ranges,
                         range_max=self.range_max, robot_pose=pose.copy(), t=stamp)


    def validate(self) -> None:
        """Raise InvalidScan if the scan cannot be ray-cast."""
        if not self.ranges:
            raise InvalidScan("scan has no beams")
        for name in ("angle_min", "angle_increment", "range_max"):
            if not math.isfinite(getattr(self, name)):
                raise InvalidScan(f"{name} is not finite: {getattr(self, name)}")
        if self.angle_increment == 0.0:
            raise InvalidScan("angle_increment must be non-zero")
        for i, r in enumerate(self.ranges):
            if not math.isfinite(r):
                raise InvalidScan(f"range[{i}] is not finite: {r}")
