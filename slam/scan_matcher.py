# ================================
# file: slam/scan_matcher.py
# ================================
"""
Scan-matcher collaborator interface

The graph asks the matcher two things per inserted node, in this order:
- propose_edges(graph, node, node_id): extra (parent_id, motion) links, e.g.
  loop closures. The default proposes none, leaving a pure chain. Must not
  change matcher state; the insert may still be rejected.
- submit_scan(scan, stamp): motion since the last keyframe, or None when no
  keyframe update happened. Used to annotate the chain edge. Called only
  once the insert can no longer fail.

KeyframeScanMatcher implements the keyframe bookkeeping from the odometry pose
carried by each scan; refining the motion by scan alignment is left to a real
matcher plugged in through the same interface.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
import math

from core import Pose2D, LaserScan, InvalidConfig
from core.config import KEYFRAME_DISTANCE_LINEAR, KEYFRAME_DISTANCE_ANGULAR


class ScanMatcher(ABC):
    """Scan-matcher capability consumed by Graph"""

    @abstractmethod
    def submit_scan(self, scan: LaserScan, stamp: Optional[float]) -> Optional[Pose2D]:
        """Return the relative motion from the last keyframe, or None."""
        pass

    def propose_edges(self, graph, node, node_id: int) -> List[Tuple[int, Optional[Pose2D]]]:
        """Extra (parent_id, relative_motion) links for the new node."""
        return []

    def reset(self) -> None:
        pass


class NullScanMatcher(ScanMatcher):
    """No-op matcher: no motion annotation, chain edges only."""

    def submit_scan(self, scan: LaserScan, stamp: Optional[float]) -> Optional[Pose2D]:
        return None


class KeyframeScanMatcher(ScanMatcher):
    """Keyframe policy driven by the scan's odometry pose.

    A scan becomes a new keyframe when, relative to the last keyframe, the
    translation is >= keyframe_distance_linear or the absolute rotation is
    >= keyframe_distance_angular.
    """

    def __init__(self,
                 keyframe_distance_linear: float = KEYFRAME_DISTANCE_LINEAR,
                 keyframe_distance_angular: float = KEYFRAME_DISTANCE_ANGULAR,
                 logger_func=None,
                 log_file=None) -> None:
        if not (keyframe_distance_linear > 0.0 and keyframe_distance_angular > 0.0):
            raise InvalidConfig("keyframe distances must be positive, got "
                                f"{keyframe_distance_linear}, {keyframe_distance_angular}")
        self.keyframe_distance_linear = float(keyframe_distance_linear)
        self.keyframe_distance_angular = float(keyframe_distance_angular)

        self.keyframe_pose: Optional[Pose2D] = None
        self.keyframe_stamp: Optional[float] = None
        self.keyframe_count = 0

        # Logger
        self.logger_func = logger_func
        self.log_file = log_file

    def submit_scan(self, scan: LaserScan, stamp: Optional[float]) -> Optional[Pose2D]:
        pose = scan.robot_pose
        if pose is None:
            self._log_debug("scan without pose, no keyframe update")
            return None

        if self.keyframe_pose is None:
            self._set_keyframe(pose, stamp)
            return None

        delta = self.estimate_pose_change(self.keyframe_pose, pose)
        if not self.is_new_keyframe(delta):
            return None

        self._log_debug(f"新关键帧#{self.keyframe_count}: d=({delta.x:.3f}, {delta.y:.3f}, {delta.theta:.3f})")
        self._set_keyframe(pose, stamp)
        return delta

    @staticmethod
    def estimate_pose_change(prev: Pose2D, cur: Pose2D) -> Pose2D:
        """Body-frame motion from prev to cur"""
        return cur.relative_to(prev)

    def is_new_keyframe(self, delta: Pose2D) -> bool:
        return (math.hypot(delta.x, delta.y) >= self.keyframe_distance_linear
                or abs(delta.theta) >= self.keyframe_distance_angular)

    def reset(self) -> None:
        self.keyframe_pose = None
        self.keyframe_stamp = None
        self.keyframe_count = 0

    def _set_keyframe(self, pose: Pose2D, stamp: Optional[float]) -> None:
        self.keyframe_pose = pose.copy()
        self.keyframe_stamp = stamp
        self.keyframe_count += 1

    def _log_debug(self, msg: str) -> None:
        """Log debug message"""
        if self.logger_func and self.log_file:
            try:
                self.logger_func(self.log_file, msg, "MATCHER")
            except Exception:
                print(f"[MATCHER] {msg}")
        else:
            print(f"[MATCHER] {msg}")
