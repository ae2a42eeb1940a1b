# ================================
# file: appio/scan_log.py
# ================================
"""
JSON-lines observation log

One observation per line:
    {"t": 12.5, "pose": [x, y, theta],
     "scan": {"angle_min": ..., "angle_increment": ..., "range_max": ..., "ranges": [...]}}
Blank lines are skipped.
"""
from __future__ import annotations
from typing import Optional, Dict
import json
import math

from core.errors import InvalidScan
from core.observation_source import Observation, ObservationSource
from core.types import Pose2D, LaserScan


def parse_observation_line(line: str, line_no: int = 0) -> Optional[Observation]:
    """Parse one log line. Returns None for blank lines."""
    line = line.strip()
    if not line:
        return None
    try:
        msg = json.loads(line)
        px, py, pth = (float(v) for v in msg["pose"])
        scan_msg = msg["scan"]
        t = msg.get("t")
        scan = LaserScan(
            float(scan_msg["angle_min"]),
            float(scan_msg["angle_increment"]),
            [float(r) for r in scan_msg["ranges"]],
            range_max=float(scan_msg["range_max"]),
            t=float(t) if t is not None else None,
        )
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidScan(f"line {line_no}: malformed observation ({e})") from e
    pose = Pose2D(px, py, pth)
    return Observation(pose, scan.with_pose(pose), scan.t)


def observation_to_dict(pose: Pose2D, scan: LaserScan, t: Optional[float] = None) -> Dict:
    stamp = t if t is not None else scan.t
    return {
        "t": stamp,
        "pose": [pose.x, pose.y, pose.theta],
        "scan": {
            "angle_min": scan.angle_min,
            "angle_increment": scan.angle_increment,
            "range_max": scan.range_max,
            "ranges": list(scan.ranges),
        },
    }


class ScanLogReader(ObservationSource):
    """Recorded observation source reading a JSON-lines file"""

    def __init__(self, path: str) -> None:
        self.path = path
        self._fh = open(path, 'r', encoding='utf-8')
        self._line_no = 0

    def next_observation(self) -> Optional[Observation]:
        if self._fh is None:
            return None
        try:
            for line in self._fh:
                self._line_no += 1
                obs = parse_observation_line(line, self._line_no)
                if obs is not None:
                    return obs
        except UnicodeDecodeError as e:
            raise InvalidScan(f"line {self._line_no + 1}: not valid UTF-8 ({e})") from e
        return None

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None


class ScanLogWriter:
    """Writes observations in the format ScanLogReader consumes"""

    def __init__(self, path: str) -> None:
        self.path = path
        self._fh = open(path, 'w', encoding='utf-8')
        self.count = 0

    def write(self, pose: Pose2D, scan: LaserScan, t: Optional[float] = None) -> None:
        if not all(math.isfinite(r) for r in scan.ranges):
            raise InvalidScan("refusing to log non-finite ranges")
        self._fh.write(json.dumps(observation_to_dict(pose, scan, t)) + "\n")
        self.count += 1

    def close(self) -> None:
        if self._fh is not None:
            self._fh.flush()
            self._fh.close()
            self._fh = None

    def __enter__(self) -> "ScanLogWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
