# ================================
# file: slam/slam_system.py
# ================================
"""
SLAM System - pose-graph mapping front-end

Architecture:
- Graph: every observation becomes a node with its own local scan grid
- Scan matcher: pluggable collaborator annotating edges (keyframes, loop closures)
- Map fuser: on-demand voting over all local grids

The system is single-threaded: one observation or one map request at a time.
"""
from __future__ import annotations
from typing import Optional
import time

from core import Pose2D, LaserScan, SLAM_RESOLUTION, RANGE_THRESHOLD
from core.observation_source import ObservationSource

from slam.graph import Graph
from slam.map_fuser import OccupancyMap
from slam.scan_matcher import ScanMatcher


class SlamSystem:
    """
    Mapping front-end wiring observations into the pose graph

    Usage:
        slam = SlamSystem(resolution=0.05)

        # Feed observations one by one ...
        slam.update(pose, scan)

        # ... or drain a source
        slam.process(source)

        occ = slam.generate_map()
    """

    def __init__(self,
                 resolution: float = SLAM_RESOLUTION,
                 range_threshold: float = RANGE_THRESHOLD,
                 scan_matcher: Optional[ScanMatcher] = None,
                 logger_func=None,
                 log_file=None) -> None:
        """
        Initialize SLAM system

        Args:
            resolution: Grid resolution (m/cell)
            range_threshold: Fraction of scan.range_max trusted for obstacles
            scan_matcher: Collaborator for edge annotation (None = chain only)
            logger_func: Logger function
            log_file: Log file handle
        """
        self.graph = Graph(resolution, range_threshold, scan_matcher=scan_matcher,
                           logger_func=logger_func, log_file=log_file)
        self.res = self.graph.resolution
        self.pose: Optional[Pose2D] = None
        self._start_time = time.time()

        # Logger
        self.logger_func = logger_func
        self.log_file = log_file

        self._log_debug(f"SLAM系统初始化:")
        self._log_debug(f"  分辨率: {self.res:.4f}m/cell")
        self._log_debug(f"  range_threshold: {self.graph.range_threshold:.2f}")
        self._log_debug(f"  scan matcher: {type(self.graph.scan_matcher).__name__}")

    def update(self, pose: Pose2D, scan: LaserScan, t: Optional[float] = None) -> int:
        """Insert one observation; returns the node id."""
        node_id = self.graph.add_node(pose, scan, stamp=t)
        self.pose = pose.copy()
        return node_id

    def process(self, source: ObservationSource, max_observations: Optional[int] = None) -> int:
        """
        Drain an observation source into the graph

        Args:
            source: Observation source
            max_observations: Stop after this many observations (None = until exhausted)

        Returns:
            Number of nodes added
        """
        added = 0
        if max_observations is not None and max_observations <= 0:
            return added
        for obs in source:
            self.update(obs.pose, obs.scan, obs.t)
            added += 1
            if max_observations is not None and added >= max_observations:
                break
        self._log_debug(f"处理观测: {added}条, 图节点总数={len(self.graph)}")
        return added

    def generate_map(self, stamp: Optional[float] = None) -> OccupancyMap:
        return self.graph.generate_map(stamp=stamp)

    def get_pose(self) -> Optional[Pose2D]:
        """Pose of the latest observation"""
        return self.pose

    def node_count(self) -> int:
        return len(self.graph)

    def get_mapping_duration(self) -> float:
        """Seconds since construction"""
        return time.time() - self._start_time

    def _log_debug(self, msg: str) -> None:
        """Log debug message"""
        if self.logger_func and self.log_file:
            try:
                self.logger_func(self.log_file, msg, "SLAM")
            except Exception:
                print(f"[SLAM] {msg}")
        else:
            print(f"[SLAM] {msg}")
