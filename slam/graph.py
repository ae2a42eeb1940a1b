# ================================
# file: slam/graph.py
# ================================
"""
Pose Graph Store

Append-only collection of nodes (pose + scan + local grid) and edges
(parent -> child links carrying an optional relative motion). Edges refer to
nodes by index; node ids are dense and assigned in insertion order.
"""
from __future__ import annotations
from typing import Iterator, List, Optional, Tuple

from core import Pose2D, LaserScan, EmptyGraph, validate_mapping_params
from core.config import RANGE_THRESHOLD
from slam.scan_grid import ScanGrid, ScanGridBuilder
from slam.map_fuser import MapFuser, OccupancyMap
from slam.scan_matcher import ScanMatcher, NullScanMatcher

EDGE_CHAIN = "chain"
EDGE_MATCH = "match"


class Node:
    """One observation in the graph. Read-only after insertion."""
    __slots__ = ("_node_id", "_pose", "_scan", "_grid")

    def __init__(self, node_id: int, pose: Pose2D, scan: LaserScan, grid: ScanGrid) -> None:
        self._node_id = int(node_id)
        self._pose = pose.copy()
        self._scan = scan
        self._grid = grid

    @property
    def node_id(self) -> int:
        return self._node_id

    @property
    def pose(self) -> Pose2D:
        return self._pose.copy()

    @property
    def scan(self) -> LaserScan:
        return self._scan

    @property
    def grid(self) -> ScanGrid:
        return self._grid

    def __repr__(self) -> str:
        return f"Node({self._node_id}, {self._pose!r}, {self._grid!r})"


class Edge:
    """Directed link parent -> child."""
    __slots__ = ("_parent", "_child", "_relative_motion", "_kind")

    def __init__(self, parent: int, child: int,
                 relative_motion: Optional[Pose2D] = None,
                 kind: str = EDGE_CHAIN) -> None:
        if parent == child:
            raise ValueError(f"self-edge on node {parent}")
        self._parent = int(parent)
        self._child = int(child)
        self._relative_motion = relative_motion.copy() if relative_motion is not None else None
        self._kind = kind

    @property
    def parent(self) -> int:
        return self._parent

    @property
    def child(self) -> int:
        return self._child

    @property
    def relative_motion(self) -> Optional[Pose2D]:
        if self._relative_motion is None:
            return None
        return self._relative_motion.copy()

    @property
    def kind(self) -> str:
        return self._kind

    def __repr__(self) -> str:
        return f"Edge({self._parent}->{self._child}, {self._kind}, motion={self._relative_motion!r})"


class Graph:
    """
    Pose graph with chain edges and an optional scan-matcher hook

    Usage:
        graph = Graph(resolution=0.05, range_threshold=0.9)
        for pose, scan in observations:
            graph.add_node(pose, scan)
        occ = graph.generate_map()
    """

    def __init__(self,
                 resolution: float,
                 range_threshold: float = RANGE_THRESHOLD,
                 scan_matcher: Optional[ScanMatcher] = None,
                 logger_func=None,
                 log_file=None) -> None:
        validate_mapping_params(resolution, range_threshold)
        self.resolution = float(resolution)
        self.range_threshold = float(range_threshold)

        self._builder = ScanGridBuilder(self.resolution, self.range_threshold,
                                        logger_func=logger_func, log_file=log_file)
        self._fuser = MapFuser(self.resolution, logger_func=logger_func, log_file=log_file)
        self.scan_matcher: ScanMatcher = scan_matcher if scan_matcher is not None else NullScanMatcher()

        self._nodes: List[Node] = []
        self._edges: List[Edge] = []
        self._last_node_id: Optional[int] = None
        self.current_map: Optional[OccupancyMap] = None

        # Logger
        self.logger_func = logger_func
        self.log_file = log_file

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def add_node(self, pose: Pose2D, scan: LaserScan, stamp: Optional[float] = None) -> int:
        """
        Insert one observation

        Builds the local grid, collects the edges the matcher proposes, asks
        the scan matcher for the motion since the last keyframe, then appends
        the node plus a chain edge from the previous node and the proposed
        edges. Neither the graph nor the matcher changes if any step fails.

        Returns:
            The new node id
        """
        stamp = stamp if stamp is not None else scan.t
        snapshot = scan.with_pose(pose, stamp)
        grid = self._builder.build(pose, snapshot)

        node_id = len(self._nodes)
        node = Node(node_id, pose, snapshot, grid)

        match_edges: List[Edge] = []
        for parent, motion in self.scan_matcher.propose_edges(self, node, node_id):
            parent = int(parent)
            if not (0 <= parent < node_id):
                raise ValueError(f"proposed edge parent {parent} is not an existing node")
            match_edges.append(Edge(parent, node_id, motion, EDGE_MATCH))

        # Matcher keyframe state advances only once nothing else can fail
        relative_motion = self.scan_matcher.submit_scan(snapshot, stamp)
        new_edges: List[Edge] = []
        if self._last_node_id is not None:
            new_edges.append(Edge(self._last_node_id, node_id, relative_motion, EDGE_CHAIN))
        new_edges.extend(match_edges)

        self._nodes.append(node)
        self._edges.extend(new_edges)
        self._last_node_id = node_id

        self._log_debug(f"节点#{node_id}: pose=({pose.x:.3f}, {pose.y:.3f}, {pose.theta:.3f}), "
                        f"grid={grid.width}x{grid.height}, edges+={len(new_edges)}")
        return node_id

    # ------------------------------------------------------------------
    # Fusion
    # ------------------------------------------------------------------
    def generate_map(self, stamp: Optional[float] = None) -> OccupancyMap:
        """Fuse all local grids into a global occupancy map."""
        if not self._nodes:
            raise EmptyGraph("generate_map called on a graph without nodes")
        occ = self._fuser.fuse(self._nodes, stamp=stamp)
        self.current_map = occ
        return occ

    # ------------------------------------------------------------------
    # Read-only access
    # ------------------------------------------------------------------
    @property
    def last_node_id(self) -> Optional[int]:
        return self._last_node_id

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def node(self, node_id: int) -> Node:
        if not (0 <= node_id < len(self._nodes)):
            raise IndexError(f"no node with id {node_id}")
        return self._nodes[node_id]

    def iter_nodes(self) -> Iterator[Node]:
        return iter(tuple(self._nodes))

    def iter_edges(self) -> Iterator[Edge]:
        return iter(tuple(self._edges))

    def edges_to(self, child: int) -> List[Edge]:
        return [e for e in self._edges if e.child == child]

    def chain(self) -> List[Tuple[int, int]]:
        """(parent, child) pairs of the chain edges in insertion order."""
        return [(e.parent, e.child) for e in self._edges if e.kind == EDGE_CHAIN]

    def __len__(self) -> int:
        return len(self._nodes)

    def _log_debug(self, msg: str) -> None:
        """Log debug message"""
        if self.logger_func and self.log_file:
            try:
                self.logger_func(self.log_file, msg, "GRAPH")
            except Exception:
                print(f"[GRAPH] {msg}")
        else:
            print(f"[GRAPH] {msg}")
