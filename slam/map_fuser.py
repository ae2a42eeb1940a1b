# ================================
# file: slam/map_fuser.py
# ================================
"""
Map Fuser - Voting-based fusion of local scan grids

Every node's local grid is placed into a world-aligned global grid. Per global
cell three counters are accumulated (seen / free / blocked) and the cell is
resolved by majority:

    free > blocked  -> FREE
    free < blocked  -> BLOCKED
    free == blocked -> UNKNOWN (no tie-breaker, including 0 == 0)
"""
from __future__ import annotations
import time
from typing import List, Optional, Sequence, Tuple
import numpy as np

from core import CellState, EmptyGraph, MapExtentError, round_half_away
from core.config import MAX_MAP_CELLS, MAP_FRAME_ID


class MapExtent:
    """World bounds of the fused map and where each local grid lands in it."""
    __slots__ = ("xmin", "xmax", "ymin", "ymax", "width", "height", "placements")

    def __init__(self, xmin: float, xmax: float, ymin: float, ymax: float,
                 width: int, height: int, placements: List[Tuple[int, int]]) -> None:
        self.xmin = xmin
        self.xmax = xmax
        self.ymin = ymin
        self.ymax = ymax
        self.width = width
        self.height = height
        self.placements = placements

    @property
    def size(self) -> int:
        return self.width * self.height


class VoteCounts:
    """Per-cell counters, each an int32 array of shape (height, width)."""
    __slots__ = ("seen", "free", "blocked")

    def __init__(self, height: int, width: int) -> None:
        self.seen = np.zeros((height, width), dtype=np.int32)
        self.free = np.zeros((height, width), dtype=np.int32)
        self.blocked = np.zeros((height, width), dtype=np.int32)


class OccupancyMap:
    """Fused global occupancy grid.

    ``origin`` is the world position (meters) of cell (0, 0), the lower-left
    corner. ``data`` is int8 with shape (height, width), values in {-1, 0, 100}.
    """
    __slots__ = ("width", "height", "resolution", "origin", "data", "frame_id", "stamp")

    def __init__(self, width: int, height: int, resolution: float,
                 origin: Tuple[float, float], data: np.ndarray,
                 frame_id: str = MAP_FRAME_ID, stamp: Optional[float] = None) -> None:
        self.width = int(width)
        self.height = int(height)
        self.resolution = float(resolution)
        self.origin = (float(origin[0]), float(origin[1]))
        self.data = np.asarray(data, dtype=np.int8).reshape(self.height, self.width)
        self.frame_id = frame_id
        self.stamp = stamp if stamp is not None else time.time()

    def to_list(self) -> List[int]:
        """Row-major flat list of cell values."""
        return self.data.reshape(-1).astype(int).tolist()

    def to_msg(self) -> dict:
        """Dictionary shaped like nav_msgs/OccupancyGrid."""
        return {
            'header': {'frame_id': self.frame_id, 'stamp': self.stamp},
            'info': {
                'width': self.width,
                'height': self.height,
                'resolution': self.resolution,
                'origin': {'x': self.origin[0], 'y': self.origin[1], 'theta': 0.0},
            },
            'data': self.to_list(),
        }

    def world_to_cell(self, x: float, y: float) -> Tuple[int, int]:
        """World coordinates -> (col, row); may be outside the map."""
        col = round_half_away((x - self.origin[0]) / self.resolution)
        row = round_half_away((y - self.origin[1]) / self.resolution)
        return col, row

    def cell_at_world(self, x: float, y: float) -> CellState:
        col, row = self.world_to_cell(x, y)
        if not (0 <= col < self.width and 0 <= row < self.height):
            return CellState.UNKNOWN
        return CellState(int(self.data[row, col]))

    def count(self, state: CellState) -> int:
        return int(np.count_nonzero(self.data == int(state)))

    def coverage_ratio(self) -> float:
        """Known cells / total cells"""
        total = self.data.size
        if total == 0:
            return 0.0
        return float(np.count_nonzero(self.data != CellState.UNKNOWN)) / float(total)


class MapFuser:
    """Fuses node scan grids into one OccupancyMap"""

    def __init__(self,
                 resolution: float,
                 max_cells: int = MAX_MAP_CELLS,
                 logger_func=None,
                 log_file=None) -> None:
        self.res = float(resolution)
        self.max_cells = int(max_cells)

        # Logger
        self.logger_func = logger_func
        self.log_file = log_file

    def compute_extent(self, nodes: Sequence) -> MapExtent:
        """
        Global bounds over all nodes and the lower-left global cell of each local grid

        Args:
            nodes: objects with ``pose`` (Pose2D) and ``grid`` (ScanGrid)
        """
        if not nodes:
            raise EmptyGraph("cannot compute map extent without nodes")
        res = self.res

        xmax = ymax = float("-inf")
        xmin = ymin = float("inf")
        for node in nodes:
            pose, grid = node.pose, node.grid
            xmax = max(xmax, pose.x + grid.xmax * res)
            xmin = min(xmin, pose.x - grid.xmin * res)
            ymax = max(ymax, pose.y + grid.ymax * res)
            ymin = min(ymin, pose.y - grid.ymin * res)

        # Inclusive cell count, same convention as ScanGrid
        width = round_half_away((xmax - xmin) / res) + 1
        height = round_half_away((ymax - ymin) / res) + 1

        placements: List[Tuple[int, int]] = []
        for node in nodes:
            pose, grid = node.pose, node.grid
            nx = round_half_away((pose.x - xmin) / res) - grid.xmin
            ny = round_half_away((pose.y - ymin) / res) - grid.ymin
            if nx < 0 or ny < 0:
                raise MapExtentError(f"node placed at negative cell ({nx}, {ny})")
            # Half-cell pose offsets can round one cell past the edge; grow to fit
            if nx + grid.width > width or ny + grid.height > height:
                self._log_debug(f"扩展地图边界: node@({nx},{ny}) size {grid.width}x{grid.height} "
                                f"vs map {width}x{height}")
                width = max(width, nx + grid.width)
                height = max(height, ny + grid.height)
            placements.append((nx, ny))

        if width <= 0 or height <= 0:
            raise MapExtentError(f"empty map extent {width}x{height}")
        if width * height > self.max_cells:
            raise MapExtentError(f"map {width}x{height} exceeds {self.max_cells} cells")

        return MapExtent(xmin, xmax, ymin, ymax, width, height, placements)

    def vote(self, nodes: Sequence, extent: Optional[MapExtent] = None) -> VoteCounts:
        """Accumulate seen/free/blocked counts for every global cell"""
        if extent is None:
            extent = self.compute_extent(nodes)
        counts = VoteCounts(extent.height, extent.width)

        for node, (nx, ny) in zip(nodes, extent.placements):
            local = node.grid.grid
            h, w = local.shape
            window = (slice(ny, ny + h), slice(nx, nx + w))
            counts.seen[window] += 1
            counts.free[window] += (local == CellState.FREE)
            counts.blocked[window] += (local == CellState.BLOCKED)

        return counts

    @staticmethod
    def resolve(counts: VoteCounts) -> np.ndarray:
        """Majority vote per cell; ties stay UNKNOWN."""
        data = np.full(counts.free.shape, CellState.UNKNOWN, dtype=np.int8)
        data[counts.free > counts.blocked] = CellState.FREE
        data[counts.free < counts.blocked] = CellState.BLOCKED
        return data

    def fuse(self, nodes: Sequence, stamp: Optional[float] = None) -> OccupancyMap:
        """
        Fuse all nodes

        Returns:
            OccupancyMap with origin at the lower-left world corner
        """
        if not nodes:
            raise EmptyGraph("no nodes to fuse")
        extent = self.compute_extent(nodes)
        counts = self.vote(nodes, extent)
        data = self.resolve(counts)

        occ = OccupancyMap(extent.width, extent.height, self.res,
                           (extent.xmin, extent.ymin), data, stamp=stamp)

        self._log_debug(f"地图融合: nodes={len(nodes)}, size={extent.width}x{extent.height}, "
                        f"origin=({extent.xmin:.3f}, {extent.ymin:.3f})")
        self._log_debug(f"  FREE={occ.count(CellState.FREE)}, BLOCKED={occ.count(CellState.BLOCKED)}, "
                        f"UNKNOWN={occ.count(CellState.UNKNOWN)}")
        return occ

    def _log_debug(self, msg: str) -> None:
        """Log debug message"""
        if self.logger_func and self.log_file:
            try:
                self.logger_func(self.log_file, msg, "MapFuser")
            except Exception:
                print(f"[MapFuser] {msg}")
        else:
            print(f"[MapFuser] {msg}")
