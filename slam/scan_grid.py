# ================================
# file: slam/scan_grid.py
# ================================
"""
Local Scan Grid Builder

Converts one (pose, scan) observation into a small occupancy grid expressed in
cells relative to the pose cell. Three passes:

1. Extent  - bounding box of all beam endpoints (world frame)
2. Endpoint - in-range endpoints are marked BLOCKED
3. Free-space sweep - every other cell looks up the beam covering its bearing
   and is FREE when it lies before that beam's endpoint

Cells are three-valued (see core.types.CellState). Rounding is half-away-from-zero.
"""
from __future__ import annotations
from typing import Tuple, Optional
import numpy as np

from core import (
    Pose2D, LaserScan, CellState, InvalidScan, MapExtentError,
    round_half_away, round_half_away_array, validate_mapping_params,
)
from core.config import MAX_GRID_CELLS, RANGE_THRESHOLD
from core.types import TWO_PI


class ScanGrid:
    """Local occupancy grid anchored at the pose cell.

    Attributes
    ----------
    resolution : meters per cell
    xmin, xmax, ymin, ymax : non-negative half-extents in cells, measured from
        the pose cell. The pose sits at local cell (col, row) = (xmin, ymin).
    grid : read-only int8 array of shape (height, width), row = y, column = x
    """
    __slots__ = ("resolution", "xmin", "xmax", "ymin", "ymax", "grid")

    def __init__(self, resolution: float, xmin: int, xmax: int, ymin: int, ymax: int,
                 grid: Optional[np.ndarray] = None) -> None:
        if min(xmin, xmax, ymin, ymax) < 0:
            raise ValueError(f"half-extents must be non-negative: {(xmin, xmax, ymin, ymax)}")
        self.resolution = float(resolution)
        self.xmin = int(xmin)
        self.xmax = int(xmax)
        self.ymin = int(ymin)
        self.ymax = int(ymax)
        shape = (self.height, self.width)
        if grid is None:
            grid = np.full(shape, CellState.UNKNOWN, dtype=np.int8)
        else:
            grid = np.array(grid, dtype=np.int8, copy=True)
            if grid.shape != shape:
                raise ValueError(f"grid shape {grid.shape} does not match extents {shape}")
        grid.setflags(write=False)
        self.grid = grid

    @property
    def width(self) -> int:
        # Inclusive: pose column plus xmin cells to the left and xmax to the right
        return self.xmin + self.xmax + 1

    @property
    def height(self) -> int:
        return self.ymin + self.ymax + 1

    @property
    def pose_cell(self) -> Tuple[int, int]:
        """(col, row) of the pose inside the grid."""
        return self.xmin, self.ymin

    @property
    def data(self) -> np.ndarray:
        """Flat row-major view of length width*height."""
        return self.grid.reshape(-1)

    def cell(self, col: int, row: int) -> CellState:
        return CellState(int(self.grid[row, col]))

    def count(self, state: CellState) -> int:
        return int(np.count_nonzero(self.grid == int(state)))

    def __repr__(self) -> str:
        return (f"ScanGrid({self.width}x{self.height}, res={self.resolution}, "
                f"x=-{self.xmin}..+{self.xmax}, y=-{self.ymin}..+{self.ymax})")


class ScanGridBuilder:
    """Builds ScanGrids for a fixed resolution and range threshold."""

    def __init__(self,
                 resolution: float,
                 range_threshold: float = RANGE_THRESHOLD,
                 max_cells: int = MAX_GRID_CELLS,
                 logger_func=None,
                 log_file=None) -> None:
        validate_mapping_params(resolution, range_threshold)
        self.res = float(resolution)
        self.range_threshold = float(range_threshold)
        self.max_cells = int(max_cells)

        self._build_count = 0

        # Logger
        self.logger_func = logger_func
        self.log_file = log_file

    def build(self, pose: Pose2D, scan: LaserScan) -> ScanGrid:
        """
        Ray-cast one scan into a local grid

        Args:
            pose: Robot pose in the fixed frame (scanner sits at the pose)
            scan: Laser scan; beam i has angle angle_min + i*angle_increment

        Raises:
            InvalidScan: empty scan, non-finite values, zero increment
            MapExtentError: grid would exceed max_cells
        """
        scan.validate()
        if not pose.is_finite():
            raise InvalidScan(f"pose is not finite: {pose!r}")

        res = self.res
        n = scan.beam_count()
        ranges = np.asarray(scan.ranges, dtype=np.float64)

        # --- Pass 1: extent over all endpoints (discarded beams included) ---
        thetas = pose.theta + scan.angle_min + np.arange(n) * scan.angle_increment
        cos_t, sin_t = np.cos(thetas), np.sin(thetas)
        ex = pose.x + ranges * cos_t
        ey = pose.y + ranges * sin_t

        # Bounds start at the pose so the pose cell is always inside
        xmax_w = max(pose.x, float(ex.max()))
        xmin_w = min(pose.x, float(ex.min()))
        ymax_w = max(pose.y, float(ey.max()))
        ymin_w = min(pose.y, float(ey.min()))

        gxmax = round_half_away((xmax_w - pose.x) / res)
        gxmin = round_half_away((pose.x - xmin_w) / res)
        gymax = round_half_away((ymax_w - pose.y) / res)
        gymin = round_half_away((pose.y - ymin_w) / res)

        # Local endpoint offsets; widen by the odd cell where float rounding of the
        # local offset disagrees with the world-frame bound
        col_off = round_half_away_array(ranges * cos_t / res)
        row_off = round_half_away_array(ranges * sin_t / res)
        gxmax = max(gxmax, int(col_off.max()))
        gxmin = max(gxmin, -int(col_off.min()))
        gymax = max(gymax, int(row_off.max()))
        gymin = max(gymin, -int(row_off.min()))

        width = gxmin + gxmax + 1
        height = gymin + gymax + 1
        if width * height > self.max_cells:
            raise MapExtentError(
                f"local grid {width}x{height} exceeds {self.max_cells} cells")

        # --- Pass 2: endpoints ---
        max_range = scan.range_max * self.range_threshold
        kept = ranges <= max_range
        blocked_rows = gymin + row_off[kept]
        blocked_cols = gxmin + col_off[kept]

        # --- Pass 3: free-space sweep ---
        rows, cols = np.mgrid[0:height, 0:width]
        dx = cols - gxmin
        dy = rows - gymin
        alpha = np.arctan2(dy, dx)
        beta = alpha - pose.theta - scan.angle_min
        beta = beta - np.floor(beta / TWO_PI) * TWO_PI
        scan_index = round_half_away_array(beta / scan.angle_increment)
        covered = (scan_index >= 0) & (scan_index < n)
        safe_index = np.where(covered, scan_index, 0)
        beam_range = ranges[safe_index]
        cell_dist = np.sqrt(dx * dx + dy * dy) * res
        free = covered & kept[safe_index] & ((beam_range - cell_dist) > 0.0)

        grid = np.full((height, width), CellState.UNKNOWN, dtype=np.int8)
        grid[free] = CellState.FREE
        grid[blocked_rows, blocked_cols] = CellState.BLOCKED
        # atan2(0, 0) is meaningless; the scanner's own cell is free space
        grid[gymin, gxmin] = CellState.FREE

        self._build_count += 1
        if self._build_count <= 3 or self._build_count % 50 == 0:
            self._log_debug(f"扫描栅格#{self._build_count}: {width}x{height}, "
                            f"beams={n}, kept={int(kept.sum())}, max_range={max_range:.2f}m")

        return ScanGrid(res, gxmin, gxmax, gymin, gymax, grid)

    def _log_debug(self, msg: str) -> None:
        """Log debug message"""
        if self.logger_func and self.log_file:
            try:
                self.logger_func(self.log_file, msg, "SCAN_GRID")
            except Exception:
                print(f"[SCAN_GRID] {msg}")
        else:
            print(f"[SCAN_GRID] {msg}")


def build_scan_grid(pose: Pose2D, scan: LaserScan, resolution: float,
                    range_threshold: float = RANGE_THRESHOLD) -> ScanGrid:
    """One-shot helper around ScanGridBuilder."""
    return ScanGridBuilder(resolution, range_threshold).build(pose, scan)
