# ================================
# file: sim/grid_world.py
# ================================
from __future__ import annotations
from typing import Tuple
import math
import numpy as np

from core.config import SIM_WORLD_RESOLUTION, SIM_ROOM_WIDTH_M, SIM_ROOM_HEIGHT_M


class GridWorld:
    """Ground-truth world raster used by the simulator.

    The grid uses values: 0=free, 1=obstacle. Origin (0, 0) is the lower-left
    corner; cells are indexed grid[gy, gx].
    """
    def __init__(self, width_m: float, height_m: float,
                 resolution: float = SIM_WORLD_RESOLUTION) -> None:
        if resolution <= 0.0:
            raise ValueError(f"resolution must be positive, got {resolution}")
        self.res = float(resolution)
        self.width_m = float(width_m)
        self.height_m = float(height_m)
        self.width = int(math.ceil(self.width_m / self.res))
        self.height = int(math.ceil(self.height_m / self.res))
        self.grid: np.ndarray = np.zeros((self.height, self.width), dtype=np.uint8)

    @classmethod
    def rectangular_room(cls, width_m: float = SIM_ROOM_WIDTH_M,
                         height_m: float = SIM_ROOM_HEIGHT_M,
                         resolution: float = SIM_WORLD_RESOLUTION,
                         wall_m: float = 0.05) -> "GridWorld":
        """Empty room enclosed by walls of thickness wall_m."""
        world = cls(width_m, height_m, resolution)
        world.add_box(0.0, 0.0, width_m, wall_m)
        world.add_box(0.0, height_m - wall_m, width_m, height_m)
        world.add_box(0.0, 0.0, wall_m, height_m)
        world.add_box(width_m - wall_m, 0.0, width_m, height_m)
        return world

    def _world_to_grid(self, x_world: float, y_world: float) -> Tuple[int, int]:
        """World[m] -> grid index (x,y)"""
        return int(math.floor(x_world / self.res)), int(math.floor(y_world / self.res))

    def in_bounds(self, x_world: float, y_world: float) -> bool:
        return 0.0 <= x_world < self.width_m and 0.0 <= y_world < self.height_m

    def add_box(self, x0: float, y0: float, x1: float, y1: float) -> None:
        """Mark the axis-aligned rectangle [x0, x1] x [y0, y1] as obstacle."""
        gx0, gy0 = self._world_to_grid(min(x0, x1), min(y0, y1))
        gx1, gy1 = self._world_to_grid(max(x0, x1), max(y0, y1))
        gx0, gy0 = max(0, gx0), max(0, gy0)
        gx1, gy1 = min(self.width - 1, gx1), min(self.height - 1, gy1)
        if gx0 > gx1 or gy0 > gy1:
            return
        self.grid[gy0:gy1 + 1, gx0:gx1 + 1] = 1

    def add_wall(self, x0: float, y0: float, x1: float, y1: float, thickness: float = 0.05) -> None:
        """Thick line segment from (x0, y0) to (x1, y1)."""
        length = math.hypot(x1 - x0, y1 - y0)
        steps = max(1, int(math.ceil(length / (0.5 * self.res))))
        half = 0.5 * thickness
        for k in range(steps + 1):
            t = k / steps
            x = x0 + t * (x1 - x0)
            y = y0 + t * (y1 - y0)
            self.add_box(x - half, y - half, x + half, y + half)

    def is_obstacle_world(self, x_world: float, y_world: float) -> bool:
        """Outside the raster counts as obstacle."""
        if not self.in_bounds(x_world, y_world):
            return True
        gx, gy = self._world_to_grid(x_world, y_world)
        return bool(self.grid[gy, gx])
