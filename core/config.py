# ================================
# file: core/config.py
# ================================
"""
Global configuration for the pose-graph mapping core.
All units are SI (meters, radians, seconds).

Organization:
1. Map & Grid
2. Sensor Configuration
3. Scan Matching / Keyframes
4. Simulation
5. Logging
"""
from __future__ import annotations
import math

from core.errors import InvalidConfig

# ================================
# 1. MAP & GRID
# ================================
SLAM_RESOLUTION: float = 0.05           # Grid resolution (m/cell)
RANGE_THRESHOLD: float = 1.0            # Fraction of range_max trusted for obstacles, in (0, 1]
MAP_FRAME_ID: str = "odom"              # Fixed frame the fused map is expressed in

# Cell budgets (guard against runaway extents from bogus ranges)
MAX_GRID_CELLS: int = 25_000_000        # Per local scan grid
MAX_MAP_CELLS: int = 100_000_000        # Fused global map

# ================================
# 2. SENSOR CONFIGURATION
# ================================
LIDAR_RANGE: float = 10.0               # Maximum range (m)
LIDAR_FOV_DEG: float = 360.0            # Field of view
LIDAR_BEAMS: int = 360                  # Number of beams (1° resolution)
LIDAR_NOISE_STD: float = 0.0            # Simulated range noise std (m)

# ================================
# 3. SCAN MATCHING / KEYFRAMES
# ================================
# Consumed only by the scan-matcher collaborator
KEYFRAME_DISTANCE_LINEAR: float = 0.5           # New keyframe after this translation (m)
KEYFRAME_DISTANCE_ANGULAR: float = math.pi / 8  # ... or after this rotation (rad)

# ================================
# 4. SIMULATION
# ================================
SIM_ROOM_WIDTH_M: float = 6.0
SIM_ROOM_HEIGHT_M: float = 4.0
SIM_WORLD_RESOLUTION: float = 0.01      # Ground-truth world raster (m/cell)
SIM_RAY_STEP_M: float = 0.005           # Ray-march step (m)

# ================================
# 5. LOGGING
# ================================
LOG_LEVEL: str = "INFO"                 # Log level (DEBUG, INFO)


def validate_mapping_params(resolution: float, range_threshold: float) -> None:
    """Raise InvalidConfig unless resolution > 0 and range_threshold in (0, 1]."""
    if not math.isfinite(resolution) or resolution <= 0.0:
        raise InvalidConfig(f"resolution must be positive, got {resolution}")
    if not math.isfinite(range_threshold) or not (0.0 < range_threshold <= 1.0):
        raise InvalidConfig(f"range_threshold must be in (0, 1], got {range_threshold}")
