# ================================
# file: core/__init__.py
# ================================
"""
Core Package

Exports fundamental types, errors, configuration and the observation source interface.
"""
from core.errors import (
    MappingError, InvalidScan, InvalidConfig, EmptyGraph, MapExtentError,
)
from core.types import (
    Pose2D, LaserScan, CellState,
    round_half_away, round_half_away_array, wrap_two_pi, wrap_angle,
)
from core.config import (
    # Map configuration
    SLAM_RESOLUTION, RANGE_THRESHOLD, MAP_FRAME_ID,
    MAX_GRID_CELLS, MAX_MAP_CELLS,

    # Sensor configuration
    LIDAR_RANGE, LIDAR_FOV_DEG, LIDAR_BEAMS,

    # Keyframe configuration
    KEYFRAME_DISTANCE_LINEAR, KEYFRAME_DISTANCE_ANGULAR,

    validate_mapping_params,
)
from core.observation_source import Observation, ObservationSource

__all__ = [
    # Errors
    'MappingError', 'InvalidScan', 'InvalidConfig', 'EmptyGraph', 'MapExtentError',

    # Types
    'Pose2D', 'LaserScan', 'CellState',
    'round_half_away', 'round_half_away_array', 'wrap_two_pi', 'wrap_angle',

    # Configuration
    'SLAM_RESOLUTION', 'RANGE_THRESHOLD', 'MAP_FRAME_ID',
    'MAX_GRID_CELLS', 'MAX_MAP_CELLS',
    'LIDAR_RANGE', 'LIDAR_FOV_DEG', 'LIDAR_BEAMS',
    'KEYFRAME_DISTANCE_LINEAR', 'KEYFRAME_DISTANCE_ANGULAR',
    'validate_mapping_params',

    # Observation sources
    'Observation', 'ObservationSource',
]
