# ================================
# file: core/errors.py
# ================================
"""Error kinds surfaced by the mapping core. None of them is retried internally."""
from __future__ import annotations


class MappingError(Exception):
    """Base class for all mapping core errors."""


class InvalidScan(MappingError, ValueError):
    """Empty scan, non-finite range, or non-finite / zero angle parameters."""


class InvalidConfig(MappingError, ValueError):
    """Non-positive resolution or range_threshold outside (0, 1]."""


class EmptyGraph(MappingError):
    """Map generation requested on a graph without nodes."""


class MapExtentError(MappingError):
    """Computed grid is empty or exceeds the addressable cell budget."""
