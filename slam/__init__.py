# ================================
# file: slam/__init__.py
# ================================
"""
SLAM Package - pose-graph occupancy mapping

Exports:
- ScanGrid / ScanGridBuilder: scan -> local occupancy grid
- Graph / Node / Edge: append-only pose graph
- MapFuser / OccupancyMap: voting fusion into the global grid
- ScanMatcher / NullScanMatcher / KeyframeScanMatcher: edge annotation hook
- SlamSystem: wiring of the above
"""
from slam.scan_grid import ScanGrid, ScanGridBuilder, build_scan_grid
from slam.map_fuser import MapFuser, MapExtent, VoteCounts, OccupancyMap
from slam.scan_matcher import ScanMatcher, NullScanMatcher, KeyframeScanMatcher
from slam.graph import Graph, Node, Edge, EDGE_CHAIN, EDGE_MATCH
from slam.slam_system import SlamSystem

__all__ = [
    'ScanGrid', 'ScanGridBuilder', 'build_scan_grid',
    'MapFuser', 'MapExtent', 'VoteCounts', 'OccupancyMap',
    'ScanMatcher', 'NullScanMatcher', 'KeyframeScanMatcher',
    'Graph', 'Node', 'Edge', 'EDGE_CHAIN', 'EDGE_MATCH',
    'SlamSystem',
]
