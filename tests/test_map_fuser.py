"""
Tests for voting-based fusion of local grids into the global map.
"""
import math

import numpy as np
import pytest

from conftest import make_cross_scan
from core import Pose2D, LaserScan, CellState, EmptyGraph, MapExtentError
from slam import Graph, MapFuser, MapExtent, ScanGrid, ScanGridBuilder, OccupancyMap

FREE, BLOCKED, UNKNOWN = int(CellState.FREE), int(CellState.BLOCKED), int(CellState.UNKNOWN)


class FakeNode:
    """Minimal node: a pose and a hand-made grid."""
    def __init__(self, pose, grid):
        self.pose = pose
        self.grid = grid


def strip(values, resolution=1.0):
    """1-row grid with the pose at its leftmost cell."""
    return ScanGrid(resolution, 0, len(values) - 1, 0, 0, np.array([values], dtype=np.int8))


class TestIdenticalObservations:
    """Two nodes at the same pose with the same scan."""

    def test_map_equals_local_grid(self, cross_scan):
        graph = Graph(0.1, 1.0)
        pose = Pose2D(0.5, -0.3, 0.0)
        graph.add_node(pose, cross_scan)
        graph.add_node(pose, cross_scan)
        occ = graph.generate_map()
        local = graph.node(0).grid
        assert (occ.width, occ.height) == (local.width, local.height)
        assert np.array_equal(occ.data, local.grid)

    def test_origin_is_lower_left(self, cross_scan):
        graph = Graph(0.1, 1.0)
        graph.add_node(Pose2D(0.5, -0.3, 0.0), cross_scan)
        occ = graph.generate_map()
        assert math.isclose(occ.origin[0], 0.5 - 1.0)
        assert math.isclose(occ.origin[1], -0.3 - 1.0)
        assert occ.cell_at_world(0.5, -0.3) == CellState.FREE
        assert occ.cell_at_world(1.5, -0.3) == CellState.BLOCKED


class TestVoting:

    def test_conflict_is_unknown(self):
        fuser = MapFuser(1.0)
        a = FakeNode(Pose2D(0.0, 0.0, 0.0), strip([FREE, FREE]))
        b = FakeNode(Pose2D(0.0, 0.0, 0.0), strip([FREE, BLOCKED]))
        occ = fuser.fuse([a, b])
        assert occ.to_list() == [FREE, UNKNOWN]

    def test_majority_wins(self):
        fuser = MapFuser(1.0)
        nodes = [
            FakeNode(Pose2D(0.0, 0.0, 0.0), strip([FREE, BLOCKED, FREE])),
            FakeNode(Pose2D(0.0, 0.0, 0.0), strip([FREE, BLOCKED, BLOCKED])),
            FakeNode(Pose2D(0.0, 0.0, 0.0), strip([FREE, FREE, UNKNOWN])),
        ]
        occ = fuser.fuse(nodes)
        assert occ.to_list() == [FREE, BLOCKED, UNKNOWN]

    def test_unknown_only_counts_as_seen(self):
        fuser = MapFuser(1.0)
        nodes = [FakeNode(Pose2D(0.0, 0.0, 0.0), strip([FREE, UNKNOWN]))]
        counts = fuser.vote(nodes)
        assert counts.seen.tolist() == [[1, 1]]
        assert counts.free.tolist() == [[1, 0]]
        assert counts.blocked.tolist() == [[0, 0]]
        assert fuser.resolve(counts).tolist() == [[FREE, UNKNOWN]]

    def test_offset_nodes_overlap(self):
        fuser = MapFuser(1.0)
        a = FakeNode(Pose2D(0.0, 0.0, 0.0), strip([FREE, FREE, BLOCKED]))
        b = FakeNode(Pose2D(1.0, 0.0, 0.0), strip([FREE, FREE, FREE]))
        occ = fuser.fuse([a, b])
        assert occ.width == 4
        # cell 2: a says BLOCKED, b says FREE -> tie
        assert occ.to_list() == [FREE, FREE, UNKNOWN, FREE]


class TestExtent:

    def _nodes(self, poses, scan, res=0.1):
        builder = ScanGridBuilder(res, 1.0)
        return [FakeNode(p, builder.build(p, scan)) for p in poses]

    def test_every_local_cell_lands_inside(self, cross_scan):
        # half-cell offsets stress the rounding at the map edge
        poses = [Pose2D(0.05 * k, -0.05 * k, 0.0) for k in range(7)]
        nodes = self._nodes(poses, cross_scan)
        ext = MapFuser(0.1).compute_extent(nodes)
        assert len(ext.placements) == len(nodes)
        for node, (nx, ny) in zip(nodes, ext.placements):
            assert nx >= 0 and ny >= 0
            assert nx + node.grid.width <= ext.width
            assert ny + node.grid.height <= ext.height
            last = (ny + node.grid.height - 1) * ext.width + (nx + node.grid.width - 1)
            assert 0 <= last < ext.size

    def test_single_node_extent_matches_grid(self, cross_scan):
        nodes = self._nodes([Pose2D(2.0, 3.0, 0.3)], cross_scan)
        ext = MapFuser(0.1).compute_extent(nodes)
        assert (ext.width, ext.height) == (nodes[0].grid.width, nodes[0].grid.height)
        assert ext.placements == [(0, 0)]

    def test_cell_budget(self, cross_scan):
        nodes = self._nodes([Pose2D(0.0, 0.0, 0.0), Pose2D(5.0, 5.0, 0.0)], cross_scan)
        with pytest.raises(MapExtentError):
            MapFuser(0.1, max_cells=1000).fuse(nodes)

    def test_empty(self):
        with pytest.raises(EmptyGraph):
            MapFuser(0.1).fuse([])
        with pytest.raises(EmptyGraph):
            MapFuser(0.1).compute_extent([])


class TestEvidenceMonotonic:

    def test_adding_nodes_never_lowers_counts(self):
        builder = ScanGridBuilder(0.1, 0.9)
        scan = LaserScan(-math.pi, math.pi / 18, [1.0 + 0.05 * i for i in range(36)], range_max=3.0)
        poses = [Pose2D(0.3 * k, 0.1 * k, 0.2 * k) for k in range(5)]
        nodes = [FakeNode(p, builder.build(p, scan)) for p in poses]
        fuser = MapFuser(0.1)
        full = fuser.compute_extent(nodes)

        prev = None
        for k in range(1, len(nodes) + 1):
            sub = MapExtent(full.xmin, full.xmax, full.ymin, full.ymax,
                            full.width, full.height, full.placements[:k])
            counts = fuser.vote(nodes[:k], sub)
            if prev is not None:
                assert np.all(counts.seen >= prev.seen)
                assert np.all(counts.free >= prev.free)
                assert np.all(counts.blocked >= prev.blocked)
            prev = counts


class TestOccupancyMap:

    def test_message_shape(self):
        data = np.array([[FREE, BLOCKED, UNKNOWN]], dtype=np.int8)
        occ = OccupancyMap(3, 1, 0.5, (1.0, 2.0), data, stamp=12.0)
        msg = occ.to_msg()
        assert msg['header'] == {'frame_id': 'odom', 'stamp': 12.0}
        assert msg['info']['width'] == 3
        assert msg['info']['height'] == 1
        assert msg['info']['origin']['x'] == 1.0
        assert msg['data'] == [0, 100, -1]

    def test_coverage_and_lookup(self):
        data = np.array([[FREE, BLOCKED], [UNKNOWN, UNKNOWN]], dtype=np.int8)
        occ = OccupancyMap(2, 2, 1.0, (0.0, 0.0), data)
        assert occ.coverage_ratio() == 0.5
        assert occ.cell_at_world(1.0, 0.0) == CellState.BLOCKED
        assert occ.cell_at_world(50.0, 0.0) == CellState.UNKNOWN

    def test_repeat_fusion_is_byte_identical(self, cross_scan):
        def run():
            g = Graph(0.05, 0.95)
            for k in range(4):
                g.add_node(Pose2D(0.1 * k, 0.05 * k, 0.3 * k), cross_scan)
            return g.generate_map(stamp=0.0)
        a, b = run(), run()
        assert a.data.tobytes() == b.data.tobytes()
        assert (a.width, a.height, a.origin) == (b.width, b.height, b.origin)
