"""
Tests for the observation sources: simulator and JSON-lines log.
"""
import json
import math

import pytest

from core import Pose2D, LaserScan, InvalidScan, ObservationSource
from appio import ScanLogReader, ScanLogWriter, parse_observation_line
from sim import GridWorld, RobotSim, SimObservationSource


@pytest.fixture
def room():
    return GridWorld.rectangular_room(6.0, 4.0)


class TestGridWorld:

    def test_walls_and_interior(self, room):
        assert room.is_obstacle_world(0.01, 2.0)
        assert room.is_obstacle_world(5.99, 2.0)
        assert not room.is_obstacle_world(3.0, 2.0)

    def test_outside_is_obstacle(self, room):
        assert room.is_obstacle_world(-1.0, 2.0)
        assert room.is_obstacle_world(3.0, 10.0)

    def test_add_box(self, room):
        room.add_box(2.6, 1.6, 3.4, 2.4)
        assert room.is_obstacle_world(3.0, 2.0)
        assert not room.is_obstacle_world(2.0, 2.0)

    def test_add_wall(self, room):
        room.add_wall(1.5, 2.0, 2.2, 2.0)
        assert room.is_obstacle_world(1.5, 2.0)
        assert room.is_obstacle_world(1.85, 2.0)
        assert room.is_obstacle_world(2.2, 2.0)
        assert not room.is_obstacle_world(1.85, 2.2)
        assert not room.is_obstacle_world(1.0, 2.0)

    def test_diagonal_wall(self, room):
        room.add_wall(1.0, 1.0, 2.0, 2.0)
        assert room.is_obstacle_world(1.5, 1.5)
        assert not room.is_obstacle_world(1.5, 1.8)


class TestRobotSim:

    def test_raycast_hits_wall(self, room):
        robot = RobotSim(room, beams=4, range_max=10.0)
        robot.set_pose(Pose2D(3.0, 2.0, 0.0))
        scan = robot.get_lidar_scan()
        assert scan.beam_count() == 4
        assert scan.angle_min == 0.0
        assert math.isclose(scan.angle_increment, math.pi / 2)
        assert abs(scan.ranges[0] - 2.95) < 0.02   # east wall
        assert abs(scan.ranges[1] - 1.95) < 0.02   # north wall
        assert scan.robot_pose == Pose2D(3.0, 2.0, 0.0)

    def test_miss_reports_range_max(self, room):
        robot = RobotSim(room, beams=4, range_max=1.0)
        robot.set_pose(Pose2D(3.0, 2.0, 0.0))
        scan = robot.get_lidar_scan()
        assert scan.ranges == [1.0, 1.0, 1.0, 1.0]

    def test_partial_fov_spans_both_ends(self, room):
        robot = RobotSim(room, beams=5, fov_deg=180, range_max=10.0)
        scan = robot.get_lidar_scan()
        assert math.isclose(scan.angle_min, -math.pi / 2)
        assert math.isclose(scan.beam_angle(4), math.pi / 2)

    def test_noise_is_seeded(self, room):
        def ranges(seed):
            robot = RobotSim(room, beams=8, range_max=10.0, noise_std=0.02, seed=seed)
            robot.set_pose(Pose2D(2.0, 2.0, 0.0))
            return robot.get_lidar_scan().ranges
        assert ranges(7) == ranges(7)

    def test_update_blocked_by_wall(self, room):
        robot = RobotSim(room)
        robot.set_pose(Pose2D(5.9, 2.0, 0.0))
        robot.update(1.0, 1.0, 0.0)
        assert robot.pose.x == 5.9

    def test_update_straight(self, room):
        robot = RobotSim(room)
        robot.set_pose(Pose2D(1.0, 1.0, 0.0))
        robot.update(0.5, 1.0, 0.0)
        assert math.isclose(robot.pose.x, 1.5)
        assert math.isclose(robot.pose.y, 1.0)


class TestSimObservationSource:

    def test_visits_waypoints_then_exhausts(self, room):
        robot = RobotSim(room, beams=8, range_max=10.0)
        waypoints = [Pose2D(1.0, 1.0, 0.0), Pose2D(2.0, 1.0, 0.0), Pose2D(3.0, 1.0, 0.0)]
        source = SimObservationSource(robot, waypoints, dt=0.5)
        assert isinstance(source, ObservationSource)
        observations = list(source)
        assert len(observations) == 3
        assert [o.pose.x for o in observations] == [1.0, 2.0, 3.0]
        assert math.isclose(observations[2].t - observations[0].t, 1.0, abs_tol=1e-5)
        assert source.remaining() == 0
        assert source.next_observation() is None

    def test_scan_carries_pose(self, room):
        robot = RobotSim(room, beams=8, range_max=10.0)
        source = SimObservationSource(robot, [Pose2D(1.0, 2.0, 0.3)])
        obs = source.next_observation()
        assert obs.scan.robot_pose == obs.pose


class TestScanLog:

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "obs.jsonl"
        scans = [
            (Pose2D(0.0, 0.0, 0.0), LaserScan(0.0, 0.5, [1.0, 2.0, 3.0], range_max=5.0), 1.0),
            (Pose2D(0.5, -0.2, 1.2), LaserScan(-1.0, 0.25, [0.5, 0.75], range_max=4.0), 2.0),
        ]
        with ScanLogWriter(str(path)) as writer:
            for pose, scan, t in scans:
                writer.write(pose, scan, t)
            assert writer.count == 2

        with ScanLogReader(str(path)) as reader:
            observations = list(reader)
        assert len(observations) == 2
        second = observations[1]
        assert second.pose == Pose2D(0.5, -0.2, 1.2)
        assert second.scan.ranges == [0.5, 0.75]
        assert second.scan.range_max == 4.0
        assert second.scan.robot_pose == second.pose
        assert second.t == 2.0

    def test_blank_lines_skipped(self, tmp_path):
        path = tmp_path / "obs.jsonl"
        line = json.dumps({"t": 0.0, "pose": [0, 0, 0],
                           "scan": {"angle_min": 0.0, "angle_increment": 0.1,
                                    "range_max": 5.0, "ranges": [1.0]}})
        path.write_text("\n" + line + "\n\n" + line + "\n", encoding="utf-8")
        with ScanLogReader(str(path)) as reader:
            assert len(list(reader)) == 2

    def test_malformed_line(self):
        assert parse_observation_line("   ") is None
        with pytest.raises(InvalidScan) as exc:
            parse_observation_line('{"pose": [0, 0]}', 7)
        assert "line 7" in str(exc.value)
        with pytest.raises(InvalidScan):
            parse_observation_line("not json", 1)

    def test_undecodable_bytes(self, tmp_path):
        path = tmp_path / "obs.jsonl"
        path.write_bytes(b'\xff\xfe{"bad"\n')
        with ScanLogReader(str(path)) as reader:
            with pytest.raises(InvalidScan) as exc:
                reader.next_observation()
        assert "line 1" in str(exc.value)

    def test_refuses_non_finite_ranges(self, tmp_path):
        with ScanLogWriter(str(tmp_path / "obs.jsonl")) as writer:
            with pytest.raises(InvalidScan):
                writer.write(Pose2D(0.0, 0.0, 0.0), LaserScan(0.0, 0.1, [float("inf")]))
            assert writer.count == 0
