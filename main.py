# ================================
# file: main.py
# ================================
"""Project entrypoint: runs a mapping session and prints the fused map summary.
- SIM mode (default): RobotSim in a rectangular room visits a square loop of poses.
- LOG mode: replays a JSON-lines observation log.

Usage (SIM):
    python main.py --res 0.05 --steps 12
Usage (LOG):
    python main.py --log ./data/observations.jsonl
"""
from __future__ import annotations
import argparse
import math
from datetime import datetime
from typing import List, Optional

from core import Pose2D, CellState, MappingError
from core.config import (
    SLAM_RESOLUTION, RANGE_THRESHOLD, LIDAR_BEAMS, LIDAR_RANGE,
    KEYFRAME_DISTANCE_LINEAR, KEYFRAME_DISTANCE_ANGULAR,
    SIM_ROOM_WIDTH_M, SIM_ROOM_HEIGHT_M,
)
from appio import log_to_file, open_log_file, ScanLogReader, ScanLogWriter
from sim import GridWorld, RobotSim, SimObservationSource
from slam import SlamSystem, KeyframeScanMatcher


def square_loop(width_m: float, height_m: float, steps: int, margin: float = 1.0) -> List[Pose2D]:
    """Poses along a rectangle inset by margin, heading along the path."""
    x0, y0 = margin, margin
    x1, y1 = width_m - margin, height_m - margin
    corners = [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]
    poses = []
    per_side = max(1, steps // 4)
    for k in range(4):
        (ax, ay), (bx, by) = corners[k], corners[(k + 1) % 4]
        heading = math.atan2(by - ay, bx - ax)
        for i in range(per_side):
            t = i / per_side
            poses.append(Pose2D(ax + t * (bx - ax), ay + t * (by - ay), heading))
    return poses


def run(json_log_path: Optional[str] = None, record_path: Optional[str] = None,
        resolution: float = SLAM_RESOLUTION, range_threshold: float = RANGE_THRESHOLD,
        steps: int = 12, beams: int = LIDAR_BEAMS, seed: Optional[int] = 0,
        log_dir: Optional[str] = None) -> int:
    """Wire modules and run one mapping session. Returns a process exit code."""
    log_file = open_log_file(log_dir)
    try:
        log_to_file(log_file, "=" * 60)
        log_to_file(log_file, "位姿图建图运行日志")
        log_to_file(log_file, f"开始时间: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        log_to_file(log_file, f"输入: {json_log_path if json_log_path else 'simulation'}")
        log_to_file(log_file, f"resolution={resolution:.3f}m, range_threshold={range_threshold:.2f}")
        log_to_file(log_file, "=" * 60)

        matcher = KeyframeScanMatcher(KEYFRAME_DISTANCE_LINEAR, KEYFRAME_DISTANCE_ANGULAR,
                                      logger_func=log_to_file, log_file=log_file)
        slam = SlamSystem(resolution, range_threshold, scan_matcher=matcher,
                          logger_func=log_to_file, log_file=log_file)

        if json_log_path:
            source = ScanLogReader(json_log_path)
        else:
            world = GridWorld.rectangular_room(SIM_ROOM_WIDTH_M, SIM_ROOM_HEIGHT_M)
            world.add_box(2.6, 1.6, 3.4, 2.4)
            world.add_wall(1.5, 2.0, 2.2, 2.0)
            robot = RobotSim(world, beams=beams, range_max=LIDAR_RANGE, seed=seed)
            source = SimObservationSource(robot, square_loop(SIM_ROOM_WIDTH_M, SIM_ROOM_HEIGHT_M, steps))

        writer = ScanLogWriter(record_path) if record_path else None
        try:
            with source:
                for obs in source:
                    slam.update(obs.pose, obs.scan, obs.t)
                    if writer is not None:
                        writer.write(obs.pose, obs.scan, obs.t)
        finally:
            if writer is not None:
                writer.close()

        occ = slam.generate_map()
        log_to_file(log_file, f"节点={slam.node_count()}, 边={slam.graph.edge_count}, "
                              f"关键帧={matcher.keyframe_count}")
        log_to_file(log_file, f"地图: {occ.width}x{occ.height} @ {occ.resolution:.3f}m, "
                              f"origin=({occ.origin[0]:.3f}, {occ.origin[1]:.3f})")
        log_to_file(log_file, f"FREE={occ.count(CellState.FREE)}, "
                              f"BLOCKED={occ.count(CellState.BLOCKED)}, "
                              f"UNKNOWN={occ.count(CellState.UNKNOWN)}, "
                              f"coverage={occ.coverage_ratio():.2%}")
        return 0
    except MappingError as e:
        log_to_file(log_file, f"建图失败: {type(e).__name__}: {e}", "ERROR")
        return 1
    except OSError as e:
        log_to_file(log_file, f"无法打开文件: {e}", "ERROR")
        return 1
    finally:
        log_file.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Pose-graph occupancy mapping session")
    parser.add_argument("--log", default=None, help="JSON-lines observation log to replay (default: simulation)")
    parser.add_argument("--record", default=None, help="Write the consumed observations to this JSON-lines file")
    parser.add_argument("--res", type=float, default=SLAM_RESOLUTION, help=f"Map resolution (default: {SLAM_RESOLUTION})")
    parser.add_argument("--range_threshold", type=float, default=RANGE_THRESHOLD,
                        help=f"Fraction of range_max trusted for obstacles (default: {RANGE_THRESHOLD})")
    parser.add_argument("--steps", type=int, default=12, help="Simulated poses around the loop (default: 12)")
    parser.add_argument("--beams", type=int, default=LIDAR_BEAMS, help=f"Simulated beams (default: {LIDAR_BEAMS})")
    parser.add_argument("--seed", type=int, default=0, help="Simulation noise seed (default: 0)")
    parser.add_argument("--log_dir", default=None, help="Directory for the run log (default: cwd)")
    args = parser.parse_args(argv)

    return run(json_log_path=args.log, record_path=args.record, resolution=args.res,
               range_threshold=args.range_threshold, steps=args.steps, beams=args.beams,
               seed=args.seed, log_dir=args.log_dir)


if __name__ == "__main__":
    raise SystemExit(main())
