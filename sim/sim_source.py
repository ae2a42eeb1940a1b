# ================================
# file: sim/sim_source.py
# ================================
from typing import Optional, Sequence
import time

from core.observation_source import Observation, ObservationSource
from core.types import Pose2D
from sim.robot_sim import RobotSim


class SimObservationSource(ObservationSource):
    """Simulated observation source - visits a list of poses with RobotSim"""

    def __init__(self, robot_sim: RobotSim, waypoints: Sequence[Pose2D],
                 dt: float = 0.1) -> None:
        self.robot_sim = robot_sim
        self.waypoints = [p.copy() for p in waypoints]
        self.dt = float(dt)
        self._index = 0
        self._t0 = time.time()

    def next_observation(self) -> Optional[Observation]:
        if self._index >= len(self.waypoints):
            return None
        pose = self.waypoints[self._index]
        self.robot_sim.set_pose(pose)
        scan = self.robot_sim.get_lidar_scan()
        # Simulated clock: fixed period between waypoints
        scan.t = self._t0 + self._index * self.dt
        self._index += 1
        return Observation(pose.copy(), scan, scan.t)

    def remaining(self) -> int:
        return len(self.waypoints) - self._index
