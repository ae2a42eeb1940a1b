# ================================
# file: sim/robot_sim.py
# ================================
from __future__ import annotations
from typing import Optional
import math, random, time
from core.types import Pose2D, LaserScan, wrap_angle
from core.config import (
    LIDAR_RANGE, LIDAR_BEAMS, LIDAR_FOV_DEG, LIDAR_NOISE_STD, SIM_RAY_STEP_M,
)
from .grid_world import GridWorld

class RobotSim:
    """Differential-drive robot simulator with ideal odometry + raycast LiDAR.
    This class is a SIMULATION INTERFACE. Recorded data enters through
    appio.ScanLogReader with the same (pose, scan) shape.
    Thread-safety: assume single-threaded calls from main loop.
    """
    def __init__(self, world: GridWorld,
                 beams: int = LIDAR_BEAMS,
                 fov_deg: float = LIDAR_FOV_DEG,
                 range_max: float = LIDAR_RANGE,
                 noise_std: float = LIDAR_NOISE_STD,
                 seed: Optional[int] = None) -> None:
        self.world = world
        self.pose = Pose2D(0.0, 0.0, 0.0)
        self.beams = int(beams)
        self.fov = math.radians(fov_deg)
        self.range_max = float(range_max)
        self.noise_std = float(noise_std)
        self._rng = random.Random(seed)

    def set_pose(self, pose: Pose2D) -> None:
        self.pose = pose.copy()

    def update(self, dt: float, linear_vel: float, angular_vel: float) -> None:
        """Update robot pose based on velocity commands.

        Args:
            dt: Time step in seconds
            linear_vel: Linear velocity in m/s
            angular_vel: Angular velocity in rad/s
        """
        if abs(angular_vel) < 1e-6:  # Straight line motion
            new_x = self.pose.x + linear_vel * math.cos(self.pose.theta) * dt
            new_y = self.pose.y + linear_vel * math.sin(self.pose.theta) * dt
            new_theta = self.pose.theta
        else:  # Curved motion
            new_theta = self.pose.theta + angular_vel * dt
            radius = linear_vel / angular_vel
            new_x = self.pose.x + radius * (math.sin(new_theta) - math.sin(self.pose.theta))
            new_y = self.pose.y - radius * (math.cos(new_theta) - math.cos(self.pose.theta))

        # Blocked by obstacle: only the rotation is applied
        if self.world.is_obstacle_world(new_x, new_y):
            new_x, new_y = self.pose.x, self.pose.y

        self.pose = Pose2D(new_x, new_y, wrap_angle(new_theta))

    def get_lidar_scan(self) -> LaserScan:
        """Raycast LiDAR in the world grid.
        Optional Gaussian range noise; misses report range_max.
        """
        beams = max(1, self.beams)
        full_circle = abs(self.fov - 2.0 * math.pi) < 1e-9
        if full_circle:
            angle_min = 0.0
            ang_inc = self.fov / float(beams)
        else:
            angle_min = -self.fov / 2.0
            ang_inc = self.fov / float(max(1, beams - 1))
        ranges = []
        for k in range(beams):
            a = self.pose.theta + angle_min + k * ang_inc
            r = self._raycast(a)
            if self.noise_std > 0.0 and r < self.range_max:
                r = max(0.0, min(self.range_max, r + self._rng.gauss(0.0, self.noise_std)))
            ranges.append(r)
        return LaserScan(angle_min, ang_inc, ranges, range_max=self.range_max,
                         robot_pose=self.pose.copy(), t=time.time())

    def _raycast(self, ang: float) -> float:
        # step <= half a world cell
        step = min(SIM_RAY_STEP_M, 0.5 * self.world.res)
        d = 0.0
        cos_a, sin_a = math.cos(ang), math.sin(ang)

        while d < self.range_max:
            x = self.pose.x + d * cos_a
            y = self.pose.y + d * sin_a
            if self.world.is_obstacle_world(x, y):
                return d
            d += step

        return self.range_max
