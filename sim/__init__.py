# ================================
# file: sim/__init__.py
# ================================
"""Simulation world: grid world and robot with simulated LiDAR.
NOTE: All classes here are SIMULATION INTERFACES. For recorded data use the
appio observation log reader, which yields the same Observation objects.
"""
from .grid_world import GridWorld
from .robot_sim import RobotSim
from .sim_source import SimObservationSource


__all__ = ["GridWorld", "RobotSim", "SimObservationSource"]
