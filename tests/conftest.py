import math
import os
import sys

import pytest

# Ensure local package import works for pytest collection.
_TEST_DIR = os.path.dirname(__file__)
_PKG_ROOT = os.path.abspath(os.path.join(_TEST_DIR, ".."))
if _PKG_ROOT not in sys.path:
    sys.path.insert(0, _PKG_ROOT)

from core import Pose2D, LaserScan  # noqa: E402
from slam import ScanGridBuilder, Graph  # noqa: E402


# =============================================================================
# Scan fixtures
# =============================================================================

def make_cross_scan(ranges=(1.0, 1.0, 1.0, 1.0), range_max=10.0, angle_min=0.0):
    """Four beams at 90 degree spacing starting at angle_min."""
    return LaserScan(angle_min, math.pi / 2, list(ranges), range_max=range_max)


@pytest.fixture
def cross_scan():
    return make_cross_scan()


@pytest.fixture
def origin_pose():
    return Pose2D(0.0, 0.0, 0.0)


@pytest.fixture
def builder():
    """resolution 0.1 m, every beam up to range_max trusted."""
    return ScanGridBuilder(0.1, 1.0)


@pytest.fixture
def graph():
    return Graph(0.1, 1.0)


@pytest.fixture
def numpy_seed():
    """Set numpy random seed for reproducible tests."""
    import numpy as np
    np.random.seed(42)
    yield
