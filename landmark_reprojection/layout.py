"""
Parameter block layouts for poses and camera intrinsics.

Poses and intrinsics are passed around as flat, 6-element sequences so that
they can be handed directly to a least-squares solver as parameter blocks.
The slot order defined here is the contract between every producer and
consumer of those blocks; it is never checked at runtime.

Pose block:
    [X, Y, Z, Rx, Ry, Rz]
    - (X, Y, Z): translation
    - (Rx, Ry, Rz): axis-angle rotation (norm = angle in radians)

Intrinsics block:
    [f, u0, v0, alpha, beta, theta]
    - f: focal length
    - (u0, v0): principal point in pixels
    - alpha, beta: horizontal / vertical scale factors
    - theta: angle between the sensor axes. Part of the layout but not used
      by the projection, which assumes orthogonal axes (90 degrees).
"""

from enum import IntEnum
from typing import Sequence

import numpy as np


class Pose(IntEnum):
    """Slot indices of a 6-DoF pose block."""
    X = 0
    Y = 1
    Z = 2
    Rx = 3
    Ry = 4
    Rz = 5


class Intrinsics(IntEnum):
    """Slot indices of a camera intrinsics block."""
    f = 0
    u0 = 1
    v0 = 2
    alpha = 3
    beta = 4
    theta = 5


POSE_SIZE = len(Pose)
INTRINSICS_SIZE = len(Intrinsics)


class PoseView:
    """
    Named-field, read-only view over a flat pose block.

    The underlying sequence is kept as is (no copy, no validation), so the
    block can still be handed to a solver while call sites read fields by
    name.
    """

    __slots__ = ("block",)

    def __init__(self, block: Sequence):
        self.block = block

    @property
    def X(self):
        return self.block[Pose.X]

    @property
    def Y(self):
        return self.block[Pose.Y]

    @property
    def Z(self):
        return self.block[Pose.Z]

    @property
    def Rx(self):
        return self.block[Pose.Rx]

    @property
    def Ry(self):
        return self.block[Pose.Ry]

    @property
    def Rz(self):
        return self.block[Pose.Rz]

    @property
    def translation(self):
        return (self.X, self.Y, self.Z)

    @property
    def angle_axis(self):
        return (self.Rx, self.Ry, self.Rz)

    def __repr__(self) -> str:
        fields = ", ".join(f"{p.name}={self.block[p]!r}" for p in Pose)
        return f"PoseView({fields})"


class IntrinsicsView:
    """Named-field, read-only view over a flat intrinsics block."""

    __slots__ = ("block",)

    def __init__(self, block: Sequence):
        self.block = block

    @property
    def f(self):
        return self.block[Intrinsics.f]

    @property
    def u0(self):
        return self.block[Intrinsics.u0]

    @property
    def v0(self):
        return self.block[Intrinsics.v0]

    @property
    def alpha(self):
        return self.block[Intrinsics.alpha]

    @property
    def beta(self):
        return self.block[Intrinsics.beta]

    @property
    def theta(self):
        return self.block[Intrinsics.theta]

    def __repr__(self) -> str:
        fields = ", ".join(f"{p.name}={self.block[p]!r}" for p in Intrinsics)
        return f"IntrinsicsView({fields})"


def make_pose(
    X: float = 0.0,
    Y: float = 0.0,
    Z: float = 0.0,
    Rx: float = 0.0,
    Ry: float = 0.0,
    Rz: float = 0.0,
) -> np.ndarray:
    """
    Build a pose block in canonical slot order.

    Returns:
        float64 array of length 6
    """
    block = np.zeros(POSE_SIZE, dtype=np.float64)
    block[Pose.X] = X
    block[Pose.Y] = Y
    block[Pose.Z] = Z
    block[Pose.Rx] = Rx
    block[Pose.Ry] = Ry
    block[Pose.Rz] = Rz
    return block


def make_intrinsics(
    f: float,
    u0: float,
    v0: float,
    alpha: float = 1.0,
    beta: float = 1.0,
    theta: float = np.pi / 2,
) -> np.ndarray:
    """
    Build an intrinsics block in canonical slot order.

    Args:
        f: Focal length
        u0: Principal point u (pixels)
        v0: Principal point v (pixels)
        alpha: Horizontal scale factor
        beta: Vertical scale factor
        theta: Sensor axis angle in radians (stored, not used by the projection)

    Returns:
        float64 array of length 6
    """
    block = np.zeros(INTRINSICS_SIZE, dtype=np.float64)
    block[Intrinsics.f] = f
    block[Intrinsics.u0] = u0
    block[Intrinsics.v0] = v0
    block[Intrinsics.alpha] = alpha
    block[Intrinsics.beta] = beta
    block[Intrinsics.theta] = theta
    return block
