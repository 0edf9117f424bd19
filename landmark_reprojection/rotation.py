"""
Axis-angle rotations written against the generic scalar interface.

An axis-angle vector w = theta * n encodes a rotation of theta radians about
the unit axis n. Rotating a point p uses Rodrigues' formula:

    R(w) p = p cos(theta) + (n x p) sin(theta) + n (n . p)(1 - cos(theta))

Negating w gives the inverse rotation.
"""

import sys
from typing import Sequence, Tuple

import numpy as np

from . import jet

# Below this squared angle the first-order expansion is used; it avoids the
# singular derivative of sqrt at zero.
_THETA2_EPSILON = sys.float_info.epsilon


def cross(a: Sequence, b: Sequence) -> Tuple:
    """Cross product of two 3-vectors."""
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def dot(a: Sequence, b: Sequence):
    """Dot product of two 3-vectors."""
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def negate(angle_axis: Sequence) -> Tuple:
    """Axis-angle vector of the inverse rotation."""
    return (-angle_axis[0], -angle_axis[1], -angle_axis[2])


def angle_axis_rotate_point(angle_axis: Sequence, point: Sequence) -> Tuple:
    """
    Rotate a 3D point by an axis-angle vector.

    Works for floats and jets. For rotations with a squared angle at or
    below machine epsilon the first-order approximation p + w x p is used,
    which is exact to working precision and keeps derivatives finite.

    Args:
        angle_axis: Axis-angle rotation (Rx, Ry, Rz)
        point: Point (x, y, z)

    Returns:
        Rotated point as a 3-tuple
    """
    theta2 = dot(angle_axis, angle_axis)
    if theta2 > _THETA2_EPSILON:
        theta = jet.sqrt(theta2)
        cos_theta = jet.cos(theta)
        sin_theta = jet.sin(theta)
        theta_inverse = 1.0 / theta

        w = (
            angle_axis[0] * theta_inverse,
            angle_axis[1] * theta_inverse,
            angle_axis[2] * theta_inverse,
        )
        w_cross_pt = cross(w, point)
        tmp = dot(w, point) * (1.0 - cos_theta)

        return (
            point[0] * cos_theta + w_cross_pt[0] * sin_theta + w[0] * tmp,
            point[1] * cos_theta + w_cross_pt[1] * sin_theta + w[1] * tmp,
            point[2] * cos_theta + w_cross_pt[2] * sin_theta + w[2] * tmp,
        )

    w_cross_pt = cross(angle_axis, point)
    return (
        point[0] + w_cross_pt[0],
        point[1] + w_cross_pt[1],
        point[2] + w_cross_pt[2],
    )


def angle_axis_to_rotation_matrix(angle_axis: Sequence) -> np.ndarray:
    """
    Rotation matrix of an axis-angle vector (float inputs).

    Args:
        angle_axis: Axis-angle rotation (Rx, Ry, Rz)

    Returns:
        3x3 rotation matrix R such that R @ p == angle_axis_rotate_point(w, p)
    """
    columns = [
        angle_axis_rotate_point(angle_axis, axis)
        for axis in ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))
    ]
    return np.array(columns, dtype=np.float64).T
