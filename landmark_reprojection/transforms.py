"""
Coordinate transformation chain from landmark frame to image coordinates.

Transformation chain:
    Landmark (x, y, 0) → World (x, y, z) → Camera (xc, yc, zc) → Image (u, v)

Conventions:
    - Landmarks are planar: points in a landmark frame have z = 0.
    - Landmark and camera poses are both stored as "object in world"
      transforms: p_world = R(w) p_local + t.
    - Going from world to camera therefore applies the inverse transform:
      p_cam = R(-w) (p_world - t).
    - Pinhole projection with independent horizontal / vertical scale
      factors. The theta (sensor axis angle) intrinsic is not applied; sensor axes
      are assumed orthogonal.

All functions are pure and generic over the scalar type (floats or jets),
so they can be evaluated inside a least-squares residual and differentiated.
They perform no validation and no logging; a pose or intrinsics block in the
wrong slot order silently produces wrong numbers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Tuple

from . import jet
from .errors import DegenerateProjectionError
from .layout import Intrinsics, Pose
from .rotation import angle_axis_rotate_point, negate

# Depths at or below this magnitude are treated as zero.
DEFAULT_MIN_DEPTH = 1e-12


class ProjectionStatus(Enum):
    """Outcome of projecting a point to the image."""
    OK = "ok"
    DEGENERATE_DEPTH = "degenerate_depth"


@dataclass(frozen=True)
class Projection:
    """
    Result of a world/landmark to image projection.

    Attributes:
        u: Horizontal pixel coordinate, None if the projection failed
        v: Vertical pixel coordinate, None if the projection failed
        status: ProjectionStatus of the evaluation
    """
    u: Optional[Any]
    v: Optional[Any]
    status: ProjectionStatus = ProjectionStatus.OK

    @property
    def valid(self) -> bool:
        return self.status is ProjectionStatus.OK

    @property
    def point(self) -> Optional[Tuple[Any, Any]]:
        """(u, v) if the projection succeeded, otherwise None."""
        if not self.valid:
            return None
        return (self.u, self.v)

    def unwrap(self) -> Tuple[Any, Any]:
        """
        Return (u, v) or raise if the projection is degenerate.

        Raises:
            DegenerateProjectionError: If the point had zero camera depth
        """
        if not self.valid:
            raise DegenerateProjectionError(
                "Point lies on the camera's focal plane; image coordinates are undefined"
            )
        return (self.u, self.v)


DEGENERATE = Projection(u=None, v=None, status=ProjectionStatus.DEGENERATE_DEPTH)


def landmark_to_world(x, y, lm_pose: Sequence) -> Tuple[Any, Any, Any]:
    """
    Transform a point from landmark coordinates into world coordinates.

    Args:
        x: x of the point in the landmark plane
        y: y of the point in the landmark plane
        lm_pose: Landmark pose block [X, Y, Z, Rx, Ry, Rz]

    Returns:
        World point (x_w, y_w, z_w)
    """
    # Landmarks are flat, local z is always 0
    p_lm = (x, y, 0.0)

    angle_axis = (lm_pose[Pose.Rx], lm_pose[Pose.Ry], lm_pose[Pose.Rz])
    p_w = angle_axis_rotate_point(angle_axis, p_lm)

    return (
        p_w[0] + lm_pose[Pose.X],
        p_w[1] + lm_pose[Pose.Y],
        p_w[2] + lm_pose[Pose.Z],
    )


def world_to_camera(x, y, z, camera_pose: Sequence) -> Tuple[Any, Any, Any]:
    """
    Transform a world point into the camera frame.

    The camera pose is camera-in-world, so the translation is removed first
    and the result is rotated by the negated axis-angle vector.

    Args:
        x, y, z: World point
        camera_pose: Camera pose block [X, Y, Z, Rx, Ry, Rz]

    Returns:
        Camera frame point (xc, yc, zc)
    """
    p_c = (
        x - camera_pose[Pose.X],
        y - camera_pose[Pose.Y],
        z - camera_pose[Pose.Z],
    )
    angle_axis = negate((camera_pose[Pose.Rx], camera_pose[Pose.Ry], camera_pose[Pose.Rz]))
    return angle_axis_rotate_point(angle_axis, p_c)


def camera_to_image(
    xc, yc, zc,
    intrinsics: Sequence,
    min_depth: float = DEFAULT_MIN_DEPTH,
) -> Projection:
    """
    Project a camera frame point to pixel coordinates.

    Projection model (theta not applied, axes assumed orthogonal):
        xi = f * alpha * xc + u0 * zc
        yi = f * beta * yc + v0 * zc
        u, v = xi / zc, yi / zc

    Args:
        xc, yc, zc: Camera frame point
        intrinsics: Intrinsics block [f, u0, v0, alpha, beta, theta]
        min_depth: Depth magnitude at or below which the point is degenerate

    Returns:
        Projection; DEGENERATE if |zc| <= min_depth
    """
    f = intrinsics[Intrinsics.f]
    xi = f * intrinsics[Intrinsics.alpha] * xc + intrinsics[Intrinsics.u0] * zc
    yi = f * intrinsics[Intrinsics.beta] * yc + intrinsics[Intrinsics.v0] * zc
    zi = zc

    # theta is not applied, skew is assumed to be zero
    if abs(jet.value_of(zi)) <= min_depth:
        return DEGENERATE

    return Projection(u=xi / zi, v=yi / zi)


def world_to_image(
    x, y, z,
    camera_pose: Sequence,
    intrinsics: Sequence,
    min_depth: float = DEFAULT_MIN_DEPTH,
) -> Projection:
    """
    Transform a point from world coordinates into image coordinates.

    Args:
        x, y, z: World point
        camera_pose: Camera pose block [X, Y, Z, Rx, Ry, Rz]
        intrinsics: Intrinsics block [f, u0, v0, alpha, beta, theta]
        min_depth: Depth magnitude at or below which the point is degenerate

    Returns:
        Projection with (u, v), or DEGENERATE when the camera depth is zero
    """
    xc, yc, zc = world_to_camera(x, y, z, camera_pose)
    return camera_to_image(xc, yc, zc, intrinsics, min_depth=min_depth)


def landmark_to_image(
    x, y,
    lm_pose: Sequence,
    camera_pose: Sequence,
    intrinsics: Sequence,
    min_depth: float = DEFAULT_MIN_DEPTH,
) -> Projection:
    """
    Transform a point from landmark coordinates into image coordinates.

    Composition of landmark_to_world and world_to_image; a degenerate
    projection is passed through unchanged.

    Args:
        x, y: Point in the landmark plane
        lm_pose: Landmark pose block [X, Y, Z, Rx, Ry, Rz]
        camera_pose: Camera pose block [X, Y, Z, Rx, Ry, Rz]
        intrinsics: Intrinsics block [f, u0, v0, alpha, beta, theta]
        min_depth: Depth magnitude at or below which the point is degenerate

    Returns:
        Projection with (u, v), or DEGENERATE
    """
    x_w, y_w, z_w = landmark_to_world(x, y, lm_pose)
    return world_to_image(x_w, y_w, z_w, camera_pose, intrinsics, min_depth=min_depth)
