"""
Landmark Reprojection Package

Geometric core of landmark-based visual self-localization: maps a point on a
planar landmark through world coordinates into camera pixel coordinates, and
refines landmark / camera poses by minimizing the reprojection error.

Coordinate System Chain:
    Landmark (x, y, 0) → World (x, y, z) → Camera (xc, yc, zc) → Image (u, v)

Conventions:
    - Pose blocks: [X, Y, Z, Rx, Ry, Rz], translation + axis-angle rotation,
      stored as object-in-world for both landmarks and cameras
    - Intrinsics blocks: [f, u0, v0, alpha, beta, theta]; theta is stored
      but not applied (orthogonal sensor axes)
    - Landmarks are planar (local z = 0)

All transforms are generic over the scalar type: plain floats, or Jets for
forward-mode differentiation.
"""

from .layout import (
    Pose,
    Intrinsics,
    PoseView,
    IntrinsicsView,
    POSE_SIZE,
    INTRINSICS_SIZE,
    make_pose,
    make_intrinsics,
)
from .jet import Jet
from .rotation import angle_axis_rotate_point, angle_axis_to_rotation_matrix
from .transforms import (
    DEFAULT_MIN_DEPTH,
    Projection,
    ProjectionStatus,
    landmark_to_world,
    world_to_camera,
    world_to_image,
    landmark_to_image,
)
from .errors import ReprojectionError, DegenerateProjectionError, CalibrationError
from .autodiff import jacobians, collect_jets, numeric_jacobians, check_gradients, GradientCheckResult
from .residuals import ReprojectionResidual, DegeneratePolicy
from .config import SolverOptions
from .calibrator import LandmarkCalibrator, CalibrationSummary, Observation

__version__ = "1.3.0"
__all__ = [
    "Pose",
    "Intrinsics",
    "PoseView",
    "IntrinsicsView",
    "POSE_SIZE",
    "INTRINSICS_SIZE",
    "make_pose",
    "make_intrinsics",
    "Jet",
    "angle_axis_rotate_point",
    "angle_axis_to_rotation_matrix",
    "DEFAULT_MIN_DEPTH",
    "Projection",
    "ProjectionStatus",
    "landmark_to_world",
    "world_to_camera",
    "world_to_image",
    "landmark_to_image",
    "ReprojectionError",
    "DegenerateProjectionError",
    "CalibrationError",
    "jacobians",
    "collect_jets",
    "numeric_jacobians",
    "check_gradients",
    "GradientCheckResult",
    "ReprojectionResidual",
    "DegeneratePolicy",
    "SolverOptions",
    "LandmarkCalibrator",
    "CalibrationSummary",
    "Observation",
]
