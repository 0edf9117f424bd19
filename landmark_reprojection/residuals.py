"""
Reprojection residual for a single landmark point observation.

The residual is the difference between the predicted image position of a
landmark point and its measured pixel position:

    r = landmark_to_image(x, y, lm_pose, camera_pose, intrinsics) - (u_obs, v_obs)

It is generic over the scalar type, so the optimizer can evaluate it on
floats for the cost and on jets for the Jacobians with respect to the
landmark pose, camera pose and intrinsics blocks.
"""

from enum import Enum
from typing import List, Sequence, Tuple

import numpy as np

from .autodiff import collect_jets
from .errors import DegenerateProjectionError
from .jet import seed_blocks
from .transforms import DEFAULT_MIN_DEPTH, Projection, landmark_to_image


class DegeneratePolicy(Enum):
    """How a residual reacts to a point with zero camera depth."""
    SKIP = "skip"
    PENALTY = "penalty"
    RAISE = "raise"


class ReprojectionResidual:
    """
    Residual functor for one observed landmark point.

    Example usage:
        residual = ReprojectionResidual((0.1, 0.2), (412.3, 288.0))
        r = residual(lm_pose, camera_pose, intrinsics)
        r, (J_lm, J_cam, J_intr), valid = residual.evaluate(lm_pose, camera_pose, intrinsics)
    """

    NUM_RESIDUALS = 2

    def __init__(
        self,
        point_local: Sequence[float],
        pixel: Sequence[float],
        policy: DegeneratePolicy = DegeneratePolicy.PENALTY,
        penalty: float = 1e3,
        min_depth: float = DEFAULT_MIN_DEPTH,
    ):
        """
        Args:
            point_local: (x, y) of the point in the landmark plane
            pixel: Observed (u, v) pixel coordinates
            policy: Behaviour on degenerate depth
            penalty: Residual value returned by the PENALTY policy
            min_depth: Depth magnitude treated as zero
        """
        self.x, self.y = float(point_local[0]), float(point_local[1])
        self.u_obs, self.v_obs = float(pixel[0]), float(pixel[1])
        self.policy = DegeneratePolicy(policy)
        self.penalty = float(penalty)
        self.min_depth = min_depth

    def __repr__(self) -> str:
        return (
            f"ReprojectionResidual(point=({self.x}, {self.y}), "
            f"pixel=({self.u_obs}, {self.v_obs}), policy={self.policy.value})"
        )

    def project(self, lm_pose: Sequence, camera_pose: Sequence, intrinsics: Sequence) -> Projection:
        """Predicted image position of the observed point."""
        return landmark_to_image(
            self.x, self.y, lm_pose, camera_pose, intrinsics, min_depth=self.min_depth
        )

    def _from_projection(self, projection: Projection) -> List:
        if projection.valid:
            return [projection.u - self.u_obs, projection.v - self.v_obs]

        if self.policy is DegeneratePolicy.SKIP:
            return [0.0, 0.0]
        if self.policy is DegeneratePolicy.PENALTY:
            return [self.penalty, self.penalty]
        raise DegenerateProjectionError(
            f"Landmark point ({self.x}, {self.y}) has zero depth in the camera frame"
        )

    def __call__(self, lm_pose: Sequence, camera_pose: Sequence, intrinsics: Sequence) -> List:
        """
        Evaluate the residual [u - u_obs, v - v_obs].

        Raises:
            DegenerateProjectionError: On zero depth with the RAISE policy
        """
        return self._from_projection(self.project(lm_pose, camera_pose, intrinsics))

    def is_degenerate(self, lm_pose: Sequence, camera_pose: Sequence, intrinsics: Sequence) -> bool:
        return not self.project(lm_pose, camera_pose, intrinsics).valid

    def evaluate(
        self,
        lm_pose: Sequence,
        camera_pose: Sequence,
        intrinsics: Sequence,
    ) -> Tuple[np.ndarray, List[np.ndarray], bool]:
        """
        Evaluate residual and Jacobians in a single jet pass.

        Returns:
            Tuple of:
                - residual: (2,) array
                - jacobians: [J_lm_pose, J_camera_pose, J_intrinsics], each (2, 6)
                - valid: False if the point was degenerate (Jacobians are zero then)
        """
        jet_blocks, _ = seed_blocks(lm_pose, camera_pose, intrinsics)
        projection = self.project(*jet_blocks)
        values, blocks = collect_jets(
            self._from_projection(projection), lm_pose, camera_pose, intrinsics
        )
        return values, blocks, projection.valid
