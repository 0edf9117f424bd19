"""
Landmark and camera pose refinement by reprojection error minimization.

Problem setup:
    - Parameter blocks: one pose per landmark, one pose per camera, and one
      shared intrinsics block.
    - Residuals: one ReprojectionResidual per observed landmark point,
      comparing landmark_to_image() with the measured pixel.
    - Any block can be held constant (e.g. a reference landmark to fix the
      gauge, or the intrinsics).

The problem is solved with scipy.optimize.least_squares (trust region
reflective). Jacobians come from jets, scattered into a sparse matrix whose
columns cover the free blocks only.
"""

from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional, Sequence, Tuple
import logging

import numpy as np
from scipy.optimize import least_squares
from scipy.sparse import lil_matrix

from .config import SolverOptions
from .errors import CalibrationError
from .layout import INTRINSICS_SIZE, POSE_SIZE, IntrinsicsView, PoseView
from .residuals import DegeneratePolicy, ReprojectionResidual
from .transforms import landmark_to_image

logger = logging.getLogger(__name__)

# Problems with more free parameters than this get a sparse Jacobian.
SPARSE_JACOBIAN_THRESHOLD = 1000


@dataclass
class Observation:
    """A landmark point seen by a camera."""
    camera_id: Hashable
    landmark_id: Hashable
    point_local: Tuple[float, float]  # (x, y) in the landmark plane
    pixel: Tuple[float, float]  # Measured (u, v)


@dataclass
class CalibrationSummary:
    """Outcome of a LandmarkCalibrator.solve() call."""
    success: bool
    status: int
    message: str
    initial_cost: float
    final_cost: float
    rms_error: float  # RMS reprojection error over valid observations (pixels)
    num_observations: int
    num_parameters: int
    num_degenerate: int
    nfev: int

    def brief_report(self) -> str:
        return (
            f"Calibration {'converged' if self.success else 'FAILED'}: "
            f"cost {self.initial_cost:.6g} -> {self.final_cost:.6g}, "
            f"RMS {self.rms_error:.4f} px, {self.num_observations} observations, "
            f"{self.num_parameters} parameters, {self.nfev} evaluations ({self.message})"
        )


class LandmarkCalibrator:
    """
    Joint refinement of landmark poses, camera poses and intrinsics.

    Example usage:
        calibrator = LandmarkCalibrator(intrinsics, SolverOptions(loss='huber'))
        calibrator.add_landmark(0, lm_pose)
        calibrator.add_camera('img_001', camera_pose)
        calibrator.add_observation('img_001', 0, (0.1, 0.2), (412.3, 288.0))
        calibrator.set_landmark_constant(0)
        summary = calibrator.solve()
    """

    def __init__(self, intrinsics: Sequence[float], options: Optional[SolverOptions] = None):
        """
        Args:
            intrinsics: Intrinsics block [f, u0, v0, alpha, beta, theta]
            options: Solver options (defaults if None)
        """
        self.intrinsics = self._as_block(intrinsics, INTRINSICS_SIZE, "intrinsics")
        self.options = options or SolverOptions()

        self.landmarks: Dict[Hashable, np.ndarray] = {}
        self.cameras: Dict[Hashable, np.ndarray] = {}
        self.observations: List[Observation] = []

        self._constant_landmarks = set()
        self._constant_cameras = set()

        logger.debug(f"Calibrator initialized with {IntrinsicsView(self.intrinsics)}")
        logger.debug(f"Solver options: {self.options}")

    @staticmethod
    def _as_block(values: Sequence[float], size: int, name: str) -> np.ndarray:
        block = np.array(values, dtype=np.float64).reshape(-1)
        if block.shape[0] != size:
            raise CalibrationError(f"{name} must have {size} parameters, got {block.shape[0]}")
        return block

    # Problem construction

    def add_landmark(self, landmark_id: Hashable, pose: Sequence[float]) -> None:
        if landmark_id in self.landmarks:
            raise CalibrationError(f"Duplicate landmark id: {landmark_id!r}")
        self.landmarks[landmark_id] = self._as_block(pose, POSE_SIZE, f"landmark {landmark_id!r} pose")
        logger.debug(f"Added landmark {landmark_id!r}: {PoseView(self.landmarks[landmark_id])}")

    def add_camera(self, camera_id: Hashable, pose: Sequence[float]) -> None:
        if camera_id in self.cameras:
            raise CalibrationError(f"Duplicate camera id: {camera_id!r}")
        self.cameras[camera_id] = self._as_block(pose, POSE_SIZE, f"camera {camera_id!r} pose")
        logger.debug(f"Added camera {camera_id!r}: {PoseView(self.cameras[camera_id])}")

    def add_observation(
        self,
        camera_id: Hashable,
        landmark_id: Hashable,
        point_local: Sequence[float],
        pixel: Sequence[float],
    ) -> Observation:
        """
        Register a measured pixel for a point on a landmark.

        Args:
            camera_id: Id of the camera that saw the point
            landmark_id: Id of the landmark the point belongs to
            point_local: (x, y) of the point in the landmark plane
            pixel: Measured (u, v)

        Returns:
            The stored Observation

        Raises:
            CalibrationError: If the camera or landmark is unknown
        """
        if camera_id not in self.cameras:
            raise CalibrationError(f"Unknown camera id: {camera_id!r}")
        if landmark_id not in self.landmarks:
            raise CalibrationError(f"Unknown landmark id: {landmark_id!r}")

        observation = Observation(
            camera_id=camera_id,
            landmark_id=landmark_id,
            point_local=(float(point_local[0]), float(point_local[1])),
            pixel=(float(pixel[0]), float(pixel[1])),
        )
        self.observations.append(observation)
        return observation

    def set_landmark_constant(self, landmark_id: Hashable) -> None:
        if landmark_id not in self.landmarks:
            raise CalibrationError(f"Unknown landmark id: {landmark_id!r}")
        self._constant_landmarks.add(landmark_id)

    def set_camera_constant(self, camera_id: Hashable) -> None:
        if camera_id not in self.cameras:
            raise CalibrationError(f"Unknown camera id: {camera_id!r}")
        self._constant_cameras.add(camera_id)

    # Parameter packing

    def _free_blocks(self) -> List[Tuple[str, Hashable, int]]:
        """(kind, id, offset) of every block that is optimized."""
        blocks = []
        offset = 0
        for landmark_id in self.landmarks:
            if landmark_id not in self._constant_landmarks:
                blocks.append(('landmark', landmark_id, offset))
                offset += POSE_SIZE
        for camera_id in self.cameras:
            if camera_id not in self._constant_cameras:
                blocks.append(('camera', camera_id, offset))
                offset += POSE_SIZE
        if self.options.optimize_intrinsics:
            blocks.append(('intrinsics', None, offset))
        return blocks

    def _pack(self, blocks: List[Tuple[str, Hashable, int]]) -> np.ndarray:
        parts = [self._block(kind, block_id) for kind, block_id, _ in blocks]
        if not parts:
            return np.zeros(0)
        return np.concatenate(parts)

    def _block(self, kind: str, block_id: Hashable) -> np.ndarray:
        if kind == 'landmark':
            return self.landmarks[block_id]
        if kind == 'camera':
            return self.cameras[block_id]
        return self.intrinsics

    def _unpack(
        self,
        x: np.ndarray,
        blocks: List[Tuple[str, Hashable, int]],
    ) -> Tuple[Dict, Dict, np.ndarray]:
        landmarks = dict(self.landmarks)
        cameras = dict(self.cameras)
        intrinsics = self.intrinsics
        for kind, block_id, offset in blocks:
            if kind == 'landmark':
                landmarks[block_id] = x[offset:offset + POSE_SIZE]
            elif kind == 'camera':
                cameras[block_id] = x[offset:offset + POSE_SIZE]
            else:
                intrinsics = x[offset:offset + INTRINSICS_SIZE]
        return landmarks, cameras, intrinsics

    # Evaluation

    def _make_residuals(self) -> List[ReprojectionResidual]:
        """One residual per observation, configured from the current options."""
        opts = self.options
        policy = DegeneratePolicy(opts.degenerate_policy)
        return [
            ReprojectionResidual(
                obs.point_local,
                obs.pixel,
                policy=policy,
                penalty=opts.degenerate_penalty,
                min_depth=opts.min_depth,
            )
            for obs in self.observations
        ]

    def _residuals(self, x: np.ndarray, blocks, residuals) -> np.ndarray:
        landmarks, cameras, intrinsics = self._unpack(x, blocks)
        r = np.empty(2 * len(self.observations))
        for i, (obs, residual) in enumerate(zip(self.observations, residuals)):
            r[2 * i:2 * i + 2] = residual(
                landmarks[obs.landmark_id], cameras[obs.camera_id], intrinsics
            )
        return r

    def _jacobian(self, x: np.ndarray, blocks, residuals):
        landmarks, cameras, intrinsics = self._unpack(x, blocks)
        columns = {(kind, block_id): offset for kind, block_id, offset in blocks}

        J = lil_matrix((2 * len(self.observations), x.shape[0]))
        for i, (obs, residual) in enumerate(zip(self.observations, residuals)):
            _, (J_lm, J_cam, J_intr), _ = residual.evaluate(
                landmarks[obs.landmark_id], cameras[obs.camera_id], intrinsics
            )
            rows = slice(2 * i, 2 * i + 2)
            offset = columns.get(('landmark', obs.landmark_id))
            if offset is not None:
                J[rows, offset:offset + POSE_SIZE] = J_lm
            offset = columns.get(('camera', obs.camera_id))
            if offset is not None:
                J[rows, offset:offset + POSE_SIZE] = J_cam
            offset = columns.get(('intrinsics', None))
            if offset is not None:
                J[rows, offset:offset + INTRINSICS_SIZE] = J_intr

        if x.shape[0] > SPARSE_JACOBIAN_THRESHOLD:
            return J.tocsr()
        return J.toarray()

    def reprojection_errors(self) -> np.ndarray:
        """
        Pixel distance between prediction and measurement per observation.

        Returns:
            (n_observations,) array; NaN where the projection is degenerate
        """
        errors = np.full(len(self.observations), np.nan)
        for i, obs in enumerate(self.observations):
            projection = landmark_to_image(
                obs.point_local[0], obs.point_local[1],
                self.landmarks[obs.landmark_id],
                self.cameras[obs.camera_id],
                self.intrinsics,
                min_depth=self.options.min_depth,
            )
            if projection.valid:
                errors[i] = np.hypot(projection.u - obs.pixel[0], projection.v - obs.pixel[1])
        return errors

    # Solving

    def solve(self) -> CalibrationSummary:
        """
        Run the least-squares refinement and write the result back.

        Returns:
            CalibrationSummary

        Raises:
            CalibrationError: If there are no observations or no free parameters
            DegenerateProjectionError: With the 'raise' policy, if a point has
                zero camera depth during the optimization
        """
        if not self.observations:
            raise CalibrationError("No observations added")

        blocks = self._free_blocks()
        x0 = self._pack(blocks)
        if x0.shape[0] == 0:
            raise CalibrationError("All parameter blocks are constant, nothing to optimize")

        logger.info(
            f"Solving with {len(self.observations)} observations, "
            f"{len(self.landmarks)} landmarks, {len(self.cameras)} cameras, "
            f"{x0.shape[0]} free parameters"
        )

        opts = self.options
        residuals = self._make_residuals()

        r0 = self._residuals(x0, blocks, residuals)
        initial_cost = 0.5 * float(r0 @ r0)

        result = least_squares(
            self._residuals,
            x0,
            jac=self._jacobian,
            method='trf',
            x_scale='jac',
            loss=opts.loss,
            f_scale=opts.f_scale,
            ftol=opts.ftol,
            xtol=opts.xtol,
            gtol=opts.gtol,
            max_nfev=opts.max_nfev,
            verbose=opts.verbose,
            args=(blocks, residuals),
        )

        landmarks, cameras, intrinsics = self._unpack(result.x, blocks)
        self.landmarks = {k: np.array(v, dtype=np.float64) for k, v in landmarks.items()}
        self.cameras = {k: np.array(v, dtype=np.float64) for k, v in cameras.items()}
        self.intrinsics = np.array(intrinsics, dtype=np.float64)

        errors = self.reprojection_errors()
        valid = ~np.isnan(errors)
        num_degenerate = int(np.count_nonzero(~valid))
        rms = float(np.sqrt(np.mean(errors[valid] ** 2))) if valid.any() else float('nan')

        if num_degenerate:
            logger.warning(f"{num_degenerate} observations have zero camera depth at the solution")

        summary = CalibrationSummary(
            success=bool(result.success),
            status=int(result.status),
            message=str(result.message),
            initial_cost=initial_cost,
            final_cost=0.5 * float(result.fun @ result.fun),
            rms_error=rms,
            num_observations=len(self.observations),
            num_parameters=x0.shape[0],
            num_degenerate=num_degenerate,
            nfev=int(result.nfev),
        )
        logger.info(summary.brief_report())
        return summary
